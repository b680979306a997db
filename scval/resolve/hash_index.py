from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from scval.hashing import keccak256_hex
from scval.ingest.models import PathContent


@dataclass
class CountableContent:
    """A submitted file plus the number of times a metadata source resolved to it."""

    file: PathContent
    count: int = 0


class HashIndex:
    """Submitted non-metadata files keyed by the keccak256 of their content.

    Files with identical content share one digest; the later one is kept.
    """

    def __init__(self) -> None:
        self._by_hash: dict[str, CountableContent] = {}

    @classmethod
    def from_files(cls, files: Iterable[PathContent]) -> "HashIndex":
        index = cls()
        for file in files:
            index.add(file)
        return index

    def add(self, file: PathContent) -> str:
        digest = keccak256_hex(file.content)
        self._by_hash[digest] = CountableContent(file=file)
        return digest

    def lookup(self, digest: str) -> Optional[CountableContent]:
        return self._by_hash.get(digest)

    def claim(self, digest: str) -> Optional[PathContent]:
        entry = self.lookup(digest)
        if entry is None:
            return None
        entry.count += 1
        return entry.file

    def unused(self) -> list[PathContent]:
        return [entry.file for entry in self._by_hash.values() if entry.count == 0]

    def __len__(self) -> int:
        return len(self._by_hash)
