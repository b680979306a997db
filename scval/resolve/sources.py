from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from scval.hashing import keccak256_hex
from scval.ingest.models import PathContent
from scval.resolve.hash_index import HashIndex


INVALID_HASH_MESSAGE = "The calculated and the provided hash values don't match."


@dataclass(frozen=True)
class MissingSource:
    keccak256: Optional[str]
    urls: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"keccak256": self.keccak256, "urls": list(self.urls)}


@dataclass
class SourcePartition:
    found_sources: dict[str, PathContent] = field(default_factory=dict)
    missing_sources: dict[str, MissingSource] = field(default_factory=dict)
    invalid_sources: dict[str, str] = field(default_factory=dict)


def _declared_urls(source_info: dict[str, Any]) -> list[str]:
    urls = source_info.get("urls")
    if not isinstance(urls, list):
        return []
    return [u for u in urls if isinstance(u, str)]


def rearrange_sources(metadata: dict[str, Any], index: HashIndex) -> SourcePartition:
    """Classifies every source declared by ``metadata`` as found, missing or invalid.

    Inline ``content`` is checked against the declared ``keccak256`` and never
    falls back to the index on mismatch. Sources without inline content are
    looked up in ``index`` by digest, which counts the hit.
    """
    partition = SourcePartition()
    sources = metadata.get("sources")
    if not isinstance(sources, dict):
        return partition

    for file_name, source_info in sources.items():
        if not isinstance(source_info, dict):
            source_info = {}
        declared_hash = source_info.get("keccak256")
        inline = source_info.get("content")

        file: Optional[PathContent] = None
        if isinstance(inline, str) and inline:
            if keccak256_hex(inline) != declared_hash:
                partition.invalid_sources[file_name] = INVALID_HASH_MESSAGE
                continue
            file = PathContent(path=file_name, content=inline)
        elif isinstance(declared_hash, str):
            file = index.claim(declared_hash)

        if file is not None and file.content:
            partition.found_sources[file_name] = file
        else:
            partition.missing_sources[file_name] = MissingSource(
                keccak256=declared_hash if isinstance(declared_hash, str) else None,
                urls=_declared_urls(source_info),
            )

    return partition
