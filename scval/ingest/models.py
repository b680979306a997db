from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from scval.errors import UndecodableFileError


@dataclass(frozen=True)
class PathBuffer:
    """A raw submitted entry; may still be a zip archive.

    ``origin`` is set for entries extracted from an archive and names the
    outermost submitted archive they came from.
    """

    path: str
    buffer: bytes
    origin: Optional[str] = None

    def decode(self, *, errors: str = "replace") -> "PathContent":
        try:
            content = self.buffer.decode("utf-8", errors=errors)
        except UnicodeDecodeError as e:
            raise UndecodableFileError(self.path, str(e)) from e
        return PathContent(path=self.path, content=content, origin=self.origin)


@dataclass(frozen=True)
class PathContent:
    path: str
    content: str
    origin: Optional[str] = None
