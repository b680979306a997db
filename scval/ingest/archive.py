from __future__ import annotations

import io
import os
import tempfile
import zipfile
import zlib
from collections import deque
from pathlib import Path
from typing import Iterable, Optional

from scval.errors import ArchiveExtractionError, ValidationError
from scval.ingest.models import PathBuffer
from scval.ingest.traverse import traverse_path


SCRATCH_PREFIX = "scval-unzipped-"


def open_zip(data: bytes) -> Optional[zipfile.ZipFile]:
    """Probe whether ``data`` is a zip archive; returns the opened archive or None."""
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, EOFError, OSError):
        return None


class ArchiveExpander:
    """Flattens submitted entries, replacing zip archives by their members."""

    def __init__(self, *, scratch_dir: Optional[Path] = None) -> None:
        self._scratch_dir = scratch_dir

    def _make_scratch_dir(self) -> Path:
        if self._scratch_dir is not None:
            self._scratch_dir.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=SCRATCH_PREFIX, dir=self._scratch_dir))

    def unzip(self, archive: PathBuffer, zf: zipfile.ZipFile) -> list[PathBuffer]:
        """Extracts ``zf`` into a fresh scratch directory and reads the members back.

        The scratch directory is removed whether or not extraction succeeds. Corrupt,
        encrypted or otherwise unreadable members raise ``ArchiveExtractionError``.
        """
        origin = archive.origin or archive.path
        tmp_dir = self._make_scratch_dir()
        extracted: list[PathBuffer] = []

        def collect(file_path: Path) -> None:
            extracted.append(
                PathBuffer(
                    path=file_path.relative_to(tmp_dir).as_posix(),
                    buffer=file_path.read_bytes(),
                    origin=origin,
                )
            )

        try:
            zf.extractall(tmp_dir)
            traverse_path(tmp_dir, collect)
        except ValidationError:
            raise
        # encrypted members raise RuntimeError, unknown compression NotImplementedError
        except (zipfile.BadZipFile, zlib.error, EOFError, OSError, RuntimeError, NotImplementedError) as e:
            raise ArchiveExtractionError(archive.path, str(e)) from e
        finally:
            traverse_path(tmp_dir, os.unlink, os.rmdir)
        return extracted

    def find_input_files(self, files: Iterable[PathBuffer]) -> list[PathBuffer]:
        pending = deque(files)
        input_files: list[PathBuffer] = []
        while pending:
            file = pending.popleft()
            zf = open_zip(file.buffer)
            if zf is None:
                input_files.append(file)
                continue
            with zf:
                pending.extend(self.unzip(file, zf))
        return input_files
