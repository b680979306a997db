from __future__ import annotations

import stat
from pathlib import Path
from typing import Callable, Optional, Union

from scval.errors import NonexistentPathError


PathVisitor = Callable[[Path], None]


def traverse_path(
    path: Union[str, Path],
    worker: PathVisitor,
    after_directory: Optional[PathVisitor] = None,
) -> None:
    """Depth-first walk applying ``worker`` to every regular file.

    Directory children are visited in sorted order; ``after_directory`` runs on a
    directory once all of its children were visited. Symlinks and special files
    are skipped.
    """
    p = Path(path)
    try:
        st = p.lstat()
    except FileNotFoundError:
        raise NonexistentPathError(str(path)) from None

    if stat.S_ISREG(st.st_mode):
        worker(p)
    elif stat.S_ISDIR(st.st_mode):
        for child in sorted(p.iterdir(), key=lambda c: c.name):
            traverse_path(child, worker, after_directory)
        if after_directory is not None:
            after_directory(p)
