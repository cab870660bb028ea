from __future__ import annotations

from pathlib import Path
from typing import Optional

from docledger.runtime.errors import BlobStoreError


def resolve_local_path(filename: str, *, root: Optional[str] = None) -> Path:
    """Resolve a filename named in a record.

    Absolute paths are used as-is. Relative paths resolve under `root` when one
    is configured, otherwise against the process working directory.
    """
    p = Path(filename)
    if root and not p.is_absolute():
        p = Path(root) / p
    return p


def read_local_file(filename: str, *, root: Optional[str] = None) -> bytes:
    """Load a whole local file into memory with a single, non-retried read."""
    name = str(filename or "")
    if not name.strip():
        raise BlobStoreError("file open error: missing filename", {"filename": name})
    path = resolve_local_path(name, root=root)
    try:
        return path.read_bytes()
    except OSError as e:
        raise BlobStoreError(f"file open error: {name}", {"filename": name, "error": str(e)}) from e
