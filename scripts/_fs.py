"""Filesystem pattern helpers.

Rules:
- the index lives under workspace/ unless told otherwise
- artifacts are replaced wholesale, never updated in place
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

WORKSPACE_DIR = Path("workspace")
INDEX_FILE_NAME = "index.dcg"


def workspace_root() -> Path:
    return WORKSPACE_DIR


def _default_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_bytes_atomic(path: Path, data: bytes) -> Path:
    """Write `data` to `path` so readers see either the old file or the new one."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        # mkstemp creates 0600 files
        os.chmod(tmp_path, _default_file_mode())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            tmp_path.unlink()
        except OSError:
            pass
        raise
    return path


def remove_file(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
