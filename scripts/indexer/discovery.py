from __future__ import annotations

import os
import stat
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from .constants import EXCLUDE_DIRS, TCL_SUFFIX


class InputKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SKIPPED = "skipped"
    MISSING = "missing"
    SPECIAL = "special"


def has_foreign_suffix(path: Path) -> bool:
    suffix = path.suffix.lower()
    return bool(suffix) and suffix != TCL_SUFFIX


def is_tcl_file(path: Path) -> bool:
    return path.suffix.lower() == TCL_SUFFIX


def classify_input(path: Path) -> Tuple[InputKind, str]:
    """Classify a build argument. The string is the OS error text for MISSING."""
    try:
        mode = path.stat().st_mode
    except OSError as exc:
        if has_foreign_suffix(path):
            return InputKind.SKIPPED, ""
        return InputKind.MISSING, exc.strerror or str(exc)
    if stat.S_ISDIR(mode):
        return InputKind.DIRECTORY, ""
    if has_foreign_suffix(path):
        return InputKind.SKIPPED, ""
    if stat.S_ISREG(mode):
        return InputKind.FILE, ""
    return InputKind.SPECIAL, ""


def is_excluded_dir(name: str, exclude_dirs: Iterable[str]) -> bool:
    return name.startswith(".") or name in exclude_dirs


def tcl_files_in_directory(root: Path, exclude_dirs: Optional[Set[str]] = None) -> List[Path]:
    excluded = EXCLUDE_DIRS if exclude_dirs is None else exclude_dirs
    files: List[Path] = []
    for current, dirs, filenames in os.walk(root):
        dirs[:] = sorted(d for d in dirs if not is_excluded_dir(d, excluded))
        for filename in sorted(filenames):
            full = Path(current) / filename
            if full.is_symlink() or not is_tcl_file(full):
                continue
            files.append(full)
    return files
