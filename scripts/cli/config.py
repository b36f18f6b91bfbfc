from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Mapping, Optional, TextIO

from _fs import INDEX_FILE_NAME

DEFAULT_MAX_DEPTH = 5
INDEX_ENV_VAR = "DCGRAPH_INDEX"


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        number = 0
    if number <= 0:
        raise argparse.ArgumentTypeError(
            f"You must provide a positive number as the max depth (got {value!r})"
        )
    return number


def resolve_index_path(
    index_arg: Optional[str],
    *,
    workspace_root: Path,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    env = os.environ if environ is None else environ
    value = index_arg or env.get(INDEX_ENV_VAR)
    if value:
        return Path(value).expanduser()
    return workspace_root / "dcgraph" / INDEX_FILE_NAME


def color_enabled(mode: str, stream: TextIO) -> bool:
    if mode == "always":
        return True
    if mode == "never":
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())
