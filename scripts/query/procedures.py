from __future__ import annotations

import sys
from typing import List, Optional, TextIO

from ir import CallIndex
from utils import paint, report
from .call_sequence import call_sequence_lines
from .dependencies import dependency_lines


def no_info_message(index: CallIndex, name: str, *, dependencies: bool) -> str:
    if dependencies:
        if index.is_declared(name):
            return f'Procedure "{name}" is defined but nothing calls it'
        return f'There\'s no dependency info available for procedure "{name}"'
    if index.is_declared(name):
        return f'Procedure "{name}" is defined but calls no other procedures'
    return f'There\'s no info available for procedure "{name}"'


def procedure_lines(
    index: CallIndex,
    name: str,
    *,
    dependencies: bool,
    max_depth: int,
) -> Optional[List[str]]:
    """Output lines for one query, or None when the index holds nothing for `name`."""
    if max_depth < 1:
        raise ValueError(f"max_depth must be a positive integer, got {max_depth}")
    if dependencies:
        callers = index.callers.get(name)
        return dependency_lines(callers) if callers else None
    if name not in index.calls:
        return None
    return call_sequence_lines(index.calls, name, max_depth)


def query_procedure(
    index: CallIndex,
    name: str,
    *,
    dependencies: bool = False,
    max_depth: int = 5,
    out: Optional[TextIO] = None,
    color: bool = False,
) -> bool:
    lines = procedure_lines(index, name, dependencies=dependencies, max_depth=max_depth)
    if lines is None:
        report(no_info_message(index, name, dependencies=dependencies))
        return False
    stream = out or sys.stdout
    for line in lines:
        print(paint(line, color), file=stream)
    return True
