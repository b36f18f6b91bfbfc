from __future__ import annotations

import sys
from typing import List, Optional, Sequence, TextIO

from ir import CallGraph


def dependency_lines(callers: Sequence[str]) -> List[str]:
    """1-indexed caller listing, numbers right-aligned to the widest one, framed by blank lines."""
    width = len(str(len(callers)))
    lines = [""]
    for number, caller in enumerate(callers, start=1):
        lines.append(f"{number:>{width}}. {caller}")
    lines.append("")
    return lines


def print_dependencies(graph: CallGraph, name: str, out: Optional[TextIO] = None) -> bool:
    callers = graph.get(name)
    if not callers:
        return False
    stream = out or sys.stdout
    for line in dependency_lines(callers):
        print(line, file=stream)
    return True
