from __future__ import annotations

import sys
from typing import Iterator, List, Optional, Sequence, TextIO, Tuple

from ir import CallGraph

ENTER = "->"
LEAVE = "<-"
PLACEHOLDER = "..."
INDENT = 2

# (level, marker, name)
Event = Tuple[int, str, str]


def walk_call_sequence(graph: CallGraph, name: str, max_depth: int) -> Iterator[Event]:
    """Depth-first enter/leave events for the callees of `name`.

    Nodes are expanded while fewer than `max_depth` levels lie above them, so
    nothing deeper than `max_depth` below `name` is emitted. A node without
    recorded callees gets a placeholder child. Direct self-calls are skipped;
    longer cycles are only bounded by `max_depth`.
    """
    if max_depth < 1:
        raise ValueError(f"max_depth must be a positive integer, got {max_depth}")
    return _walk(graph, name, max_depth)


def _walk(graph: CallGraph, root: str, max_depth: int) -> Iterator[Event]:
    yield from _open(graph, root, 0)
    stack = [(root, 0, _callees(graph, root, max_depth), max_depth)]
    while stack:
        node, level, callees, remaining = stack[-1]
        callee = next(callees, None)
        if callee is None:
            stack.pop()
            yield level, LEAVE, node
            continue
        if callee == node:
            continue
        yield from _open(graph, callee, level + 1)
        stack.append((callee, level + 1, _callees(graph, callee, remaining - 1), remaining - 1))


def _open(graph: CallGraph, node: str, level: int) -> Iterator[Event]:
    yield level, ENTER, node
    if not graph.get(node):
        yield level + 1, ENTER, PLACEHOLDER
        yield level + 1, LEAVE, PLACEHOLDER


def _callees(graph: CallGraph, node: str, remaining: int) -> Iterator[str]:
    callees: Sequence[str] = graph.get(node) or ()
    if remaining <= 0:
        return iter(())
    return iter(callees)


def format_event(event: Event) -> str:
    level, marker, name = event
    return f"{' ' * (level * INDENT)}{marker} {name}"


def call_sequence_lines(graph: CallGraph, name: str, max_depth: int) -> List[str]:
    return [format_event(event) for event in walk_call_sequence(graph, name, max_depth)]


def print_call_sequence(
    graph: CallGraph, name: str, max_depth: int, out: Optional[TextIO] = None
) -> None:
    lines = call_sequence_lines(graph, name, max_depth)
    stream = out or sys.stdout
    for line in lines:
        print(line, file=stream)
