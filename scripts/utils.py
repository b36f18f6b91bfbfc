from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, TextIO


def progress(message: str, done: bool = False) -> None:
    """Print a progress message to stderr (doesn't interfere with stdout output)."""
    if done:
        print(f"  [done] {message}", file=sys.stderr)
    else:
        print(f"  [....] {message}", file=sys.stderr)


RED = "\033[1;31m"
RESET = "\033[0m"


def paint(text: str, enabled: bool, color: str = RED) -> str:
    if not enabled or not text:
        return text
    return f"{color}{text}{RESET}"


def report(message: str) -> None:
    print(message, file=sys.stderr)


def warn(message: str) -> None:
    print(f"  [warn] {message}", file=sys.stderr)


def confirm(
    question: str,
    *,
    default: bool = False,
    reader: Optional[Callable[[str], str]] = None,
) -> bool:
    """Ask a yes/no question on stderr. EOF or an empty answer picks `default`."""
    suffix = " [Y/n] " if default else " [y/N] "
    print(question + suffix, end="", file=sys.stderr, flush=True)
    read = reader or (lambda _prompt: sys.stdin.readline())
    try:
        answer = read(question)
    except (EOFError, KeyboardInterrupt):
        print(file=sys.stderr)
        return default
    if not answer:
        print(file=sys.stderr)
        return default
    answer = answer.strip().lower()
    if not answer:
        return default
    return answer in {"y", "yes"}


@dataclass
class Timer:
    enabled: bool = False
    stages: Dict[str, float] = field(default_factory=dict)
    _started: Dict[str, float] = field(default_factory=dict)

    def start(self, stage: str) -> None:
        if self.enabled:
            self._started[stage] = time.time()

    def stop(self, stage: str) -> None:
        if not self.enabled or stage not in self._started:
            return
        self.stages[stage] = self.stages.get(stage, 0.0) + time.time() - self._started.pop(stage)

    def lines(self) -> List[str]:
        if not self.stages:
            return []
        total = sum(self.stages.values())
        lines = ["[TIMING]", f"  Total: {total:.2f}s"]
        for stage, stage_time in self.stages.items():
            percent = (stage_time / total * 100) if total > 0 else 0.0
            lines.append(f"  {stage}: {stage_time:.2f}s ({percent:.1f}%)")
        return lines

    def emit(self, stream: Optional[TextIO] = None) -> None:
        for line in self.lines():
            print(line, file=stream or sys.stderr)
