from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set

from ir import CallIndex, GraphBuilder
from utils import confirm, progress, report, warn
from .constants import EXCLUDE_DIRS
from .discovery import InputKind, classify_input, tcl_files_in_directory
from .lexer import TclSyntaxError
from .scanner import ScanResult, scan_source


@dataclass
class BuildOptions:
    assume_yes: bool = False
    exclude_dirs: Set[str] = field(default_factory=lambda: set(EXCLUDE_DIRS))


@dataclass
class ParseStats:
    files_parsed: int = 0
    files_failed: int = 0
    inputs_skipped: int = 0
    procedures: int = 0
    edges: int = 0

    def summary_lines(self) -> List[str]:
        return [
            f"Number of TCL files parsed: {self.files_parsed}",
            f"Files skipped after errors: {self.files_failed}",
            f"Inputs skipped: {self.inputs_skipped}",
            f"Procedures declared: {self.procedures}",
            f"Call edges: {self.edges}",
        ]


@dataclass
class BuildResult:
    index: CallIndex
    stats: ParseStats
    warnings: List[str]


class BuildAborted(Exception):
    def __init__(self, path: str) -> None:
        super().__init__(f"Aborted while handling {path}")
        self.path = path


class IndexBuilder:
    """Merges per-file scan results into the forward and reverse call graphs."""

    def __init__(self) -> None:
        self.calls = GraphBuilder()
        self.callers = GraphBuilder()
        self._declared: Dict[str, None] = {}

    def add_edge(self, caller: str, callee: str) -> None:
        self.calls.add(caller, callee)
        self.callers.add(callee, caller)

    def add_scan(self, result: ScanResult, stats: Optional[ParseStats] = None) -> None:
        # Redefinitions append: a procedure declared in two files keeps both edge lists.
        for name in result.declared:
            self._declared.setdefault(name, None)
        for caller, callee in result.edges:
            self.add_edge(caller, callee)
        if stats is not None:
            stats.files_parsed += 1
            stats.procedures += len(result.declared)
            stats.edges += len(result.edges)

    def build(self) -> CallIndex:
        return CallIndex(calls=self.calls, callers=self.callers, declared=tuple(self._declared))


def read_source(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def scan_file(path: Path, display: Optional[str] = None) -> ScanResult:
    return scan_source(read_source(path), display or path.as_posix())


def _index_file(
    builder: IndexBuilder,
    path: Path,
    stats: ParseStats,
    warnings: List[str],
) -> bool:
    display = path.as_posix()
    try:
        result = scan_file(path, display)
    except OSError as exc:
        message = f"Could not read {display}: {exc.strerror or exc}; file skipped"
    except TclSyntaxError as exc:
        message = f"{display}:{exc.line}: {exc.reason}; file skipped"
    except RecursionError:
        message = f"{display}: nesting too deep; file skipped"
    else:
        builder.add_scan(result, stats)
        return True
    stats.files_failed += 1
    warnings.append(message)
    warn(message)
    return False


def _skip_or_abort(
    raw: str,
    message: str,
    options: BuildOptions,
    ask: Callable[[str], bool],
    warnings: List[str],
) -> None:
    report(message)
    warnings.append(message)
    if options.assume_yes or ask("Do you want to continue and skip this file?"):
        return
    raise BuildAborted(raw)


def index_paths(
    paths: Sequence[str],
    options: Optional[BuildOptions] = None,
    *,
    ask: Callable[[str], bool] = confirm,
) -> BuildResult:
    """Scan every TCL file named by `paths` (files or directories, recursively).

    Files that cannot be read or do not lex are reported and skipped. A build
    argument that does not exist, or is neither a regular file nor a directory,
    is put to the operator through `ask`; declining raises BuildAborted.
    """
    options = options or BuildOptions()
    builder = IndexBuilder()
    stats = ParseStats()
    warnings: List[str] = []
    progress("Parsing tcl files...")
    for raw in paths:
        path = Path(raw)
        kind, reason = classify_input(path)
        if kind is InputKind.SKIPPED:
            stats.inputs_skipped += 1
        elif kind is InputKind.MISSING:
            stats.inputs_skipped += 1
            _skip_or_abort(raw, f"Error while getting file's ({raw}) type: {reason}", options, ask, warnings)
        elif kind is InputKind.SPECIAL:
            stats.inputs_skipped += 1
            _skip_or_abort(raw, f'File "{raw}" isn\'t a regular file or a directory.', options, ask, warnings)
        elif kind is InputKind.FILE:
            _index_file(builder, path, stats, warnings)
        else:
            for tcl_file in tcl_files_in_directory(path, options.exclude_dirs):
                _index_file(builder, tcl_file, stats, warnings)
    progress(f"Parsed {stats.files_parsed} TCL files", done=True)
    return BuildResult(index=builder.build(), stats=stats, warnings=warnings)
