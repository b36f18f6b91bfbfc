#!/usr/bin/env python3
"""dcgraph CLI: index TCL procedure calls and explore the call graph."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from _fs import workspace_root
from indexer import BuildAborted, BuildOptions, index_paths
from ir import CallIndex
from query import query_procedure
from store import IndexCorruptError, IndexNotFoundError, delete_index, read_index, write_index
from utils import Timer, progress, report
from .config import DEFAULT_MAX_DEPTH, color_enabled, positive_int, resolve_index_path

PROMPT = "\nEnter a procedure name (add -d at the end to print the dependencies): "

DESCRIPTION = (
    "dcgraph takes TCL code as input, parses it and extracts information "
    "regarding the procedure call dependencies."
)

EPILOG = """\
By not providing -b and -f flags the program runs in interactive mode.
In that mode you can type a procedure name at each time and it will print the
call sequence for that procedure. By writing -d after the procedure name, the
program will print all the dependencies that the procedure has. That means it
will print all the procedure names that call directly the procedure we are
querying for.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dcgraph",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-b",
        dest="build",
        action="extend",
        nargs="+",
        metavar="PATH",
        help="Build an index from the given TCL files or directories (searched recursively)",
    )
    parser.add_argument(
        "-f",
        dest="procedures",
        action="extend",
        nargs="+",
        metavar="PROCEDURE_NAME",
        help="Query the call sequence for the specified procedure(s)",
    )
    parser.add_argument(
        "-d",
        dest="dependencies",
        action="store_true",
        help="Print the dependencies (direct callers) of the procedures instead of the call sequence",
    )
    parser.add_argument(
        "--max-depth",
        type=positive_int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Maximum depth of the printed call sequence. Must be positive (default: {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument(
        "--delete-index", action="store_true", help="Delete the index file, if any, and exit"
    )
    parser.add_argument(
        "--index",
        default=None,
        help="Index file location (default: $DCGRAPH_INDEX or workspace/dcgraph/index.dcg)",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Skip unusable build inputs without asking",
    )
    parser.add_argument(
        "--timing", action="store_true", help="Show timing breakdown of operations"
    )
    parser.add_argument(
        "--color",
        choices=["auto", "always", "never"],
        default="auto",
        help="Highlight query output (default: auto)",
    )
    return parser


def split_interactive_line(line: str) -> Tuple[str, bool]:
    words = line.split()
    if not words:
        return "", False
    return words[0], len(words) > 1 and words[-1] == "-d"


def run_delete(index_path: Path) -> int:
    if delete_index(index_path):
        report("Deleted index file.")
    return 0


def run_build(args: argparse.Namespace, index_path: Path, timer: Timer) -> int:
    options = BuildOptions(assume_yes=args.yes)
    timer.start("parse")
    try:
        result = index_paths(args.build, options)
    except BuildAborted as exc:
        report(str(exc))
        return 1
    finally:
        timer.stop("parse")
    for line in result.stats.summary_lines():
        report(line)
    if result.warnings:
        report(f"Problems reported during the build: {len(result.warnings)}")

    progress("Building and writing index...")
    timer.start("write_index")
    try:
        write_index(result.index, index_path)
    except OSError as exc:
        report(f"Could not write index {index_path}: {exc}")
        return 1
    finally:
        timer.stop("write_index")
    progress(f"Index written to {index_path}", done=True)
    return 0


def load_index(index_path: Path, timer: Timer) -> Optional[CallIndex]:
    progress("Reading index...")
    timer.start("read_index")
    try:
        return read_index(index_path)
    except IndexNotFoundError as exc:
        report(str(exc))
    except IndexCorruptError as exc:
        report(f"The index is unusable ({exc}). Rebuild it with: dcgraph -b PATH...")
    except OSError as exc:
        report(f"Could not read index {index_path}: {exc}")
    finally:
        timer.stop("read_index")
    return None


def run_query(
    index: CallIndex,
    procedures: List[str],
    *,
    dependencies: bool,
    max_depth: int,
    color: bool,
    out: TextIO,
) -> int:
    for name in procedures:
        query_procedure(
            index,
            name,
            dependencies=dependencies,
            max_depth=max_depth,
            out=out,
            color=color,
        )
    return 0


def run_interactive(
    index: CallIndex,
    *,
    max_depth: int,
    color: bool,
    stdin: TextIO,
    out: TextIO,
) -> int:
    while True:
        out.write(PROMPT)
        out.flush()
        try:
            line = stdin.readline()
        except KeyboardInterrupt:
            out.write("\n")
            return 0
        if not line:
            out.write("\n")
            return 0
        name, dependencies = split_interactive_line(line)
        if not name:
            continue
        if not dependencies:
            out.write("\n")
        query_procedure(
            index,
            name,
            dependencies=dependencies,
            max_depth=max_depth,
            out=out,
            color=color,
        )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    index_path = resolve_index_path(args.index, workspace_root=workspace_root())

    if args.delete_index:
        return run_delete(index_path)

    timer = Timer(enabled=args.timing)
    try:
        if args.build:
            return run_build(args, index_path, timer)
        index = load_index(index_path, timer)
        if index is None:
            return 1
        color = color_enabled(args.color, sys.stdout)
        if args.procedures:
            return run_query(
                index,
                args.procedures,
                dependencies=args.dependencies,
                max_depth=args.max_depth,
                color=color,
                out=sys.stdout,
            )
        return run_interactive(
            index,
            max_depth=args.max_depth,
            color=color,
            stdin=sys.stdin,
            out=sys.stdout,
        )
    finally:
        timer.emit()


if __name__ == "__main__":
    raise SystemExit(main())
