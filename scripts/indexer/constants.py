from __future__ import annotations

TCL_SUFFIX = ".tcl"

EXCLUDE_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".code-state",
    "__pycache__",
    "node_modules",
    "workspace",
}

# Built-in commands and keywords. A command word in this table is never
# recorded as a call edge.
RESERVED_COMMANDS = frozenset(
    {
        "after",
        "append",
        "apply",
        "array",
        "binary",
        "break",
        "catch",
        "cd",
        "chan",
        "clock",
        "close",
        "concat",
        "continue",
        "coroutine",
        "dict",
        "else",
        "elseif",
        "encoding",
        "eof",
        "error",
        "eval",
        "exec",
        "exit",
        "expr",
        "fblocked",
        "fconfigure",
        "fcopy",
        "file",
        "fileevent",
        "flush",
        "for",
        "foreach",
        "format",
        "gets",
        "glob",
        "global",
        "if",
        "incr",
        "info",
        "interp",
        "join",
        "lappend",
        "lassign",
        "lindex",
        "linsert",
        "list",
        "llength",
        "lmap",
        "load",
        "lrange",
        "lrepeat",
        "lreplace",
        "lreverse",
        "lsearch",
        "lset",
        "lsort",
        "namespace",
        "open",
        "package",
        "pid",
        "proc",
        "puts",
        "pwd",
        "read",
        "regexp",
        "regsub",
        "rename",
        "return",
        "scan",
        "seek",
        "set",
        "socket",
        "source",
        "split",
        "string",
        "subst",
        "switch",
        "tailcall",
        "tell",
        "then",
        "throw",
        "time",
        "trace",
        "try",
        "unknown",
        "unset",
        "update",
        "uplevel",
        "upvar",
        "variable",
        "vwait",
        "while",
        "yield",
    }
)

# Built-ins whose arguments are not descended into at all.
OPAQUE_COMMANDS = frozenset({"eval"})
