from __future__ import annotations

from .constants import EXCLUDE_DIRS, OPAQUE_COMMANDS, RESERVED_COMMANDS, TCL_SUFFIX
from .discovery import (
    InputKind,
    classify_input,
    has_foreign_suffix,
    is_tcl_file,
    tcl_files_in_directory,
)
from .lexer import (
    TclSyntaxError,
    Token,
    TokenKind,
    bracket_substitutions,
    tokenize,
)
from .scanner import (
    ProcedureScanner,
    ScanResult,
    command_name,
    file_scope_name,
    scan_source,
)


from .core import (
    BuildAborted,
    BuildOptions,
    BuildResult,
    IndexBuilder,
    ParseStats,
    index_paths,
    read_source,
    scan_file,
)
