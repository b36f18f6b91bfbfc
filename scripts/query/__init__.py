from .call_sequence import (
    ENTER,
    LEAVE,
    PLACEHOLDER,
    call_sequence_lines,
    format_event,
    print_call_sequence,
    walk_call_sequence,
)
from .dependencies import dependency_lines, print_dependencies
from .procedures import no_info_message, procedure_lines, query_procedure

__all__ = [name for name in globals().keys() if not name.startswith("_")]
