"""Core module exports."""

from tarp.core.errors import (
    AnnotationConsistencyError,
    BlockMismatchError,
    ConfigError,
    ErrorCode,
    InputParseError,
    InternalError,
    ModeConflictError,
    ReadError,
    ResolutionError,
    TarpError,
)
from tarp.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    run_scope,
    set_run_id,
)

__all__ = [
    # Errors
    "AnnotationConsistencyError",
    "BlockMismatchError",
    "ConfigError",
    "ErrorCode",
    "InputParseError",
    "InternalError",
    "ModeConflictError",
    "ReadError",
    "ResolutionError",
    "TarpError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "run_scope",
    "set_run_id",
]
