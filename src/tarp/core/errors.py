"""Tarp error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Input (profile parsing and merging)
- 4xxx: Resolution (packages, source files)
- 5xxx: Annotation
- 9xxx: Internal

A coverage report is all-or-nothing: none of these errors are retryable and
every one of them aborts the run.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2003

    # Input (3xxx)
    INPUT_PARSE_ERROR = 3001
    MODE_CONFLICT = 3002
    BLOCK_MISMATCH = 3003

    # Resolution (4xxx)
    RESOLUTION_FAILED = 4001
    READ_FAILED = 4002

    # Annotation (5xxx)
    ANNOTATION_INCONSISTENT = 5001

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class TarpError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'MODE_CONFLICT')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(TarpError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class InputParseError(TarpError):
    """Malformed coverage profile."""

    @classmethod
    def bad_line(cls, path: str, line_no: int, reason: str) -> "InputParseError":
        return cls(
            code=ErrorCode.INPUT_PARSE_ERROR,
            message=f"{path}:{line_no}: {reason}",
            details={"path": path, "line": line_no, "reason": reason},
        )

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "InputParseError":
        return cls(
            code=ErrorCode.INPUT_PARSE_ERROR,
            message=f"Failed to read coverage profile {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class ModeConflictError(TarpError):
    """Same unit recorded under incompatible counting modes."""

    @classmethod
    def for_unit(cls, unit: str, existing: str, incoming: str) -> "ModeConflictError":
        return cls(
            code=ErrorCode.MODE_CONFLICT,
            message=f"Cannot merge {unit}: mode mismatch ({existing} vs {incoming})",
            details={"unit": unit, "existing_mode": existing, "incoming_mode": incoming},
        )


class BlockMismatchError(TarpError):
    """Merge target found but the incoming block has no exact counterpart."""

    @classmethod
    def for_block(cls, unit: str, block: str, reason: str) -> "BlockMismatchError":
        return cls(
            code=ErrorCode.BLOCK_MISMATCH,
            message=f"Cannot merge {unit}: block {block} {reason}",
            details={"unit": unit, "block": block, "reason": reason},
        )


class ResolutionError(TarpError):
    """A unit could not be mapped to a package or a source file."""

    @classmethod
    def unresolved(cls, unit: str, reason: str) -> "ResolutionError":
        return cls(
            code=ErrorCode.RESOLUTION_FAILED,
            message=f"Cannot resolve {unit}: {reason}",
            details={"unit": unit, "reason": reason},
        )


class ReadError(TarpError):
    """Backing source file could not be read."""

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "ReadError":
        return cls(
            code=ErrorCode.READ_FAILED,
            message=f"Can't read {path!r}: {reason}",
            details={"path": path, "reason": reason},
        )


class AnnotationConsistencyError(TarpError):
    """Boundary list is malformed (an internal bug, never user input)."""

    @classmethod
    def malformed(cls, reason: str, **details: Any) -> "AnnotationConsistencyError":
        return cls(
            code=ErrorCode.ANNOTATION_INCONSISTENT,
            message=f"Malformed coverage boundaries: {reason}",
            details=details,
        )


class InternalError(TarpError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
