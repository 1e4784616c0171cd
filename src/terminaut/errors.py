"""
Error handling types.

Gateway and launcher operations raise one of the ``CoreError`` subclasses;
none of them are retryable. Flows that collect failures instead of raising
(config loading, session fetches) use ``Result`` + ``Error``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorType(Enum):
    BINARY_NOT_FOUND = "binary_not_found"
    COMMAND_FAILED = "command_failed"
    DECODE_FAILED = "decode_failed"
    TIMEOUT = "timeout"
    FILE_NOT_FOUND = "file_not_found"
    PARSE_ERROR = "parse_error"


# =============================================================================
# Exceptions
# =============================================================================


class CoreError(Exception):
    """Base class for every gateway and automation failure."""

    error_type: ErrorType = ErrorType.COMMAND_FAILED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_error(self, **context) -> Error:
        return Error(
            error_type=self.error_type,
            message=self.message,
            context=context,
            original_exception=self,
        )


class BinaryNotFound(CoreError):
    """No discovery candidate resolved to an executable core binary."""

    error_type = ErrorType.BINARY_NOT_FOUND

    def __init__(self, searched: list[str] | None = None):
        self.searched = list(searched or [])
        super().__init__(
            "Unable to locate term-core-cli. "
            "Build it with `cargo build -p term-core-cli`."
        )


class CommandFailed(CoreError):
    """An external process exited nonzero (or could not be spawned).

    Filesystem failures in the fallback gateway are folded into this kind
    too, with ``source="filesystem"``.
    """

    error_type = ErrorType.COMMAND_FAILED
    default_source = "term-core-cli"

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source or self.default_source

    def __str__(self) -> str:
        return f"{self.source} failed: {self.message}"


class AutomationFailed(CommandFailed):
    """The automation interpreter rejected or failed to run a script."""

    default_source = "osascript"


class DecodeFailed(CoreError):
    """The core exited zero but its output did not have the expected shape."""

    error_type = ErrorType.DECODE_FAILED

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__("Failed to decode data from term-core-cli.")

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message


class CommandTimeout(CoreError):
    """A child process exceeded the configured timeout and was killed."""

    error_type = ErrorType.TIMEOUT

    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(f"Process timed out after {seconds:g}s")


# =============================================================================
# Result
# =============================================================================


@dataclass
class Error:
    error_type: ErrorType
    message: str
    context: dict = field(default_factory=dict)
    original_exception: Exception | None = None


@dataclass
class Result(Generic[T]):
    success: bool
    value: T | None = None
    error: Error | None = None

    @staticmethod
    def ok(value: T) -> Result[T]:
        return Result(success=True, value=value)

    @staticmethod
    def err(error: Error) -> Result[T]:
        return Result(success=False, error=error)

    def is_ok(self) -> bool:
        return self.success

    def is_err(self) -> bool:
        return not self.success

