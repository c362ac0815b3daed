"""Custom exception classes for each error handling.

This module defines the exception hierarchy for the each tool. The hierarchy
mirrors the three failure classes the CLI reports through its exit status:

- UsageError: bad command line input, unknown format ids, malformed templates
- DataError: undetectable formats, decode/encode violations, per-record
  render and execution failures
- InputError: filesystem and stream errors

All exceptions inherit from EachError for consistent error handling.
"""

from typing import Any


class EachError(Exception):
    """Base exception for all each errors.

    Provides a common base class for all custom exceptions, enabling
    catch-all error handling when needed.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error description
            context: Optional dictionary of contextual information (file paths,
                    row numbers, template slots, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        if not self.context:
            return self.message

        context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} [{context_str}]"


class UsageError(EachError):
    """Exception raised for invalid command line input.

    Usage errors are always detected before any record is processed: unknown
    format ids, invalid option values, malformed command templates.
    """

    def __init__(self, message: str, option: str | None = None, **extra_context: Any) -> None:
        context: dict[str, Any] = {}
        if option is not None:
            context["option"] = option
        context.update(extra_context)

        super().__init__(message, context)


class ConfigError(UsageError):
    """Configuration file error.

    Raised when configuration files cannot be loaded, parsed, or validated.
    """

    def __init__(self, message: str, config_path: str | None = None, **extra_context: Any) -> None:
        if config_path is not None:
            extra_context["config_path"] = config_path
        super().__init__(message, **extra_context)


class TemplateError(UsageError):
    """Exception raised when a command template fails to compile.

    Context typically includes:
        - slot: Which template failed ("argument 2", "stdin")
        - line_number: Line inside the template where the syntax error sits
    """

    def __init__(
        self,
        message: str,
        slot: str | None = None,
        line_number: int | None = None,
        **extra_context: Any,
    ) -> None:
        if slot is not None:
            extra_context["slot"] = slot
        if line_number is not None:
            extra_context["line_number"] = line_number
        super().__init__(message, **extra_context)


class DataError(EachError):
    """Exception raised when input data cannot be processed.

    Covers inputs whose format cannot be determined as well as the more
    specific decode, encode, render and execution failures below.
    """

    def __init__(self, message: str, source: str | None = None, **extra_context: Any) -> None:
        context: dict[str, Any] = {}
        if source is not None:
            context["source"] = source
        context.update(extra_context)

        super().__init__(message, context)


class DecodeError(DataError):
    """Exception raised when an input stream cannot be decoded into records.

    Context typically includes:
        - format: Id of the format that failed
        - row: 0-based data row index, same as the record index (header excluded)
        - line_number: Line in the input where decoding failed
        - reason: Underlying parser message
    """

    def __init__(
        self,
        message: str,
        format: str | None = None,
        row: int | None = None,
        line_number: int | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        if format is not None:
            extra_context["format"] = format
        if row is not None:
            extra_context["row"] = row
        if line_number is not None:
            extra_context["line_number"] = line_number
        if reason is not None:
            extra_context["reason"] = reason
        super().__init__(message, **extra_context)


class EncodeError(DataError):
    """Exception raised when records cannot be written in the target format.

    Context typically includes:
        - format: Id of the target format
        - record: 0-based index of the offending record
        - reason: Specific reason for the serialization failure
    """

    def __init__(
        self,
        message: str,
        format: str | None = None,
        record: int | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        if format is not None:
            extra_context["format"] = format
        if record is not None:
            extra_context["record"] = record
        if reason is not None:
            extra_context["reason"] = reason
        super().__init__(message, **extra_context)


class RenderError(DataError):
    """Exception raised when a compiled template cannot be rendered for a record.

    Context typically includes:
        - slot: Which template failed ("argument 1", "stdin")
        - record: 0-based index of the record being rendered
        - reason: Template engine message (usually a missing field)
    """

    def __init__(
        self,
        message: str,
        slot: str | None = None,
        record: int | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        if slot is not None:
            extra_context["slot"] = slot
        if record is not None:
            extra_context["record"] = record
        if reason is not None:
            extra_context["reason"] = reason
        super().__init__(message, **extra_context)


class ExecutionError(DataError):
    """Exception raised when a rendered command fails to run.

    Context typically includes:
        - program: Program that was launched
        - returncode: Exit status of the process (absent if it never started)
        - record: 0-based index of the record the command was rendered from
        - reason: OS error message for launch failures
    """

    def __init__(
        self,
        message: str,
        program: str | None = None,
        returncode: int | None = None,
        record: int | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        if program is not None:
            extra_context["program"] = program
        if returncode is not None:
            extra_context["returncode"] = returncode
        if record is not None:
            extra_context["record"] = record
        if reason is not None:
            extra_context["reason"] = reason
        super().__init__(message, **extra_context)


class InputError(EachError):
    """Exception raised when an input or output stream cannot be accessed.

    Context typically includes:
        - path: Path of the file that could not be opened or read
        - reason: OS error message
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if path is not None:
            context["path"] = path
        if reason is not None:
            context["reason"] = reason
        context.update(extra_context)

        super().__init__(message, context)


class ReplayError(EachError):
    """Exception raised when a replay buffer can no longer rewind.

    Raised by ReplayBuffer.rewind() once bytes have been handed out that
    were not retained, so replaying from byte 0 is impossible.
    """
