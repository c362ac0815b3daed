"""Terminal interaction for CLI operations.

This module provides:
- configure_logging: stderr (and optional file) logging for a run
- handle_error: Formatted error messages with context and optional stack traces
- TerminalConfirm: yes/no prompts for interactive mode
"""

import logging
import sys
import traceback
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.prompt import Confirm
from rich.text import Text

from each.core.exceptions import InputError, UsageError

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

TERMINAL = "/dev/tty"


def configure_logging(level: str = "warning", log_file: Path | None = None) -> None:
    """Set up logging for one run.

    Log records go to stderr, and additionally to ``log_file`` when given.
    Calling this again replaces the handlers of the previous call.

    Args:
        level: Level name (debug, info, warning, error), case-insensitive
        log_file: Optional file to append log records to; parent
                  directories are created as needed

    Raises:
        UsageError: If the level name is unknown
        InputError: If the log file cannot be opened
    """
    try:
        numeric_level = LOG_LEVELS[level.lower()]
    except KeyError:
        raise UsageError(
            f"Unknown log level '{level}'. Available: {', '.join(LOG_LEVELS)}",
            option="--log-level",
        ) from None

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as e:
            raise InputError(
                f"Cannot open log file: {e.strerror or e}",
                path=str(log_file),
                reason=type(e).__name__,
            ) from e

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, handlers=handlers, force=True)


def handle_error(error: Exception, verbose: bool = False) -> None:
    """Format and display error message with context.

    Displays error messages to stderr with the context fields of EachError
    exceptions on their own lines. When verbose mode is enabled, also
    displays the full stack trace.

    Args:
        error: Exception to display
        verbose: Whether to show stack trace (default False)

    Example:
        try:
            # ... operation ...
        except EachError as e:
            handle_error(e, verbose=True)
    """
    message = getattr(error, "message", None) or str(error)
    print(f"Error: {message}", file=sys.stderr)

    context = getattr(error, "context", None)
    if context:
        print("Context:", file=sys.stderr)
        for key, value in context.items():
            print(f"  {key}: {value}", file=sys.stderr)

    if verbose:
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exception(type(error), error, error.__traceback__, file=sys.stderr)


def open_terminal() -> TextIO | None:
    """Return a stream to read answers from, or None to use stdin.

    When stdin carries the records, answers come from the controlling
    terminal instead.

    Raises:
        UsageError: If stdin is not a terminal and no terminal can be opened
    """
    if sys.stdin is not None and sys.stdin.isatty():
        return None
    try:
        return open(TERMINAL, encoding="utf-8")
    except OSError as e:
        raise UsageError(
            "Interactive mode needs a terminal to read answers from",
            option="--interactive",
            reason=str(e),
        ) from e


class TerminalConfirm:
    """Asks the operator to confirm each command.

    The question is written to stderr so stdout carries only command output.
    An empty answer means no.

    Example:
        >>> confirm = TerminalConfirm(open_terminal())
        >>> if confirm("rm old.txt"):
        ...     ...
    """

    def __init__(self, stream: TextIO | None = None, console: Console | None = None) -> None:
        self.stream = stream
        self.console = console or Console(stderr=True)

    def __call__(self, prompt: str) -> bool:
        try:
            return Confirm.ask(
                Text(prompt.rstrip("\n")),
                console=self.console,
                default=False,
                stream=self.stream,
            )
        except EOFError:
            return False

    def close(self) -> None:
        if self.stream is not None:
            self.stream.close()
