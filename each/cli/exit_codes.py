"""Exit code constants for CLI commands.

This module defines the exit status classes of the each command. They follow
the BSD sysexits convention so calling scripts can branch on the failure
category.

Exit codes:
    0: SUCCESS - Operation completed successfully
    1: UNEXPECTED_ERROR - Unexpected/unhandled exception
    64: USAGE_ERROR - Bad command line input, unknown format, malformed template
    65: DATA_ERROR - Undetectable format, decode/encode or per-record failure
    74: IO_ERROR - Input or output file could not be opened, read or written
"""


class ExitCode:
    """Standard exit codes for CLI commands.

    Example:
        >>> from each.cli.exit_codes import ExitCode
        >>> import sys
        >>>
        >>> try:
        ...     # ... operation ...
        ...     sys.exit(ExitCode.SUCCESS)
        ... except DataError:
        ...     sys.exit(ExitCode.DATA_ERROR)
    """

    SUCCESS = 0
    """Operation completed successfully."""

    UNEXPECTED_ERROR = 1
    """Unexpected or unhandled exception occurred."""

    USAGE_ERROR = 64
    """Command line usage error (EX_USAGE)."""

    DATA_ERROR = 65
    """Input data was incorrect in some way (EX_DATAERR)."""

    IO_ERROR = 74
    """An error occurred while doing I/O on a file (EX_IOERR)."""
