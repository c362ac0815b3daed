"""Protocol definitions for each format implementations.

This module defines the interface that every supported encoding (JSON,
NDJSON, CSV, ...) must implement. A Format is constructed once at startup,
configured from command line options before first use, and then shared
read-only for the remainder of the run.

All implementations must:
    - Report the file extensions they claim (lowercase, without the dot)
    - Answer whether a byte prefix looks like their encoding without raising
    - Decode a whole stream into an ordered list of records
    - Encode an ordered list of records, raising EncodeError when the
      records cannot be represented
"""

from collections.abc import Sequence
from typing import Any, BinaryIO, Protocol, TextIO

Record = Any
"""A JSON-like value: dict (key order preserved), list, str, number, bool or None."""


class Format(Protocol):
    """Protocol for record encodings.

    Example:
        >>> class LinesFormat:
        ...     id = "lines"
        ...     extensions = frozenset({"txt"})
        ...
        ...     def configure(self, **options: Any) -> None:
        ...         pass
        ...
        ...     def looks_like_header(self, prefix: bytes) -> bool:
        ...         return b"\\n" in prefix
        ...
        ...     def decode(self, stream: BinaryIO) -> list[Record]:
        ...         return [{"line": line} for line in stream.read().decode().splitlines()]
        ...
        ...     def encode(self, records: Sequence[Record], sink: TextIO) -> None:
        ...         sink.writelines(f"{r['line']}\\n" for r in records)
    """

    id: str
    """Registry id, as accepted by --format and --output-format."""

    extensions: frozenset[str]
    """Lowercase file extensions (without the dot) claimed by this format."""

    def configure(self, **options: Any) -> None:
        """Apply command line options before first use.

        Args:
            **options: All format options collected by the CLI; implementations
                      pick the ones they understand and ignore the rest

        Raises:
            UsageError: If an option value is invalid for this format
        """
        ...

    def looks_like_header(self, prefix: bytes) -> bool:
        """Return True if ``prefix`` looks like the start of this encoding.

        The prefix may be truncated anywhere, including mid-character. Garbage
        or truncated input is a plain False, never an exception.
        """
        ...

    def decode(self, stream: BinaryIO) -> list[Record]:
        """Decode a complete binary stream into an ordered list of records.

        Raises:
            DecodeError: If the stream is not valid for this encoding
        """
        ...

    def encode(self, records: Sequence[Record], sink: TextIO) -> None:
        """Write records to a text sink.

        Raises:
            EncodeError: If the records cannot be represented in this encoding
        """
        ...
