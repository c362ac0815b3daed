"""Delimited text formats (CSV and TSV).

The first row of the stream is always the header. Records are dictionaries
mapping header names to cell strings, in column order. A data row whose
field count differs from the header's is rejected rather than padded or
truncated.

Output goes through a polars DataFrame of string columns so quoting follows
the same rules regardless of the record contents. When an escape character
is configured the csv module writes instead, with the dialect used to read.
"""

import csv
import io
import json
import logging
from collections.abc import Sequence
from typing import Any, BinaryIO, TextIO

import polars as pl

from each.core.exceptions import DecodeError, EncodeError, UsageError
from each.core.protocols import Record

logger = logging.getLogger(__name__)


def single_byte_char(value: str, option: str) -> str:
    """Validate a dialect character given on the command line.

    The first character is used; the two-character sequence ``\\t`` is read
    as a tab so it can be typed without shell quoting tricks.

    Args:
        value: Raw option value
        option: Option name for error messages (e.g. "--csv-delimiter")

    Returns:
        The single dialect character

    Raises:
        UsageError: If the value is empty or its first character is not a
                   single byte in UTF-8
    """
    if value == "\\t":
        return "\t"
    if not value:
        raise UsageError("Invalid char, need at least one character", option=option)

    first = value[0]
    if len(first.encode("utf-8")) != 1:
        raise UsageError(
            f"Invalid char, first character must be single byte: {first!r}",
            option=option,
        )
    return first


def cell_text(value: Any) -> str | None:
    """Render a record value as a CSV cell; None stays a null (an empty cell)."""
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _non_empty_rows(reader):
    # csv.reader yields [] for blank lines
    return (row for row in reader if row)


class CsvFormat:
    """Comma-separated values with a header row"""

    id = "csv"
    extensions = frozenset({"csv"})
    default_delimiter = ","

    def __init__(self) -> None:
        self.delimiter = self.default_delimiter
        self.quote = '"'
        self.escape: str | None = None

    def configure(
        self,
        csv_delimiter: str | None = None,
        csv_quote: str | None = None,
        csv_escape: str | None = None,
        **options: Any,
    ) -> None:
        if csv_delimiter is not None:
            self.delimiter = single_byte_char(csv_delimiter, "--csv-delimiter")
        if csv_quote is not None:
            self.quote = single_byte_char(csv_quote, "--csv-quote")
        if csv_escape is not None:
            self.escape = single_byte_char(csv_escape, "--csv-escape")

    def _dialect(self) -> dict[str, Any]:
        return {
            "delimiter": self.delimiter,
            "quotechar": self.quote,
            "escapechar": self.escape,
            "doublequote": self.escape is None,
        }

    def looks_like_header(self, prefix: bytes) -> bool:
        # A multi-byte character split by the prefix boundary is dropped.
        text = prefix.decode("utf-8", errors="ignore").lstrip("\ufeff")

        # Ignore a trailing partial line when a header and a full row remain.
        if not text.endswith(("\n", "\r")):
            head, sep, _ = text.rpartition("\n")
            if "\n" in head:
                text = head + sep

        rows = _non_empty_rows(csv.reader(io.StringIO(text, newline=""), **self._dialect()))
        try:
            header = next(rows, None)
            first = next(rows, None)
        except csv.Error:
            return False

        return header is not None and first is not None and len(first) == len(header)

    def decode(self, stream: BinaryIO) -> list[Record]:
        try:
            text = stream.read().decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DecodeError(
                f"{self.id.upper()} input is not valid UTF-8 text",
                format=self.id,
                reason=str(e),
            ) from e

        reader = csv.reader(io.StringIO(text, newline=""), **self._dialect())
        rows = _non_empty_rows(reader)
        records: list[Record] = []
        try:
            header = next(rows, None)
            if header is None:
                raise DecodeError("Header row is empty", format=self.id)

            for index, row in enumerate(rows):
                if len(row) != len(header):
                    raise DecodeError(
                        f"Row {index} has {len(row)} fields but the header has {len(header)}",
                        format=self.id,
                        row=index,
                        line_number=reader.line_num,
                    )
                records.append(dict(zip(header, row)))
        except csv.Error as e:
            raise DecodeError(
                f"Invalid {self.id.upper()} input",
                format=self.id,
                line_number=reader.line_num,
                reason=str(e),
            ) from e

        logger.debug("Decoded %d %s rows with %d columns", len(records), self.id, len(header))
        return records

    def header_for(self, records: Sequence[Record]) -> list[str]:
        """Return the column order for ``records``, checking they share one field set.

        The first record's key order defines the header.

        Raises:
            EncodeError: If a record is not an object, or its fields differ
                        from the first record's
        """
        header: list[str] = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise EncodeError(
                    f"Data to write must be an object, received: {json.dumps(record)[:80]}",
                    format=self.id,
                    record=index,
                )
            if index == 0:
                header = list(record)
                if not header:
                    raise EncodeError("Records have no fields", format=self.id, record=0)
                continue
            if set(record) != set(header):
                missing = [name for name in header if name not in record]
                extra = [name for name in record if name not in header]
                raise EncodeError(
                    "Record fields differ from the header",
                    format=self.id,
                    record=index,
                    missing=missing,
                    extra=extra,
                )
        return header

    def encode(self, records: Sequence[Record], sink: TextIO) -> None:
        if not records:
            return

        header = self.header_for(records)
        if self.escape is not None:
            # polars only doubles quotes; an escape character needs the csv writer
            writer = csv.writer(sink, **self._dialect())
            writer.writerow(header)
            writer.writerows([cell_text(record[name]) for name in header] for record in records)
            return

        frame = pl.DataFrame(
            {name: [cell_text(record[name]) for record in records] for name in header},
            schema={name: pl.Utf8 for name in header},
        )
        sink.write(frame.write_csv(separator=self.delimiter, quote_char=self.quote))


class TsvFormat(CsvFormat):
    """Tab-separated values with a header row"""

    id = "tsv"
    extensions = frozenset({"tsv", "tab"})
    default_delimiter = "\t"

    def configure(self, csv_delimiter: str | None = None, **options: Any) -> None:
        super().configure(**options)
