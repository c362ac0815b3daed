"""Newline-delimited JSON format (one record per line)."""

import json
from collections.abc import Sequence
from typing import Any, BinaryIO, TextIO

from each.core.exceptions import DecodeError, EncodeError
from each.core.protocols import Record
from each.formats.json_ import UTF8_BOM, first_significant_byte


class NdjsonFormat:
    """One JSON object per line"""

    id = "ndjson"
    extensions = frozenset({"ndjson", "jsonl"})

    def configure(self, **options: Any) -> None:
        pass

    def looks_like_header(self, prefix: bytes) -> bool:
        if first_significant_byte(prefix) != b"{":
            return False

        # A first line cut off by the prefix is judged on its opening brace alone.
        if prefix.startswith(UTF8_BOM):
            prefix = prefix[len(UTF8_BOM):]
        first_line, newline, _ = prefix.lstrip(b" \t\r\n").partition(b"\n")
        if not newline:
            return True
        try:
            return isinstance(json.loads(first_line), dict)
        except ValueError:
            return False

    def decode(self, stream: BinaryIO) -> list[Record]:
        try:
            text = stream.read().decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DecodeError(
                "NDJSON input is not valid UTF-8 text",
                format=self.id,
                reason=str(e),
            ) from e

        records: list[Record] = []
        # Only "\n" separates records; values may contain U+2028
        for line_number, line in enumerate(text.split("\n"), 1):
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise DecodeError(
                    "Invalid JSON line",
                    format=self.id,
                    line_number=line_number,
                    reason=e.msg,
                ) from e
        return records

    def encode(self, records: Sequence[Record], sink: TextIO) -> None:
        for index, record in enumerate(records):
            try:
                line = json.dumps(record, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise EncodeError(
                    "Record cannot be serialized as JSON",
                    format=self.id,
                    record=index,
                    reason=str(e),
                ) from e
            sink.write(line + "\n")
