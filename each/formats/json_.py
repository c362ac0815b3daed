"""JSON array format.

Input is a single top-level JSON array whose elements are the records.
Output is the same array pretty-printed with a two-space indent.
"""

import json
import logging
from collections.abc import Sequence
from typing import Any, BinaryIO, TextIO

from each.core.exceptions import DecodeError, EncodeError
from each.core.protocols import Record

logger = logging.getLogger(__name__)

UTF8_BOM = b"\xef\xbb\xbf"


def first_significant_byte(prefix: bytes) -> bytes:
    """Return the first non-whitespace byte of ``prefix``, skipping a UTF-8 BOM.

    Returns an empty bytes object if the prefix is blank.
    """
    if prefix.startswith(UTF8_BOM):
        prefix = prefix[len(UTF8_BOM):]
    return prefix.lstrip(b" \t\r\n")[:1]


class JsonFormat:
    """JSON array of records"""

    id = "json"
    extensions = frozenset({"json"})

    def configure(self, **options: Any) -> None:
        pass

    def looks_like_header(self, prefix: bytes) -> bool:
        return first_significant_byte(prefix) == b"["

    def decode(self, stream: BinaryIO) -> list[Record]:
        # json.loads detects UTF-8/16/32 and a leading BOM on bytes input
        data = stream.read()
        try:
            value = json.loads(data)
        except json.JSONDecodeError as e:
            raise DecodeError(
                "Invalid JSON input",
                format=self.id,
                line_number=e.lineno,
                reason=e.msg,
            ) from e
        except UnicodeDecodeError as e:
            raise DecodeError(
                "JSON input is not valid Unicode text",
                format=self.id,
                reason=str(e),
            ) from e

        if not isinstance(value, list):
            raise DecodeError(
                "JSON input must be an array of records",
                format=self.id,
                reason=f"top-level value is {type(value).__name__}",
            )

        logger.debug("Decoded %d JSON records", len(value))
        return value

    def encode(self, records: Sequence[Record], sink: TextIO) -> None:
        try:
            text = json.dumps(list(records), indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise EncodeError(
                "Records cannot be serialized as JSON",
                format=self.id,
                reason=str(e),
            ) from e
        sink.write(text)
        sink.write("\n")
