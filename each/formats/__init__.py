"""Built-in record formats.

BUILTIN_FORMATS lists the formats in registration order, which is also the
priority order used when several formats claim the same input prefix:
JSON arrays first, then newline-delimited JSON objects, then delimited text.
"""

from each.formats.csv_ import CsvFormat, TsvFormat
from each.formats.json_ import JsonFormat
from each.formats.ndjson import NdjsonFormat

BUILTIN_FORMATS = (JsonFormat, NdjsonFormat, CsvFormat, TsvFormat)

DEFAULT_OUTPUT_FORMAT = JsonFormat.id

__all__ = [
    "BUILTIN_FORMATS",
    "DEFAULT_OUTPUT_FORMAT",
    "CsvFormat",
    "JsonFormat",
    "NdjsonFormat",
    "TsvFormat",
]
