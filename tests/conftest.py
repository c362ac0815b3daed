"""Shared test fixtures and Hypothesis strategies for each tests."""

import io
import logging
from pathlib import Path

import pytest
from hypothesis import strategies as st
from hypothesis.strategies import composite

from each.cli.registry import FORMATS, load_formats

RESOURCES = Path(__file__).parent / "resources"

# Any printable text; line breaks are mixed in separately
CELL_ALPHABET = st.characters(blacklist_categories=("Cs", "Cc"))

CELL_TEXT = st.lists(
    st.text(alphabet=CELL_ALPHABET, max_size=8) | st.sampled_from(["\n", "\r\n", "\t"]),
    max_size=4,
).map("".join)

FIELD_ALPHABET = st.characters(whitelist_categories=("Lu", "Ll", "Nd"), whitelist_characters="_")

csv_dialects = st.fixed_dictionaries(
    {
        "csv_delimiter": st.sampled_from([",", ";", "|", "\\t"]),
        "csv_quote": st.sampled_from(['"', "'"]),
        "csv_escape": st.none() | st.sampled_from(["\\", "^"]),
    }
)
"""Dialect options as given on the command line (``\\t`` means a tab)."""


@composite
def tabular_records(draw: st.DrawFn) -> list[dict[str, str]]:
    """Generate records that share one field set and hold string values.

    This strategy generates:
    - 1 to 4 unique, non-empty identifier-like field names
    - 1 to 10 records, each with a value for every field
    - Values with any printable text, including empty strings, quotes,
      delimiters, tabs and embedded line breaks

    Returns:
        List of dictionaries with identical key order

    Example:
        >>> from hypothesis import given
        >>> @given(tabular_records())
        ... def test_something(records):
        ...     assert all(list(r) == list(records[0]) for r in records)
    """
    fields = draw(
        st.lists(
            st.text(alphabet=FIELD_ALPHABET, min_size=1, max_size=12),
            min_size=1,
            max_size=4,
            unique=True,
        )
    )
    size = draw(st.integers(min_value=1, max_value=10))
    return [{name: draw(CELL_TEXT) for name in fields} for _ in range(size)]


json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=20),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=8), children, max_size=4),
    max_leaves=10,
)
"""JSON-compatible values (no floats, so equality is exact)."""


class ChunkedSource:
    """Binary source returning at most a fixed number of bytes per read.

    Mimics pipes, which hand out whatever is available rather than the full
    amount requested.
    """

    def __init__(self, data: bytes, chunk: int) -> None:
        self._stream = io.BytesIO(data)
        self.chunk = chunk
        self.reads = 0

    def read(self, size: int = -1) -> bytes:
        self.reads += 1
        if size < 0:
            size = self.chunk
        return self._stream.read(min(size, self.chunk))


@pytest.fixture
def registry():
    """Built-in formats with default options, in priority order."""
    return load_formats()


@pytest.fixture
def restore_formats():
    """Restore the format registry after a test registers extra formats."""
    saved = dict(FORMATS)
    yield FORMATS
    FORMATS.clear()
    FORMATS.update(saved)


@pytest.fixture
def resources() -> Path:
    return RESOURCES


@pytest.fixture(autouse=True)
def reset_logging():
    """Remove handlers installed by configure_logging during a test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        # pytest's own capture handlers are subclasses and left alone
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
