"""Tests for format resolution.

This module tests how the format of one input is chosen:
- Explicit ids win and unknown ids are usage errors
- Extensions are matched case-insensitively in priority order
- Content sniffing goes through the replay buffer and leaves it rewound
"""

import io

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from each.cli.registry import load_formats
from each.core.exceptions import UsageError
from each.core.matcher import lookup, match_extension, normalize_extension, resolve, sniff
from each.core.replay import ReplayBuffer


def buffer_of(data: bytes) -> ReplayBuffer:
    return ReplayBuffer(io.BytesIO(data))


class BrokenFormat:
    """Format whose header check always raises."""

    id = "broken"
    extensions = frozenset()

    def looks_like_header(self, prefix: bytes) -> bool:
        raise RuntimeError("boom")


class TestLookup:
    """Tests for explicit format ids."""

    def test_known_id(self, registry) -> None:
        assert lookup("tsv", registry).id == "tsv"

    def test_unknown_id_lists_available(self, registry) -> None:
        with pytest.raises(UsageError) as exc_info:
            lookup("xml", registry)

        error = exc_info.value
        assert "Unknown format 'xml'" in error.message
        assert "Available: json, ndjson, csv, tsv" in error.message
        assert error.context["option"] == "--format"

    def test_option_name_in_context(self, registry) -> None:
        with pytest.raises(UsageError) as exc_info:
            lookup("xml", registry, option="--output-format")
        assert exc_info.value.context["option"] == "--output-format"


class TestExtensions:
    """Tests for extension matching."""

    @pytest.mark.parametrize(
        ("extension", "expected"),
        [(".csv", "csv"), ("CSV", "csv"), (".jsonl", "ndjson"), (".tab", "tsv"), (".JSON", "json")],
    )
    def test_match(self, registry, extension, expected) -> None:
        assert match_extension(extension, registry).id == expected

    @pytest.mark.parametrize("extension", [None, "", ".", ".txt"])
    def test_no_match(self, registry, extension) -> None:
        assert match_extension(extension, registry) is None

    def test_normalize(self) -> None:
        assert normalize_extension(".TSV") == "tsv"
        assert normalize_extension(".") is None


class TestSniff:
    """Tests for content sniffing."""

    @pytest.mark.parametrize(
        ("prefix", "expected"),
        [
            (b'[{"name": "Bart"}]', "json"),
            (b'{"name": "Bart"}\n{"name": "Homer"}\n', "ndjson"),
            (b"name,email\nBart,bart@example.com\n", "csv"),
        ],
    )
    def test_sniff(self, registry, prefix, expected) -> None:
        assert sniff(prefix, registry).id == expected

    def test_tab_separated_content_is_single_column_csv(self, registry) -> None:
        """Test that csv outranks tsv for content both accept."""
        assert sniff(b"name\temail\nBart\tbart@example.com\n", registry).id == "csv"

    def test_undetectable(self, registry) -> None:
        assert sniff(b"just some words\n", registry) is None

    def test_empty_prefix(self, registry) -> None:
        assert sniff(b"", registry) is None

    def test_raising_check_counts_as_no(self, registry) -> None:
        """Test that a failing header check falls through to later formats."""
        formats = {"broken": BrokenFormat(), **registry}
        assert sniff(b'[{"a": 1}]', formats).id == "json"


# Feature: format-matching, Property 1: Deterministic Matching
@given(prefix=st.binary(max_size=200))
@settings(max_examples=50)
def test_property_sniff_is_deterministic(prefix):
    """Test that a fixed registry and prefix always pick the same format.

    Property: Sniffing the same prefix twice gives the same result.
    """
    formats = load_formats()
    first = sniff(prefix, formats)
    second = sniff(prefix, formats)

    assert (first.id if first else None) == (second.id if second else None)


class TestResolve:
    """Tests for the full resolution order."""

    def test_explicit_beats_extension(self, registry) -> None:
        fmt = resolve("tsv", ".csv", buffer_of(b"a,b\n1,2\n"), registry)
        assert fmt.id == "tsv"

    def test_extension_beats_content(self, registry) -> None:
        fmt = resolve(None, ".csv", buffer_of(b'[{"a": 1}]'), registry)
        assert fmt.id == "csv"

    def test_content_when_extension_unknown(self, registry) -> None:
        buffer = buffer_of(b"name,email\nBart,bart@example.com\n")

        fmt = resolve(None, ".txt", buffer, registry)

        assert fmt.id == "csv"
        assert buffer.position == 0
        assert fmt.decode(buffer) == [{"name": "Bart", "email": "bart@example.com"}]

    def test_nothing_applies(self, registry) -> None:
        assert resolve(None, None, buffer_of(b"plain text"), registry) is None

    def test_unknown_explicit_id(self, registry) -> None:
        with pytest.raises(UsageError):
            resolve("xml", None, buffer_of(b"[]"), registry)
