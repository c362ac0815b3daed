"""Tests for terminal output, logging setup and confirmation prompts."""

import io
import logging
from unittest.mock import patch

import pytest
from rich.console import Console

from each.cli.output import TerminalConfirm, configure_logging, handle_error, open_terminal
from each.core.exceptions import DecodeError, UsageError


class TestHandleError:
    """Tests for error display."""

    def test_message_and_context(self, capsys) -> None:
        handle_error(DecodeError("Row 1 has 1 fields but the header has 2", format="csv", row=1))

        err = capsys.readouterr().err
        assert err.splitlines() == [
            "Error: Row 1 has 1 fields but the header has 2",
            "Context:",
            "  format: csv",
            "  row: 1",
        ]

    def test_plain_exception(self, capsys) -> None:
        handle_error(RuntimeError("boom"))
        assert capsys.readouterr().err == "Error: boom\n"

    def test_verbose_trace(self, capsys) -> None:
        try:
            raise UsageError("No input provided", option="--input")
        except UsageError as e:
            handle_error(e, verbose=True)

        err = capsys.readouterr().err
        assert "Stack trace:" in err
        assert "raise UsageError" in err


class TestConfigureLogging:
    """Tests for logging setup."""

    def test_level(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level(self) -> None:
        with pytest.raises(UsageError) as exc_info:
            configure_logging("chatty")
        assert exc_info.value.context["option"] == "--log-level"

    def test_log_file_creates_directories(self, tmp_path) -> None:
        log_file = tmp_path / "nested" / "dir" / "each.log"

        configure_logging("info", log_file)
        logging.getLogger("each.test").info("hello from the test")

        assert "INFO" in log_file.read_text(encoding="utf-8")
        assert "each.test: hello from the test" in log_file.read_text(encoding="utf-8")

    def test_below_level_is_dropped(self, tmp_path) -> None:
        log_file = tmp_path / "each.log"

        configure_logging("warning", log_file)
        logging.getLogger("each.test").info("quiet")

        assert log_file.read_text(encoding="utf-8") == ""


class TestTerminalConfirm:
    """Tests for confirmation prompts."""

    def test_answers(self) -> None:
        console = Console(file=io.StringIO())
        confirm = TerminalConfirm(io.StringIO("y\nn\n\n"), console=console)

        assert confirm("rm a.txt") is True
        assert confirm("rm b.txt") is False
        assert confirm("rm c.txt") is False
        assert "rm a.txt" in console.file.getvalue()

    def test_end_of_input_declines(self) -> None:
        confirm = TerminalConfirm(io.StringIO(""), console=Console(file=io.StringIO()))
        assert confirm("rm a.txt") is False

    def test_interrupted_prompt_declines(self) -> None:
        confirm = TerminalConfirm(console=Console(file=io.StringIO()))
        with patch("each.cli.output.Confirm.ask", side_effect=EOFError):
            assert confirm("rm a.txt") is False

    def test_close(self) -> None:
        stream = io.StringIO("y\n")
        TerminalConfirm(stream).close()
        assert stream.closed


class TestOpenTerminal:
    """Tests for choosing where answers are read from."""

    def test_interactive_stdin(self, monkeypatch) -> None:
        monkeypatch.setattr("sys.stdin", type("Tty", (), {"isatty": lambda self: True})())
        assert open_terminal() is None

    def test_no_terminal(self, monkeypatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO())
        monkeypatch.setattr("each.cli.output.TERMINAL", "/nonexistent/tty")

        with pytest.raises(UsageError) as exc_info:
            open_terminal()
        assert exc_info.value.context["option"] == "--interactive"
