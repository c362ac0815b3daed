"""Tests for templated actions.

This module tests compiling, rendering and executing commands:
- Field and whole-record substitution
- Template errors at compile time and render errors per record
- Prompt text
- Process execution with captured output and exit status
"""

import io
import subprocess
import sys
from unittest.mock import patch

import pytest

from each.core.action import Action, Invocation, stringify
from each.core.exceptions import ExecutionError, RenderError, TemplateError

BART = {"name": "Bart", "email": "bart@example.com"}

PRINT_ARGS = "import sys; print(' '.join(sys.argv[1:]))"
ECHO_STDIN = "import sys; sys.stdout.write(sys.stdin.read())"


class TestRender:
    """Tests for rendering templates against records."""

    def test_fields(self) -> None:
        action = Action("echo", ["{{name}} <{{email}}>"])
        invocation = action.render(BART)
        assert invocation == Invocation("echo", ("Bart <bart@example.com>",))

    def test_program_is_not_templated(self) -> None:
        assert Action("{{name}}").render(BART).program == "{{name}}"

    def test_whole_record(self) -> None:
        invocation = Action("echo", ["{{this}}"]).render(BART)
        assert invocation.args == ('{"name": "Bart", "email": "bart@example.com"}',)

    def test_non_identifier_field(self) -> None:
        invocation = Action("echo", ['{{this["first name"]}}']).render({"first name": "Bart"})
        assert invocation.args == ("Bart",)

    def test_non_object_record(self) -> None:
        assert Action("echo", ["{{this}}"]).render(42).args == ("42",)

    def test_stdin_template(self) -> None:
        invocation = Action("mail", ["{{email}}"], stdin="Hi {{name}}!\n").render(BART)
        assert invocation.stdin == "Hi Bart!\n"

    def test_missing_field(self) -> None:
        """Test that an absent field is a render error naming slot and record."""
        action = Action("echo", ["{{name}}", "{{phone}}"])

        with pytest.raises(RenderError) as exc_info:
            action.render(BART, index=3)

        error = exc_info.value
        assert error.context["slot"] == "argument 2"
        assert error.context["record"] == 3
        assert "phone" in error.message

    def test_missing_field_in_stdin(self) -> None:
        with pytest.raises(RenderError) as exc_info:
            Action("cat", stdin="{{phone}}").render(BART)
        assert exc_info.value.context["slot"] == "stdin"

    def test_malformed_template(self) -> None:
        """Test that syntax errors surface when the action is built."""
        with pytest.raises(TemplateError) as exc_info:
            Action("echo", ["{{name}}", "{{name"])
        assert exc_info.value.context["slot"] == "argument 2"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, ""), (True, "true"), (False, "false"), ([1, "a"], '[1, "a"]'), (3, 3), ("x", "x")],
    )
    def test_stringify(self, value, expected) -> None:
        assert stringify(value) == expected


class TestPrompt:
    """Tests for the text shown before running a command."""

    def test_command_line(self) -> None:
        action = Action("echo", ["{{name}} <{{email}}>"], prompt=True)
        assert action.describe_prompt(action.render(BART)) == "echo 'Bart <bart@example.com>'"

    def test_with_stdin(self) -> None:
        action = Action("cat", stdin="Hi {{name}}", prompt_stdin=True)
        assert action.prompt
        text = action.describe_prompt(action.render(BART))
        assert text == "# Stdin:\nHi Bart\n- Command:\ncat\n"


class TestExecute:
    """Tests for running rendered commands."""

    def run(self, action: Action, record, index: int = 0):
        out, err = io.BytesIO(), io.BytesIO()
        action.execute(action.render(record), out, err, index=index)
        return out.getvalue(), err.getvalue()

    def test_output_is_forwarded(self) -> None:
        out, err = self.run(Action(sys.executable, ["-c", PRINT_ARGS, "{{name}}", "{{email}}"]), BART)
        assert out == b"Bart bart@example.com\n"
        assert err == b""

    def test_stdin_is_fed(self) -> None:
        action = Action(sys.executable, ["-c", ECHO_STDIN], stdin="Dear {{name}}")
        out, _ = self.run(action, BART)
        assert out == b"Dear Bart"

    def test_no_stdin_template_means_empty_stdin(self) -> None:
        out, _ = self.run(Action(sys.executable, ["-c", ECHO_STDIN]), BART)
        assert out == b""

    def test_non_zero_exit(self) -> None:
        """Test that a failing command still forwards its output first."""
        action = Action(
            sys.executable,
            ["-c", "import sys; print('partial'); sys.stderr.write('bad'); sys.exit(3)"],
        )
        out, err = io.BytesIO(), io.BytesIO()

        with pytest.raises(ExecutionError) as exc_info:
            action.execute(action.render(BART), out, err, index=1)

        assert exc_info.value.context["returncode"] == 3
        assert exc_info.value.context["record"] == 1
        assert out.getvalue() == b"partial\n"
        assert err.getvalue() == b"bad"

    def test_missing_program(self, tmp_path) -> None:
        action = Action(str(tmp_path / "no-such-program"))

        with pytest.raises(ExecutionError) as exc_info:
            self.run(action, BART)

        assert "returncode" not in exc_info.value.context
        assert exc_info.value.context["program"] == str(tmp_path / "no-such-program")

    def test_nul_byte_in_argument(self) -> None:
        """Test that an argument the OS cannot take fails as an execution error."""
        with pytest.raises(ExecutionError) as exc_info:
            self.run(Action("echo", ["{{name}}"]), {"name": "Ba\u0000rt"}, index=2)

        assert exc_info.value.context["record"] == 2
        assert exc_info.value.context["reason"] == "ValueError"

    def test_unencodable_stdin(self) -> None:
        action = Action(sys.executable, ["-c", ECHO_STDIN], stdin="{{name}}")

        with pytest.raises(ExecutionError) as exc_info:
            self.run(action, {"name": "\ud800"})

        assert exc_info.value.context["reason"] == "UnicodeEncodeError"

    @pytest.mark.parametrize(("inherit", "expected"), [(False, subprocess.DEVNULL), (True, None)])
    def test_stdin_without_template(self, inherit, expected) -> None:
        """Test that inherit_stdin passes our stdin through instead of the null device."""
        action = Action("vi", ["{{name}}"], inherit_stdin=inherit)
        done = subprocess.CompletedProcess(["vi", "Bart"], 0, b"", b"")

        with patch("each.core.action.subprocess.run", return_value=done) as spawn:
            action.execute(action.render(BART), io.BytesIO(), io.BytesIO())

        assert spawn.call_args.kwargs["stdin"] == expected
