"""Templated commands: compile once, render per record, execute.

An Action holds a program name, its argument templates and an optional stdin
template. Templates use jinja2 syntax, so ``{{name}}`` substitutes the
record's ``name`` field and ``{{this}}`` the whole record. Fields whose names
are not identifiers are reachable as ``{{this["first name"]}}``.

Templates are compiled once when the Action is built and then shared
read-only by all worker threads. Rendering a template for a record produces
an Invocation, which is what gets shown in prompts and executed.

Example:
    >>> action = Action("echo", ["{{name}} <{{email}}>"])
    >>> invocation = action.render({"name": "Bart", "email": "bart@example.com"})
    >>> invocation.command_line()
    "echo 'Bart <bart@example.com>'"
"""

import json
import logging
import shlex
import subprocess
import sys
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, BinaryIO, TextIO

import jinja2

from each.core.exceptions import ExecutionError, RenderError, TemplateError
from each.core.protocols import Record

logger = logging.getLogger(__name__)

# Guards this process's stdout/stderr so one command's output stays contiguous.
OUTPUT_LOCK = threading.Lock()


def stringify(value: Any) -> Any:
    """Spell template values the way JSON would.

    Used as the jinja2 ``finalize`` hook: None renders as an empty string,
    booleans as true/false, lists and objects as JSON text.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


ENVIRONMENT = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    autoescape=False,
    keep_trailing_newline=True,
    finalize=stringify,
)


def compile_template(source: str, slot: str) -> jinja2.Template:
    """Compile one template string.

    Raises:
        TemplateError: If the template syntax is malformed
    """
    try:
        return ENVIRONMENT.from_string(source)
    except jinja2.TemplateSyntaxError as e:
        raise TemplateError(
            f"Invalid template for {slot}: {e.message}",
            slot=slot,
            line_number=e.lineno,
        ) from e


def template_context(record: Record) -> dict[str, Any]:
    context: dict[str, Any] = {"this": record}
    if isinstance(record, dict):
        context.update(record)
    return context


@dataclass(frozen=True)
class Invocation:
    """A concrete command rendered from one record."""

    program: str
    args: tuple[str, ...] = ()
    stdin: str | None = None

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def command_line(self) -> str:
        """Shell-quoted command line, for display only."""
        return shlex.join(self.argv)


def _binary_sink(stream: TextIO | BinaryIO) -> BinaryIO:
    # Flush the text layer first so earlier prints are not overtaken.
    stream.flush()
    return getattr(stream, "buffer", stream)


class Action:
    """A program with templated arguments and an optional templated stdin.

    Attributes:
        program: Program to run (not templated)
        prompt: Whether each invocation needs the operator's confirmation
        prompt_stdin: Whether the confirmation text includes the rendered stdin
        inherit_stdin: Whether a command without a stdin template reads this
                       process's stdin instead of the null device
    """

    def __init__(
        self,
        program: str,
        args: Sequence[str] = (),
        stdin: str | None = None,
        prompt: bool = False,
        prompt_stdin: bool = False,
        inherit_stdin: bool = False,
    ) -> None:
        """Compile every template.

        Args:
            program: Program to run
            args: Argument templates, in order
            stdin: Template for the process's standard input, if any
            prompt: Ask before running each invocation
            prompt_stdin: Include the rendered stdin in the prompt (implies prompt)
            inherit_stdin: Let commands without a stdin template read our stdin;
                           only safe when the records did not come from it

        Raises:
            TemplateError: Naming the first slot whose template does not compile
        """
        self.program = program
        self.prompt = prompt or prompt_stdin
        self.prompt_stdin = prompt_stdin
        self.inherit_stdin = inherit_stdin
        self._args = tuple(
            compile_template(arg, f"argument {i}") for i, arg in enumerate(args, 1)
        )
        self._stdin = compile_template(stdin, "stdin") if stdin is not None else None

    @property
    def has_stdin(self) -> bool:
        return self._stdin is not None

    def render(self, record: Record, index: int | None = None) -> Invocation:
        """Render the templates for one record.

        Args:
            record: Record whose fields fill the templates
            index: Position of the record in its input, for error context

        Raises:
            RenderError: If a template references an absent field or cannot
                        be rendered for this record
        """
        context = template_context(record)
        args = tuple(
            self._render(template, context, f"argument {i}", index)
            for i, template in enumerate(self._args, 1)
        )
        stdin = None
        if self._stdin is not None:
            stdin = self._render(self._stdin, context, "stdin", index)
        return Invocation(self.program, args, stdin)

    @staticmethod
    def _render(
        template: jinja2.Template,
        context: dict[str, Any],
        slot: str,
        index: int | None,
    ) -> str:
        try:
            return template.render(context)
        except jinja2.TemplateError as e:
            raise RenderError(
                f"Failed to render {slot}: {e.message}",
                slot=slot,
                record=index,
            ) from e
        except Exception as e:
            raise RenderError(
                f"Failed to render {slot}: {e}",
                slot=slot,
                record=index,
                reason=type(e).__name__,
            ) from e

    def describe_prompt(self, invocation: Invocation) -> str:
        """Text shown to the operator before running ``invocation``."""
        command_line = invocation.command_line()
        if self.prompt_stdin and invocation.stdin is not None:
            return f"# Stdin:\n{invocation.stdin}\n- Command:\n{command_line}\n"
        return command_line

    def execute(
        self,
        invocation: Invocation,
        stdout: BinaryIO | None = None,
        stderr: BinaryIO | None = None,
        index: int | None = None,
    ) -> None:
        """Run ``invocation`` and forward its captured output.

        The child's stdout and stderr are captured in full and then written,
        stdout first, to the given sinks while holding OUTPUT_LOCK.
        Without a stdin template the child reads the null device, or this
        process's stdin when ``inherit_stdin`` is set.

        Args:
            invocation: Rendered command
            stdout: Binary sink for the child's stdout (default: our stdout)
            stderr: Binary sink for the child's stderr (default: our stderr)
            index: Position of the record, for error context

        Raises:
            ExecutionError: If the program cannot be started (including arguments
                           the OS cannot take) or exits with a non-zero status
        """
        logger.debug("Running %s", invocation.command_line())

        try:
            stdin_options: dict[str, Any]
            if invocation.stdin is not None:
                stdin_options = {"input": invocation.stdin.encode("utf-8")}
            elif self.inherit_stdin:
                stdin_options = {"stdin": None}
            else:
                stdin_options = {"stdin": subprocess.DEVNULL}

            result = subprocess.run(
                invocation.argv,
                capture_output=True,
                check=False,
                **stdin_options,
            )
        except OSError as e:
            raise ExecutionError(
                f"Failed to run command: {e.strerror or e}",
                program=invocation.program,
                record=index,
                reason=str(e),
            ) from e
        except ValueError as e:
            # Embedded NUL bytes in arguments, or text with lone surrogates
            raise ExecutionError(
                f"Failed to run command: {e}",
                program=invocation.program,
                record=index,
                reason=type(e).__name__,
            ) from e

        with OUTPUT_LOCK:
            out = stdout if stdout is not None else _binary_sink(sys.stdout)
            err = stderr if stderr is not None else _binary_sink(sys.stderr)
            if result.stdout:
                out.write(result.stdout)
                out.flush()
            if result.stderr:
                err.write(result.stderr)
                err.flush()

        if result.returncode != 0:
            raise ExecutionError(
                f"Command exited with status {result.returncode}",
                program=invocation.program,
                returncode=result.returncode,
                record=index,
            )
