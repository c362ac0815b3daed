"""CLI command implementations.

This module implements the commands of the each tool:
- run: Apply a command to every record, or re-encode the records
- list_formats: List registered record formats
- check_config: Validate configuration files

Each command is implemented as a function that returns an exit code,
enabling both direct invocation and subprocess-based testing.
"""

import logging
import sys
from pathlib import Path
from typing import Annotated, Any

from cyclopts import Parameter

from each.cli.config import load_config, merge_config, validate_config
from each.cli.exit_codes import ExitCode
from each.cli.output import TerminalConfirm, configure_logging, handle_error, open_terminal
from each.cli.registry import FORMATS, list_formats as registry_list_formats, load_formats
from each.core.action import Action
from each.core.exceptions import ConfigError, DataError, InputError, UsageError
from each.core.matcher import lookup
from each.core.pipeline import execute_pipeline
from each.core.scheduler import Scheduler
from each.formats import DEFAULT_OUTPUT_FORMAT

logger = logging.getLogger(__name__)


def exit_code_for(error: Exception) -> int:
    """Map an exception to the exit status class it belongs to."""
    if isinstance(error, UsageError):
        return ExitCode.USAGE_ERROR
    if isinstance(error, DataError):
        return ExitCode.DATA_ERROR
    if isinstance(error, InputError):
        return ExitCode.IO_ERROR
    return ExitCode.UNEXPECTED_ERROR


def stdin_is_terminal() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


def read_stdin_template(path: Path) -> str:
    """Read a stdin template from ``path``.

    Raises:
        InputError: If the file cannot be read
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(
            f"Couldn't read stdin template {path}: {getattr(e, 'strerror', None) or e}",
            path=str(path),
            reason=type(e).__name__,
        ) from e


def run(
    *command: Annotated[str, Parameter(allow_leading_hyphen=True, help="Program and argument templates")],
    inputs: Annotated[
        list[Path] | None, Parameter(name=["--input", "-i"], help="Input file (repeatable); stdin otherwise")
    ] = None,
    input_format: Annotated[str | None, Parameter(name=["--format", "-f"], help="Input format id")] = None,
    output_format: Annotated[
        str | None, Parameter(name=["--output-format", "-F"], help="Output format id when no command is given")
    ] = None,
    interactive: Annotated[bool, Parameter(name=["--interactive", "-p"], help="Confirm each command")] = False,
    prompt_stdin: Annotated[
        bool, Parameter(name="--prompt-stdin", help="Show the rendered stdin when confirming (implies -p)")
    ] = False,
    max_procs: Annotated[int | None, Parameter(name=["--max-procs", "-P"], help="Commands run at once")] = None,
    stdin: Annotated[str | None, Parameter(name=["--stdin", "-s"], help="Template for the command's stdin")] = None,
    stdin_file: Annotated[
        Path | None, Parameter(name=["--stdin-file", "-S"], help="File holding the template for the command's stdin")
    ] = None,
    csv_delimiter: Annotated[str | None, Parameter(help="CSV field delimiter (default ',')")] = None,
    csv_quote: Annotated[str | None, Parameter(help="CSV quote character (default '\"')")] = None,
    csv_escape: Annotated[str | None, Parameter(help="CSV escape character (default: doubled quotes)")] = None,
    config: Annotated[Path | None, Parameter(help="Configuration file path")] = None,
    log_level: Annotated[str | None, Parameter(help="Log level (debug, info, warning, error)")] = None,
    log_file: Annotated[Path | None, Parameter(help="Log file path")] = None,
    verbose: Annotated[bool, Parameter(help="Show detailed error information")] = False,
) -> int:
    """Build and execute command lines from structured input.

    Reads records from the inputs (JSON, NDJSON, CSV or TSV, detected per
    input) and runs PROGRAM once per record, with {{field}} templates in the
    arguments filled from the record. Without a PROGRAM the records are
    written to stdout in the output format. Put -- before PROGRAM when its
    arguments start with a dash.

    Args:
        command: Program followed by its argument templates
        inputs: Input files, read in order (stdin when none)
        input_format: Explicit input format id
        output_format: Output format id when no command is given
        interactive: Ask before running each command
        prompt_stdin: Also show the rendered stdin when asking
        max_procs: Number of commands run concurrently (default 1)
        stdin: Template for the command's standard input
        stdin_file: File holding the stdin template (ignored if stdin is given)
        csv_delimiter: CSV field delimiter
        csv_quote: CSV quote character
        csv_escape: CSV escape character
        config: Path to configuration file (optional)
        log_level: Logging level (default warning)
        log_file: Path to log file (optional)
        verbose: Show detailed error information including stack traces

    Returns:
        Exit code (0 for success, non-zero for errors)

    Example:
        >>> from pathlib import Path
        >>> from each.cli.commands import run
        >>>
        >>> exit_code = run("echo", "{{name}}", inputs=[Path("people.csv")])
    """
    confirm: TerminalConfirm | None = None
    try:
        cfg: dict[str, Any] = {}
        if config:
            cfg = load_config(config)
            problems = validate_config(cfg)
            if problems:
                raise ConfigError(f"Invalid configuration: {'; '.join(problems)}", config_path=str(config))

        cfg = merge_config(
            cfg,
            format=input_format,
            output_format=output_format,
            max_procs=max_procs,
            interactive=interactive or None,
            prompt_stdin=prompt_stdin or None,
            stdin=stdin,
            stdin_file=str(stdin_file) if stdin_file is not None else None,
            csv_delimiter=csv_delimiter,
            csv_quote=csv_quote,
            csv_escape=csv_escape,
            log_level=log_level,
        )
        configure_logging(cfg.get("log_level", "warning"), log_file)
        logger.debug("Effective options: %s", cfg)

        registry = load_formats(
            csv_delimiter=cfg.get("csv_delimiter"),
            csv_quote=cfg.get("csv_quote"),
            csv_escape=cfg.get("csv_escape"),
        )
        explicit_format = cfg.get("format")
        if explicit_format is not None:
            lookup(explicit_format, registry, option="--format")

        procs = cfg.get("max_procs", 1)
        if procs < 1:
            raise UsageError(f"Invalid max-procs: {procs} (must be at least 1)", option="--max-procs")

        if not inputs and stdin_is_terminal():
            raise UsageError("No input provided", option="--input")

        if command:
            stdin_template = cfg.get("stdin")
            if stdin_template is None and cfg.get("stdin_file") is not None:
                stdin_template = read_stdin_template(Path(cfg["stdin_file"]))

            action = Action(
                command[0],
                command[1:],
                stdin=stdin_template,
                prompt=bool(cfg.get("interactive")),
                prompt_stdin=bool(cfg.get("prompt_stdin")),
                # Records read from stdin have consumed it
                inherit_stdin=bool(inputs),
            )
            if action.prompt:
                confirm = TerminalConfirm(open_terminal())
            scheduler = Scheduler(action, max_procs=procs, confirm=confirm)
            execute_pipeline(inputs or [], registry, explicit_format, scheduler=scheduler)
        else:
            out = lookup(cfg.get("output_format") or DEFAULT_OUTPUT_FORMAT, registry, option="--output-format")
            execute_pipeline(inputs or [], registry, explicit_format, output_format=out)

        return ExitCode.SUCCESS

    except Exception as e:
        handle_error(e, verbose=verbose)
        return exit_code_for(e)
    finally:
        if confirm is not None:
            confirm.close()


def list_formats() -> int:
    """List available record formats.

    Displays all registered formats in priority order with their file
    extensions and the first line of their description.

    Returns:
        Exit code (always 0 for success)

    Example:
        >>> from each.cli.commands import list_formats
        >>> exit_code = list_formats()
    """
    formats = registry_list_formats()

    if not formats:
        print("No formats registered.")
        return ExitCode.SUCCESS

    print("Available formats:")
    for name, (extensions, description) in formats.items():
        desc_line = description.strip().split("\n")[0].strip()
        print(f"  {name:8} {extensions:14} {desc_line}")

    return ExitCode.SUCCESS


def check_config(
    config_path: Annotated[Path, Parameter(help="Configuration file path")],
) -> int:
    """Validate configuration file.

    Loads and validates a configuration file, checking syntax, keys, value
    types, and that referenced formats exist in the registry.

    Args:
        config_path: Path to configuration file to validate

    Returns:
        Exit code (0 for valid config, 64 for invalid config)

    Example:
        >>> from pathlib import Path
        >>> from each.cli.commands import check_config
        >>>
        >>> exit_code = check_config(config_path=Path("each.yaml"))
    """
    try:
        config = load_config(config_path)
        errors = validate_config(config, format_ids=list(FORMATS))

        if errors:
            print("✗ Configuration validation failed:", file=sys.stderr)
            for error in errors:
                print(f"  {error}", file=sys.stderr)
            return ExitCode.USAGE_ERROR

        print("✓ Configuration is valid")
        for key, value in config.items():
            print(f"  {key}: {value}")

        return ExitCode.SUCCESS

    except ConfigError as e:
        print("✗ Configuration error:", file=sys.stderr)
        print(f"  {e.message}", file=sys.stderr)
        return ExitCode.USAGE_ERROR
    except Exception as e:
        handle_error(e, verbose=False)
        return ExitCode.UNEXPECTED_ERROR
