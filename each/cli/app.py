"""Cyclopts application and command routing for the each CLI.

This module defines the main Cyclopts application. Running ``each`` without a
subcommand applies a command to every input record (or re-encodes the
records); the subcommands are:
- list-formats: List available record formats
- check-config: Validate configuration files
"""

from cyclopts import App, CycloptsError

from each import __version__
from each.cli import commands
from each.cli.exit_codes import ExitCode

app = App(
    name="each",
    help="Build and execute command lines from structured input",
    version=__version__,
)

app.default(commands.run)
app.command(commands.list_formats, name="list-formats")
app.command(commands.check_config, name="check-config")


def main(tokens: list[str] | None = None) -> int:
    """Console script entry point.

    Args:
        tokens: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code of the command, or 64 when the command line cannot be parsed
    """
    try:
        result = app(tokens, exit_on_error=False)
    except CycloptsError:
        # cyclopts has already printed the parse error
        return ExitCode.USAGE_ERROR
    return result if isinstance(result, int) else ExitCode.SUCCESS
