"""Command-line interface for testfront."""

import asyncio
import importlib
import logging
import os
import sys

import click
from rich.console import Console
from rich.logging import RichHandler

from testfront import __version__
from testfront.core.entry_point import entry_point
from testfront.core.exit_status import EXIT_FAILURE

LOG_LEVEL_ENVIRONMENT_VARIABLE = "TESTFRONT_LOG_LEVEL"

console = Console(stderr=True, soft_wrap=True)


def configure_logging() -> None:
    """Send library logs to stderr when TESTFRONT_LOG_LEVEL is set."""
    level = os.environ.get(LOG_LEVEL_ENVIRONMENT_VARIABLE)
    if not level:
        return
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@click.command(
    context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
)
@click.version_option(version=__version__, prog_name="testfront")
@click.option(
    "--import",
    "-I",
    "modules",
    multiple=True,
    metavar="MODULE",
    help="Import a module declaring tests (repeatable)",
)
@click.pass_context
def main(ctx: click.Context, modules: tuple[str, ...]) -> None:
    """testfront - list or run tests.

    Every argument other than --import is interpreted by the test entry
    point: --list-tests, --no-parallel, --verbose/-v, --very-verbose/--vv,
    --quiet/-q, --verbosity N, --xunit-output PATH,
    --experimental-event-stream-output PATH,
    --experimental-event-stream-version N,
    --experimental-configuration-path PATH, --filter PATTERN,
    --skip PATTERN, --repetitions N and --repeat-until pass|fail.
    """
    configure_logging()

    # Test modules are looked up in the working directory, as with "python -m".
    working_directory = os.getcwd()
    if working_directory not in sys.path:
        sys.path.insert(0, working_directory)

    for module in modules:
        try:
            importlib.import_module(module)
        except ImportError as e:
            console.print(f"[red]Error importing {module}:[/red] {e}", markup=True, highlight=False)
            sys.exit(EXIT_FAILURE)

    sys.exit(asyncio.run(entry_point(argv=ctx.args)))


if __name__ == "__main__":
    main()
