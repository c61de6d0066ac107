"""The test entry point: list tests, or configure and run them."""

import logging
import sys
from typing import Callable, Iterable, Optional, Sequence, TextIO

from rich.console import Console
from rich.text import Text

from testfront.config import CommandLineArguments, parse_command_line_arguments, resolve_verbosity
from testfront.core.configuration import Configuration, configuration_for_entry_point
from testfront.core.exit_status import ExitStatusTracker
from testfront.core.exit_test import find_exit_test_in_environment
from testfront.core.listing import list_tests_for_entry_point
from testfront.core.registry import registry
from testfront.core.runner import Runner
from testfront.models import EventHandler, Test
from testfront.recorders.console import ConsoleOutputOptions, ConsoleOutputRecorder

logger = logging.getLogger(__name__)


async def entry_point(
    args: Optional[CommandLineArguments] = None,
    event_handler: Optional[EventHandler] = None,
    *,
    argv: Optional[Sequence[str]] = None,
    tests: Optional[Iterable[Test]] = None,
    runner_factory: Callable[[Configuration, list[Test]], Runner] = Runner,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> int:
    """List or run tests and return the process exit status.

    Args:
        args: Previously parsed arguments; parsed from argv when None
        event_handler: Extra handler that sees every event before the built-in ones
        argv: Command-line arguments without the executable path (default: sys.argv[1:])
        tests: Discovered tests (default: everything in the registry)
        runner_factory: Creates the engine running the tests
        stdout: Stream for --list-tests output (default: sys.stdout)
        stderr: Stream for progress and errors (default: sys.stderr)

    Returns:
        0 when no unknown issue was recorded and nothing went wrong, otherwise 1
    """
    exit_status = ExitStatusTracker()
    stderr = stderr or sys.stderr

    try:
        if args is None:
            args = parse_command_line_arguments(sys.argv[1:] if argv is None else argv)
        tests = list(registry.all() if tests is None else tests)

        if args.list_tests is None or args.list_tests:
            output = Console(file=stdout or sys.stdout, highlight=False, soft_wrap=True)
            for test_id in list_tests_for_entry_point(tests):
                output.print(Text(test_id))
        else:
            # An exit test ends this process once it has run.
            exit_test = find_exit_test_in_environment(tests)
            if exit_test is not None:
                exit_test()

            configuration = configuration_for_entry_point(args)
            with configuration.resources:
                configuration.event_handler.install(exit_status)

                options = ConsoleOutputOptions.for_stream(stderr)
                options.verbosity = resolve_verbosity(args)
                configuration.event_handler.install(ConsoleOutputRecorder(options, stderr))

                if event_handler is not None:
                    configuration.event_handler.install(event_handler)

                runner = runner_factory(configuration, tests)
                await runner.run()

    except Exception as e:
        logger.debug("Entry point failed", exc_info=True)
        error_console = Console(file=stderr, highlight=False, soft_wrap=True)
        error_console.print(Text.assemble(("Error: ", "red"), str(e)))
        exit_status.force_failure()

    return exit_status.value
