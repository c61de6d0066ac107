"""Runtime configuration built from command-line arguments."""

import logging
import re
import sys
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from testfront.config import CommandLineArguments
from testfront.errors import InvalidArgumentError
from testfront.core.exit_test import ExitTestHandler, handler_for_entry_point
from testfront.core.filter import FilterOperator, Membership, TestFilter
from testfront.models import Event, EventContext, EventHandler
from testfront.recorders.event_stream import JSONLinesWriter, encoder_for_version, handler_for_streaming_events
from testfront.recorders.junit_xml import JUnitXMLRecorder

logger = logging.getLogger(__name__)

# Maximum iteration count used when a run repeats until a condition is met.
UNBOUNDED = sys.maxsize


class EventPipeline:
    """Ordered chain of event handlers.

    The most recently installed handler sees each event first. Every handler
    sees every event: a handler that raises is logged and the event is still
    passed on to the rest.
    """

    def __init__(self, handlers: Optional[Iterable[EventHandler]] = None):
        self._handlers: list[EventHandler] = list(handlers or [])

    @property
    def handlers(self) -> tuple[EventHandler, ...]:
        """Get the handlers in the order they are invoked."""
        return tuple(self._handlers)

    def install(self, handler: EventHandler) -> None:
        """Install a handler ahead of the ones already installed."""
        self._handlers.insert(0, handler)

    def __call__(self, event: Event, context: EventContext) -> None:
        for handler in self._handlers:
            try:
                handler(event, context)
            except Exception:
                logger.exception("Event handler %r failed while handling %s", handler, event.kind.value)

    def __len__(self) -> int:
        return len(self._handlers)


class ContinuationCondition(str, Enum):
    """When a repeating test run continues to its next iteration."""

    ALWAYS = "always"
    UNTIL_ISSUE_RECORDED = "untilIssueRecorded"
    WHILE_ISSUE_RECORDED = "whileIssueRecorded"


@dataclass
class RepetitionPolicy:
    """How many times, and under which condition, a test run repeats."""

    maximum_iteration_count: int = 1
    continuation_condition: ContinuationCondition = ContinuationCondition.ALWAYS

    def should_continue(self, issue_recorded: bool) -> bool:
        """Check whether another iteration should run after the current one."""
        if self.continuation_condition == ContinuationCondition.UNTIL_ISSUE_RECORDED:
            return not issue_recorded
        if self.continuation_condition == ContinuationCondition.WHILE_ISSUE_RECORDED:
            return issue_recorded
        return True


@dataclass
class Configuration:
    """Execution parameters for one test run."""

    is_parallelization_enabled: bool = True
    test_filter: TestFilter = field(default_factory=TestFilter.unfiltered)
    repetition_policy: RepetitionPolicy = field(default_factory=RepetitionPolicy)
    event_handler: EventPipeline = field(default_factory=EventPipeline)
    exit_test_handler: Optional[ExitTestHandler] = None
    # Output files opened for the run; closed by whoever runs the tests.
    resources: ExitStack = field(default_factory=ExitStack)


def _test_filter(patterns: Optional[list[str]], label: str, membership: Membership) -> TestFilter:
    result = TestFilter.unfiltered()
    for pattern in patterns or []:
        try:
            pattern_filter = TestFilter.matching(pattern, membership)
        except re.error:
            raise InvalidArgumentError(label, pattern)
        result = result.combining(pattern_filter, FilterOperator.OR)
    return result


def _repetition_policy(args: CommandLineArguments) -> RepetitionPolicy:
    policy = RepetitionPolicy()
    had_explicit_count = False
    if args.repetitions is not None and args.repetitions > 0:
        policy.maximum_iteration_count = args.repetitions
        had_explicit_count = True

    if args.repeat_until is not None:
        keyword = args.repeat_until.lower()
        if keyword == "pass":
            policy.continuation_condition = ContinuationCondition.WHILE_ISSUE_RECORDED
        elif keyword == "fail":
            policy.continuation_condition = ContinuationCondition.UNTIL_ISSUE_RECORDED
        else:
            raise InvalidArgumentError("--repeat-until", args.repeat_until)
        if not had_explicit_count:
            policy.maximum_iteration_count = UNBOUNDED

    return policy


def configuration_for_entry_point(args: CommandLineArguments) -> Configuration:
    """Build the configuration for a test run.

    The caller installs its own event handlers afterwards and is responsible
    for closing ``Configuration.resources`` once the run has finished.

    Args:
        args: Parsed command-line arguments

    Returns:
        The configuration

    Raises:
        InvalidArgumentError: If a pattern, the event stream version or the
            --repeat-until keyword is invalid
        OSError: If an output file cannot be opened
    """
    configuration = Configuration()
    configuration.is_parallelization_enabled = args.parallel if args.parallel is not None else True

    include = _test_filter(args.filter, "--filter", Membership.INCLUDING)
    exclude = _test_filter(args.skip, "--skip", Membership.EXCLUDING)
    configuration.test_filter = include.combining(exclude, FilterOperator.AND)

    configuration.repetition_policy = _repetition_policy(args)

    # Validate before any file is created.
    if args.experimental_event_stream_output is not None:
        encoder_for_version(args.experimental_event_stream_version)

    with ExitStack() as stack:
        if args.experimental_event_stream_output is not None:
            stream_file = stack.enter_context(open(args.experimental_event_stream_output, "w", encoding="utf-8"))
            configuration.event_handler.install(
                handler_for_streaming_events(args.experimental_event_stream_version, JSONLinesWriter(stream_file))
            )
            logger.debug("Streaming events to %s", args.experimental_event_stream_output)

        if args.xunit_output is not None:
            xml_file = stack.enter_context(open(args.xunit_output, "w", encoding="utf-8"))
            configuration.event_handler.install(JUnitXMLRecorder(xml_file.write))
            logger.debug("Writing JUnit XML to %s", args.xunit_output)

        configuration.resources = stack.pop_all()

    configuration.exit_test_handler = handler_for_entry_point(args.host_test_identifier)

    return configuration
