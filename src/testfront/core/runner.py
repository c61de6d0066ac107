"""Test execution honoring a Configuration."""

import asyncio
import inspect
import logging
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from testfront.core.configuration import Configuration
from testfront.core.exit_test import ExitTest
from testfront.models import Event, EventContext, EventKind, Issue, IssueKind, Test

logger = logging.getLogger(__name__)


class KnownIssue(Exception):
    """Raised by a test to record an issue that is expected."""

    pass


@contextmanager
def known_issue(comment: str = "") -> Iterator[None]:
    """Record any exception raised in the block as a known issue."""
    try:
        yield
    except KnownIssue:
        raise
    except Exception as e:
        raise KnownIssue(f"{comment}: {e}" if comment else str(e)) from e


class Runner:
    """Runs tests and posts events to the configuration's event handler."""

    def __init__(self, configuration: Configuration, tests: Iterable[Test]):
        """Initialize the runner.

        Args:
            configuration: Run configuration
            tests: All discovered tests; suites and filtered-out tests are not run
        """
        self.configuration = configuration
        self.plan = [
            test for test in configuration.test_filter.apply(tests) if not test.is_suite
        ]

    def _post(self, kind: EventKind, context: Optional[EventContext] = None, **fields) -> None:
        context = context or EventContext()
        if context.test is not None:
            fields.setdefault("test_id", context.test.id)
        self.configuration.event_handler(Event(kind, **fields), context)

    async def run(self) -> None:
        """Run the planned tests as many times as the repetition policy asks."""
        policy = self.configuration.repetition_policy
        self._post(EventKind.RUN_STARTED, plan=tuple(self.plan))

        iteration = 0
        while iteration < policy.maximum_iteration_count:
            context = EventContext(iteration=iteration)
            self._post(EventKind.ITERATION_STARTED, context, iteration=iteration)
            issue_recorded = await self._run_iteration(iteration)
            self._post(EventKind.ITERATION_ENDED, context, iteration=iteration)

            iteration += 1
            if not policy.should_continue(issue_recorded):
                break

        logger.debug("Test run finished after %d iteration(s)", iteration)
        self._post(EventKind.RUN_ENDED)

    async def _run_iteration(self, iteration: int) -> bool:
        if self.configuration.is_parallelization_enabled:
            results = await asyncio.gather(
                *(asyncio.to_thread(self._run_test, test, iteration) for test in self.plan)
            )
        else:
            results = [await asyncio.to_thread(self._run_test, test, iteration) for test in self.plan]
        return any(results)

    def _run_test(self, test: Test, iteration: int) -> bool:
        """Run one test; return True if it recorded an unknown issue."""
        context = EventContext(test=test, iteration=iteration)
        self._post(EventKind.TEST_STARTED, context, iteration=iteration)

        issue = None
        try:
            if test.is_exit_test:
                issue = self._run_exit_test(test)
            elif test.body is not None:
                result = test.body()
                if inspect.iscoroutine(result):
                    asyncio.run(result)
        except KnownIssue as e:
            issue = Issue(description=str(e), is_known=True, source_location=test.id.source_location)
        except Exception as e:
            issue = Issue(description=f"{type(e).__name__}: {e}", source_location=test.id.source_location)

        if issue is not None:
            self._post(EventKind.ISSUE_RECORDED, context, issue=issue, iteration=iteration)
        self._post(EventKind.TEST_ENDED, context, iteration=iteration)
        return issue is not None and not issue.is_known

    def _run_exit_test(self, test: Test) -> Optional[Issue]:
        handler = self.configuration.exit_test_handler
        if handler is None:
            return Issue(
                kind=IssueKind.EXIT_TEST_FAILED,
                description="Exit tests are not enabled for this run",
                source_location=test.id.source_location,
            )

        result = handler(ExitTest(test_id=test.id, body=test.body))
        if result.exit_code == test.expected_exit_code:
            return None

        description = f"Expected exit code {test.expected_exit_code}, got {result.exit_code}"
        if result.stderr.strip():
            description += f": {result.stderr.strip().splitlines()[-1]}"
        return Issue(
            kind=IssueKind.EXIT_TEST_FAILED,
            description=description,
            source_location=test.id.source_location,
        )
