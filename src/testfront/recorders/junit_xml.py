"""JUnit XML report recording using Jinja2 templates."""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from testfront.models import Event, EventContext, EventKind, Issue, TestID

logger = logging.getLogger(__name__)


@dataclass
class _TestCase:
    classname: str
    name: str
    started_at: float = 0.0
    duration: float = 0.0
    issues: list[Issue] = field(default_factory=list)


class JUnitXMLRecorder:
    """Event handler that writes a JUnit XML report when the run ends.

    Known issues are not reported as failures.
    """

    def __init__(self, write: Callable[[str], object], suite_name: str = "TestResults"):
        """Initialize the recorder.

        Args:
            write: Called once with the complete XML document
            suite_name: Name of the single <testsuite> element
        """
        self.write = write
        self.suite_name = suite_name

        self._lock = threading.Lock()
        self._run_started_at: Optional[float] = None
        self._cases: dict[TestID, _TestCase] = {}

        template_dir = Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["seconds"] = self._format_seconds

    def __call__(self, event: Event, context: EventContext) -> None:
        with self._lock:
            if event.kind == EventKind.RUN_STARTED:
                self._run_started_at = event.instant
            elif event.kind == EventKind.TEST_STARTED and event.test_id is not None:
                case = self._case(event.test_id)
                case.started_at = event.instant
            elif event.kind == EventKind.ISSUE_RECORDED and event.test_id is not None:
                if event.issue is not None and not event.issue.is_known:
                    self._case(event.test_id).issues.append(event.issue)
            elif event.kind == EventKind.TEST_ENDED and event.test_id is not None:
                case = self._case(event.test_id)
                case.duration += max(event.instant - case.started_at, 0.0)
            elif event.kind == EventKind.RUN_ENDED:
                document = self.render(event.instant)
            else:
                return

        if event.kind == EventKind.RUN_ENDED:
            try:
                self.write(document)
            except OSError as e:
                logger.error("Could not write JUnit XML report: %s", e)

    def _case(self, test_id: TestID) -> _TestCase:
        case = self._cases.get(test_id)
        if case is None:
            components = list(test_id.name_components)
            name = components.pop() if components else test_id.module_name
            classname = ".".join(filter(None, [test_id.module_name, *components]))
            case = _TestCase(classname=classname, name=name)
            self._cases[test_id] = case
        return case

    def render(self, ended_at: Optional[float] = None) -> str:
        """Render the report for the tests recorded so far."""
        cases = list(self._cases.values())
        duration = 0.0
        if self._run_started_at is not None and ended_at is not None:
            duration = max(ended_at - self._run_started_at, 0.0)

        template = self.env.get_template("junit.xml")
        return template.render(
            suite_name=self.suite_name,
            cases=cases,
            failure_count=sum(1 for case in cases if case.issues),
            duration=duration,
        )

    @staticmethod
    def _format_seconds(value: float) -> str:
        return f"{value:.3f}"
