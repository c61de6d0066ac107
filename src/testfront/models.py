"""Data models for tests, issues and events."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Optional


@dataclass(frozen=True)
class SourceLocation:
    """Location in a source file."""

    file_id: str
    line: int
    column: int = 1

    def __str__(self) -> str:
        return f"{self.file_id}:{self.line}:{self.column}"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"fileID": self.file_id, "line": self.line, "column": self.column}


@dataclass(frozen=True)
class TestID:
    """Hierarchical identifier of a test or suite.

    The rendered form joins the module name, the name components and, if
    present, the source location with "/", e.g. ``tests.math/Arith/add/tests/math.py:12:1``.
    """

    __test__ = False

    module_name: str
    name_components: tuple[str, ...] = ()
    source_location: Optional[SourceLocation] = None

    @property
    def key_path(self) -> list[str]:
        """Get the components of the rendered form."""
        result = [self.module_name] if self.module_name else []
        result.extend(self.name_components)
        if self.source_location is not None:
            result.append(str(self.source_location))
        return result

    @property
    def parent(self) -> Optional["TestID"]:
        """Get the enclosing identifier.

        The parent of an identifier with a source location is the same name
        without the location; otherwise the last name component is dropped.
        """
        if self.source_location is not None:
            return TestID(self.module_name, self.name_components)
        if self.name_components:
            return TestID(self.module_name, self.name_components[:-1])
        return None

    def ancestors(self) -> Iterator["TestID"]:
        """Yield this identifier followed by each of its parents."""
        current: Optional[TestID] = self
        while current is not None:
            yield current
            current = current.parent

    def __str__(self) -> str:
        return "/".join(self.key_path)


@dataclass(eq=False)
class Test:
    """A discovered test or suite."""

    __test__ = False

    name: str
    id: TestID
    is_suite: bool = False
    is_hidden: bool = False
    body: Optional[Callable[[], Any]] = None
    expected_exit_code: Optional[int] = None

    @property
    def is_exit_test(self) -> bool:
        return self.expected_exit_code is not None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": str(self.id),
            "name": self.name,
            "isSuite": self.is_suite,
            "sourceLocation": self.id.source_location.to_dict() if self.id.source_location else None,
        }


class IssueKind(str, Enum):
    """Kind of a recorded issue."""

    ERROR = "error"
    EXIT_TEST_FAILED = "exitTestFailed"


@dataclass(frozen=True)
class Issue:
    """A problem recorded while a test ran."""

    kind: IssueKind = IssueKind.ERROR
    description: str = ""
    is_known: bool = False
    source_location: Optional[SourceLocation] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "description": self.description,
            "isKnown": self.is_known,
            "sourceLocation": self.source_location.to_dict() if self.source_location else None,
        }


class EventKind(str, Enum):
    """Kind of an event posted during a test run."""

    RUN_STARTED = "runStarted"
    ITERATION_STARTED = "iterationStarted"
    TEST_STARTED = "testStarted"
    ISSUE_RECORDED = "issueRecorded"
    TEST_ENDED = "testEnded"
    ITERATION_ENDED = "iterationEnded"
    RUN_ENDED = "runEnded"


@dataclass(frozen=True)
class Event:
    """Something that happened during a test run.

    Only ISSUE_RECORDED events carry an issue; only RUN_STARTED carries the
    planned tests.
    """

    kind: EventKind
    test_id: Optional[TestID] = None
    issue: Optional[Issue] = None
    iteration: Optional[int] = None
    plan: tuple[Test, ...] = ()
    instant: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "testID": str(self.test_id) if self.test_id else None,
            "issue": self.issue.to_dict() if self.issue else None,
            "iteration": self.iteration,
            "plan": [test.to_dict() for test in self.plan],
            "instant": self.instant,
        }


@dataclass(frozen=True)
class EventContext:
    """Context in which an event occurred."""

    test: Optional[Test] = None
    iteration: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "test": self.test.to_dict() if self.test else None,
            "iteration": self.iteration,
        }


EventHandler = Callable[[Event, EventContext], None]
