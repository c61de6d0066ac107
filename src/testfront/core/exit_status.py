"""Process exit status derived from recorded issues."""

import threading

from testfront.models import Event, EventContext, EventKind

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class ExitStatusTracker:
    """Shared success/failure flag for one entry point invocation.

    The tracker is an event handler: it flips to EXIT_FAILURE when an issue
    that is not known is recorded. It is never reset to EXIT_SUCCESS.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = EXIT_SUCCESS

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def force_failure(self) -> None:
        """Set the status to EXIT_FAILURE regardless of events."""
        with self._lock:
            self._value = EXIT_FAILURE

    def __call__(self, event: Event, context: EventContext) -> None:
        if event.kind == EventKind.ISSUE_RECORDED and event.issue is not None and not event.issue.is_known:
            self.force_failure()
