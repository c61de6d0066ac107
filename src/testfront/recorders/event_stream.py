"""Streaming events as JSON Lines.

Each event is written as one JSON object followed by a line feed. The
objects never contain raw carriage returns or line feeds, so the output can
be read line by line, for example from a named pipe.

Two encodings are supported:

- ``None``: event and context snapshots, verbatim
- ``0``: versioned records; a run start is preceded by one ``test`` record
  per planned test
"""

import json
import logging
import threading
from typing import Any, Callable, Optional, TextIO

from testfront.errors import InvalidArgumentError
from testfront.models import Event, EventContext, EventHandler, EventKind

logger = logging.getLogger(__name__)

Encoder = Callable[[Event, EventContext], list[dict[str, Any]]]


def _encode_snapshot(event: Event, context: EventContext) -> list[dict[str, Any]]:
    return [{"event": event.to_dict(), "context": context.to_dict()}]


def _messages(event: Event) -> list[dict[str, str]]:
    if event.issue is None:
        return []
    symbol = "passWithKnownIssue" if event.issue.is_known else "fail"
    return [{"symbol": symbol, "text": event.issue.description}]


def _encode_record_v0(event: Event, context: EventContext) -> list[dict[str, Any]]:
    records = []
    if event.kind == EventKind.RUN_STARTED:
        for test in event.plan:
            records.append({"version": 0, "kind": "test", "payload": test.to_dict()})

    payload: dict[str, Any] = {
        "kind": event.kind.value,
        "instant": {"since1970": event.instant},
        "messages": _messages(event),
    }
    if event.test_id is not None:
        payload["testID"] = str(event.test_id)
    if event.issue is not None:
        payload["issue"] = {"isKnown": event.issue.is_known}
        if event.issue.source_location is not None:
            payload["issue"]["sourceLocation"] = event.issue.source_location.to_dict()
    if event.iteration is not None:
        payload["iteration"] = event.iteration
    records.append({"version": 0, "kind": "event", "payload": payload})
    return records


_ENCODERS: dict[Optional[int], Encoder] = {
    None: _encode_snapshot,
    0: _encode_record_v0,
}


def encoder_for_version(version: Optional[int]) -> Encoder:
    """Get the encoder for an event stream schema version.

    Raises:
        InvalidArgumentError: If the version is not supported
    """
    try:
        return _ENCODERS[version]
    except KeyError:
        raise InvalidArgumentError("--experimental-event-stream-version", str(version))


class JSONLinesWriter:
    """Writes JSON lines to a file, one whole line at a time."""

    def __init__(self, file: TextIO):
        self.file = file
        self._lock = threading.Lock()

    def __call__(self, line: str) -> None:
        if "\r" in line or "\n" in line:
            logger.warning("JSON encoder produced newline characters while encoding an event; removing them")
            line = line.replace("\r", "").replace("\n", "")

        with self._lock:
            try:
                self.file.write(line)
                self.file.write("\n")
                self.file.flush()
            except OSError as e:
                logger.error("Could not write to event stream: %s", e)


class EventStreamRecorder:
    """Event handler that encodes each event and forwards it as a JSON line."""

    def __init__(self, encoder: Encoder, forward: Callable[[str], None]):
        self.encoder = encoder
        self.forward = forward

    def __call__(self, event: Event, context: EventContext) -> None:
        for record in self.encoder(event, context):
            self.forward(json.dumps(record, separators=(",", ":")))


def handler_for_streaming_events(version: Optional[int], forward: Callable[[str], None]) -> EventHandler:
    """Create an event handler streaming JSON-encoded events.

    Args:
        version: Schema version, or None to encode snapshots verbatim
        forward: Called with each encoded line (without a trailing newline)

    Raises:
        InvalidArgumentError: If the version is not supported
    """
    return EventStreamRecorder(encoder_for_version(version), forward)
