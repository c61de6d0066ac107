"""Human-readable test output on a terminal."""

import os
import stat
import threading
from dataclasses import dataclass
from typing import Mapping, Optional, TextIO

from rich.console import Console
from rich.text import Text

from testfront.models import Event, EventContext, EventKind, TestID

SYMBOLS_ENVIRONMENT_VARIABLE = "TESTFRONT_SYMBOLS_ENABLED"

_COLOR_SYSTEMS = {4: "standard", 8: "256", 24: "truecolor"}


def _environment_flag(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    if value.strip().lower() in ("1", "true", "yes", "on"):
        return True
    if value.strip().lower() in ("0", "false", "no", "off"):
        return False
    return None


def _stream_supports_ansi_escape_codes(stream: TextIO) -> bool:
    """Check whether a stream writes to a terminal or a pipe.

    A pipe is assumed to forward output to another process's terminal.
    """
    try:
        if stream.isatty():
            return True
        return stat.S_ISFIFO(os.fstat(stream.fileno()).st_mode)
    except (AttributeError, OSError, ValueError):
        return False


@dataclass
class ConsoleOutputOptions:
    """Options for ConsoleOutputRecorder."""

    use_ansi_escape_codes: bool = False
    ansi_color_bit_depth: int = 4
    use_symbols: bool = True
    verbosity: int = 0

    @classmethod
    def for_stream(cls, stream: TextIO, environ: Optional[Mapping[str, str]] = None) -> "ConsoleOutputOptions":
        """Detect the options suited to a stream.

        Respects NO_COLOR, and reads COLORTERM and TERM for colour depth.
        """
        environ = os.environ if environ is None else environ
        result = cls()

        result.use_ansi_escape_codes = _stream_supports_ansi_escape_codes(stream)
        if result.use_ansi_escape_codes:
            if environ.get("NO_COLOR"):
                result.ansi_color_bit_depth = 1
            elif "truecolor" in environ.get("COLORTERM", ""):
                result.ansi_color_bit_depth = 24
            elif "256" in environ.get("TERM", ""):
                result.ansi_color_bit_depth = 8

        symbols = _environment_flag(environ.get(SYMBOLS_ENVIRONMENT_VARIABLE))
        if symbols is not None:
            result.use_symbols = symbols

        return result


class ConsoleOutputRecorder:
    """Event handler printing test progress and results.

    Verbosity below 0 prints only issues and the run summary, 0 adds test
    results, 1 adds test starts and 2 or more adds iteration boundaries.
    """

    def __init__(self, options: ConsoleOutputOptions, stream: Optional[TextIO] = None):
        self.options = options
        depth = options.ansi_color_bit_depth
        self.console = Console(
            file=stream,
            stderr=stream is None,
            force_terminal=options.use_ansi_escape_codes,
            color_system=_COLOR_SYSTEMS.get(depth) if options.use_ansi_escape_codes else None,
            no_color=depth <= 1,
            highlight=False,
            soft_wrap=True,
        )

        self._lock = threading.Lock()
        self._started_at: dict[TestID, float] = {}
        self._issue_counts: dict[TestID, int] = {}
        self._run_started_at = 0.0
        self._test_count = 0
        self._issue_count = 0
        self._known_issue_count = 0

    def _symbol(self, kind: str) -> tuple[str, str]:
        symbols = {
            "default": ("◇", "[ ]", "dim"),
            "pass": ("✔", "[PASS]", "green"),
            "fail": ("✘", "[FAIL]", "red"),
            "known": ("~", "[KNOWN]", "yellow"),
        }
        unicode_symbol, ascii_symbol, style = symbols[kind]
        return (unicode_symbol if self.options.use_symbols else ascii_symbol, style)

    def _print(self, kind: str, message: str) -> None:
        symbol, style = self._symbol(kind)
        self.console.print(Text.assemble((symbol, style), " ", message))

    @staticmethod
    def _name(event: Event, context: EventContext) -> str:
        if context.test is not None:
            return context.test.name
        return str(event.test_id)

    def __call__(self, event: Event, context: EventContext) -> None:
        with self._lock:
            self._record(event, context)

    def _record(self, event: Event, context: EventContext) -> None:
        verbosity = self.options.verbosity
        name = self._name(event, context)

        if event.kind == EventKind.RUN_STARTED:
            self._run_started_at = event.instant
            self._test_count = len(event.plan)
            if verbosity >= 0:
                self._print("default", f"Test run started with {len(event.plan)} tests.")

        elif event.kind == EventKind.ITERATION_STARTED:
            if verbosity >= 2:
                self._print("default", f"Iteration {(event.iteration or 0) + 1} started.")

        elif event.kind == EventKind.TEST_STARTED:
            self._started_at[event.test_id] = event.instant
            self._issue_counts[event.test_id] = 0
            if verbosity >= 1:
                self._print("default", f'Test "{name}" started.')

        elif event.kind == EventKind.ISSUE_RECORDED and event.issue is not None:
            description = event.issue.description
            if event.issue.is_known:
                self._known_issue_count += 1
                self._print("known", f'Test "{name}" recorded a known issue: {description}')
            else:
                self._issue_count += 1
                self._issue_counts[event.test_id] = self._issue_counts.get(event.test_id, 0) + 1
                self._print("fail", f'Test "{name}" recorded an issue: {description}')

        elif event.kind == EventKind.TEST_ENDED:
            elapsed = event.instant - self._started_at.pop(event.test_id, event.instant)
            issues = self._issue_counts.pop(event.test_id, 0)
            if verbosity >= 0:
                if issues:
                    self._print("fail", f'Test "{name}" failed after {elapsed:.3f} seconds with {issues} issue(s).')
                else:
                    self._print("pass", f'Test "{name}" passed after {elapsed:.3f} seconds.')

        elif event.kind == EventKind.ITERATION_ENDED:
            if verbosity >= 2:
                self._print("default", f"Iteration {(event.iteration or 0) + 1} ended.")

        elif event.kind == EventKind.RUN_ENDED:
            elapsed = event.instant - self._run_started_at
            known = f" ({self._known_issue_count} known)" if self._known_issue_count else ""
            if self._issue_count:
                self._print(
                    "fail",
                    f"Test run with {self._test_count} tests failed after {elapsed:.3f} seconds "
                    f"with {self._issue_count} issue(s){known}.",
                )
            else:
                self._print("pass", f"Test run with {self._test_count} tests passed after {elapsed:.3f} seconds{known}.")
