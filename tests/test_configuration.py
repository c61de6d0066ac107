"""Tests for building a run configuration from arguments."""

import json
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from testfront.config import CommandLineArguments, parse_command_line_arguments
from testfront.core.configuration import (
    UNBOUNDED,
    Configuration,
    ContinuationCondition,
    RepetitionPolicy,
    configuration_for_entry_point,
)
from testfront.errors import InvalidArgumentError
from testfront.models import Event, EventContext, EventKind, SourceLocation, Test, TestID
from testfront.recorders.event_stream import (
    EventStreamRecorder,
    encoder_for_version,
    handler_for_streaming_events,
)
from testfront.recorders.junit_xml import JUnitXMLRecorder


def make_test(*components: str, module: str = "mod") -> Test:
    return Test(name=components[-1], id=TestID(module, tuple(components)))


class TestRepetitionPolicy:
    """Tests for RepetitionPolicy."""

    def test_default_values(self):
        """Test that the default policy runs once."""
        policy = RepetitionPolicy()
        assert policy.maximum_iteration_count == 1
        assert policy.continuation_condition == ContinuationCondition.ALWAYS

    def test_should_continue(self):
        """Test each continuation condition."""
        always = RepetitionPolicy()
        assert always.should_continue(issue_recorded=True)
        assert always.should_continue(issue_recorded=False)

        until = RepetitionPolicy(continuation_condition=ContinuationCondition.UNTIL_ISSUE_RECORDED)
        assert until.should_continue(issue_recorded=False)
        assert not until.should_continue(issue_recorded=True)

        while_ = RepetitionPolicy(continuation_condition=ContinuationCondition.WHILE_ISSUE_RECORDED)
        assert while_.should_continue(issue_recorded=True)
        assert not while_.should_continue(issue_recorded=False)


class TestConfigurationForEntryPoint:
    """Tests for configuration_for_entry_point()."""

    def build(self, *argv: str) -> Configuration:
        return configuration_for_entry_point(parse_command_line_arguments(list(argv)))

    def test_defaults(self):
        """Test the configuration built from no arguments."""
        configuration = self.build()
        assert configuration.is_parallelization_enabled is True
        assert configuration.test_filter.is_unfiltered
        assert configuration.repetition_policy == RepetitionPolicy()
        assert len(configuration.event_handler) == 0
        assert configuration.exit_test_handler is not None

    def test_no_parallel(self):
        """Test that --no-parallel disables parallelization."""
        assert self.build("--no-parallel").is_parallelization_enabled is False

    def test_parallel_unset_defaults_to_true(self):
        """Test that an unset parallel field enables parallelization."""
        configuration = configuration_for_entry_point(CommandLineArguments(parallel=None))
        assert configuration.is_parallelization_enabled is True

    def test_filter_and_skip(self):
        """Test that tests must match a --filter and no --skip."""
        configuration = self.build("--filter", "Alpha", "--filter", "Beta", "--skip", "Slow")
        tests = [
            make_test("Alpha", "one"),
            make_test("Beta", "two"),
            make_test("Alpha", "Slow"),
            make_test("Gamma", "three"),
        ]

        selected = configuration.test_filter.apply(tests)
        assert [str(test.id) for test in selected] == ["mod/Alpha/one", "mod/Beta/two"]

    def test_skip_only(self):
        """Test --skip without --filter."""
        configuration = self.build("--skip", "Slow")
        tests = [make_test("Fast"), make_test("Slow")]

        assert [test.name for test in configuration.test_filter.apply(tests)] == ["Fast"]

    def test_patterns_ignore_source_locations(self):
        """Test that patterns never match the file name or line number of a test."""
        located = Test(name="divide", id=TestID("mod", ("Calculator", "divide"), SourceLocation("calc.py", 12)))

        assert self.build("--skip", "py").test_filter.apply([located]) == [located]
        assert self.build("--filter", "12").test_filter.apply([located]) == []
        assert self.build("--filter", "Calculator/divide$").test_filter.apply([located]) == [located]

    def test_invalid_filter_pattern(self):
        """Test that a pattern that does not compile names the flag."""
        with pytest.raises(InvalidArgumentError) as excinfo:
            self.build("--filter", "Valid", "--skip", "(unclosed")

        assert excinfo.value.name == "--skip"
        assert excinfo.value.value == "(unclosed"
        assert str(excinfo.value) == 'Invalid value "(unclosed" for argument --skip'

    def test_repetitions(self):
        """Test --repetitions alone."""
        policy = self.build("--repetitions", "3").repetition_policy
        assert policy.maximum_iteration_count == 3
        assert policy.continuation_condition == ContinuationCondition.ALWAYS

    def test_non_positive_repetitions_are_ignored(self):
        """Test that a repetition count below one is ignored."""
        assert self.build("--repetitions", "0").repetition_policy.maximum_iteration_count == 1
        assert self.build("--repetitions", "-2").repetition_policy.maximum_iteration_count == 1

    def test_repeat_until_fail(self):
        """Test --repeat-until fail alone repeats without bound."""
        policy = self.build("--repeat-until", "fail").repetition_policy
        assert policy.continuation_condition == ContinuationCondition.UNTIL_ISSUE_RECORDED
        assert policy.maximum_iteration_count == UNBOUNDED == sys.maxsize

    def test_repeat_until_pass_is_case_insensitive(self):
        """Test --repeat-until PASS."""
        policy = self.build("--repeat-until", "PASS").repetition_policy
        assert policy.continuation_condition == ContinuationCondition.WHILE_ISSUE_RECORDED

    def test_repeat_until_with_repetitions(self):
        """Test that an explicit count bounds --repeat-until."""
        policy = self.build("--repeat-until", "fail", "--repetitions", "5").repetition_policy
        assert policy.continuation_condition == ContinuationCondition.UNTIL_ISSUE_RECORDED
        assert policy.maximum_iteration_count == 5

    def test_repeat_until_invalid(self):
        """Test that an unknown --repeat-until keyword is rejected."""
        with pytest.raises(InvalidArgumentError) as excinfo:
            self.build("--repeat-until", "bogus")

        assert excinfo.value.name == "--repeat-until"
        assert excinfo.value.value == "bogus"

    def test_unsupported_event_stream_version(self):
        """Test that an unknown schema version is rejected before creating the file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "events.jsonl"

            with pytest.raises(InvalidArgumentError) as excinfo:
                self.build(
                    "--experimental-event-stream-output", str(path),
                    "--experimental-event-stream-version", "7",
                )

            assert excinfo.value.name == "--experimental-event-stream-version"
            assert excinfo.value.value == "7"
            assert not path.exists()

    def test_output_sinks_are_installed(self):
        """Test that the XML recorder runs before the event stream recorder."""
        with tempfile.TemporaryDirectory() as tmpdir:
            xml_path = Path(tmpdir) / "results.xml"
            stream_path = Path(tmpdir) / "events.jsonl"

            configuration = self.build(
                "--xunit-output", str(xml_path),
                "--experimental-event-stream-output", str(stream_path),
            )
            with configuration.resources:
                handlers = configuration.event_handler.handlers
                assert len(handlers) == 2
                assert isinstance(handlers[0], JUnitXMLRecorder)
                assert isinstance(handlers[1], EventStreamRecorder)

                configuration.event_handler(Event(EventKind.RUN_STARTED), EventContext())
                configuration.event_handler(Event(EventKind.RUN_ENDED), EventContext())

            assert "<testsuites>" in xml_path.read_text()
            lines = stream_path.read_text().splitlines()
            assert [json.loads(line)["event"]["kind"] for line in lines] == ["runStarted", "runEnded"]

    def test_event_stream_handler_is_created_for_version(self):
        """Test that the event stream sink is created for the requested version."""
        with tempfile.TemporaryDirectory() as tmpdir:
            stream_path = Path(tmpdir) / "events.jsonl"

            with patch(
                "testfront.core.configuration.handler_for_streaming_events",
                wraps=handler_for_streaming_events,
            ) as factory:
                configuration = self.build(
                    "--experimental-event-stream-output", str(stream_path),
                    "--experimental-event-stream-version", "0",
                )

            with configuration.resources:
                assert factory.call_count == 1
                assert factory.call_args.args[0] == 0
                (handler,) = configuration.event_handler.handlers
                assert isinstance(handler, EventStreamRecorder)
                assert handler.encoder is encoder_for_version(0)

    def test_unwritable_output_path(self):
        """Test that an output file that cannot be opened is an error."""
        with pytest.raises(OSError):
            self.build("--xunit-output", "/nonexistent/dir/results.xml")
