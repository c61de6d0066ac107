"""Command-line arguments for testfront."""

import json
from pathlib import Path
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class CommandLineArguments(BaseModel):
    """Parsed command-line arguments passed to the test entry point.

    Field names are snake_case in Python and camelCase when serialized, so a
    configuration file written by another tool can be loaded directly.
    """

    model_config = ConfigDict(populate_by_name=True)

    list_tests: Optional[bool] = Field(default=False, alias="listTests", description="Value of --list-tests")
    parallel: Optional[bool] = Field(default=True, description="False when --no-parallel is passed")
    verbose: Optional[bool] = Field(default=False, description="Value of --verbose / -v")
    very_verbose: Optional[bool] = Field(default=False, alias="veryVerbose", description="Value of --very-verbose / --vv")
    quiet: Optional[bool] = Field(default=False, description="Value of --quiet / -q")
    explicit_verbosity: Optional[int] = Field(
        default=None,
        alias="verbosity",
        description="Value of --verbosity; see resolve_verbosity() for the effective value",
    )
    xunit_output: Optional[str] = Field(default=None, alias="xunitOutput", description="Path of the JUnit XML report")
    experimental_event_stream_output: Optional[str] = Field(
        default=None,
        alias="experimentalEventStreamOutput",
        description="Path of the JSON Lines event stream (a regular file or a named pipe)",
    )
    experimental_event_stream_version: Optional[int] = Field(
        default=None,
        alias="experimentalEventStreamVersion",
        description="Event stream schema version; None encodes event snapshots verbatim",
    )
    filter: Optional[list[str]] = Field(default=None, description="Values of --filter")
    skip: Optional[list[str]] = Field(default=None, description="Values of --skip")
    repetitions: Optional[int] = Field(default=None, description="Value of --repetitions")
    repeat_until: Optional[str] = Field(default=None, alias="repeatUntil", description="Value of --repeat-until")
    host_test_identifier: Optional[str] = Field(
        default=None,
        alias="hostTestIdentifier",
        description="Identifier of the host test case when embedded in another harness",
    )

    @classmethod
    def from_file(cls, path: Path | str) -> "CommandLineArguments":
        """Load arguments from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        return cls.model_validate(data)

    def to_json(self) -> str:
        """Serialize to JSON using the camelCase field names."""
        return self.model_dump_json(by_alias=True)

    def to_file(self, path: Path | str) -> None:
        """Save arguments to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(by_alias=True), f, indent=2)


def resolve_verbosity(args: CommandLineArguments) -> int:
    """Return the effective verbosity level.

    An explicit --verbosity wins; otherwise --very-verbose gives 2, --verbose
    gives 1 and --quiet gives -1.
    """
    if args.explicit_verbosity is not None:
        return args.explicit_verbosity
    if args.very_verbose:
        return 2
    if args.verbose:
        return 1
    if args.quiet:
        return -1
    return 0


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


def parse_command_line_arguments(args: Sequence[str]) -> CommandLineArguments:
    """Interpret a sequence of command-line arguments.

    Args:
        args: The arguments, not including the executable path

    Returns:
        The parsed arguments. Unrecognized tokens are ignored, as are flags
        that need an operand but appear last.

    Raises:
        FileNotFoundError: If --experimental-configuration-path names a missing file
        pydantic.ValidationError: If that file is not a valid arguments record
    """
    args = list(args)

    def operand(label: str) -> Optional[str]:
        # Operand following the first occurrence of label, if there is one.
        if label not in args:
            return None
        index = args.index(label)
        if index + 1 >= len(args):
            return None
        return args[index + 1]

    def operands(label: str) -> list[str]:
        return [args[i + 1] for i, arg in enumerate(args) if arg == label and i + 1 < len(args)]

    # The configuration file is read first so that explicit flags below can
    # override whatever it sets.
    result = CommandLineArguments()
    configuration_path = operand("--experimental-configuration-path")
    if configuration_path is not None:
        result = CommandLineArguments.from_file(configuration_path)

    event_stream_output = operand("--experimental-event-stream-output")
    if event_stream_output is not None:
        result.experimental_event_stream_output = event_stream_output
    event_stream_version = operand("--experimental-event-stream-version")
    if event_stream_version is not None and _parse_int(event_stream_version) is not None:
        result.experimental_event_stream_version = _parse_int(event_stream_version)

    xunit_output = operand("--xunit-output")
    if xunit_output is not None:
        result.xunit_output = xunit_output

    if "--list-tests" in args:
        result.list_tests = True

    if "--no-parallel" in args:
        result.parallel = False

    verbosity = operand("--verbosity")
    if verbosity is not None and _parse_int(verbosity) is not None:
        result.explicit_verbosity = _parse_int(verbosity)
    if "--verbose" in args or "-v" in args:
        result.verbose = True
    if "--very-verbose" in args or "--vv" in args:
        result.very_verbose = True
    if "--quiet" in args or "-q" in args:
        result.quiet = True

    filters = operands("--filter")
    if filters or result.filter is None:
        result.filter = filters
    skips = operands("--skip")
    if skips or result.skip is None:
        result.skip = skips

    repetitions = operand("--repetitions")
    if repetitions is not None and _parse_int(repetitions) is not None:
        result.repetitions = _parse_int(repetitions)
    repeat_until = operand("--repeat-until")
    if repeat_until is not None:
        result.repeat_until = repeat_until

    return result
