"""Errors raised while interpreting entry point arguments."""


class EntryPointError(Exception):
    """Raised when the entry point cannot start a test run."""

    pass


class InvalidArgumentError(EntryPointError):
    """Raised when the value passed for a command-line argument is invalid."""

    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value
        super().__init__(f'Invalid value "{value}" for argument {name}')


class FeatureUnavailableError(EntryPointError):
    """Raised when a requested feature cannot be used on this platform."""

    def __init__(self, explanation: str):
        self.explanation = explanation
        super().__init__(explanation)
