"""Core entry point, configuration and event pipeline."""

from testfront.core.configuration import Configuration, configuration_for_entry_point
from testfront.core.entry_point import entry_point
from testfront.core.listing import list_tests_for_entry_point

__all__ = ["Configuration", "configuration_for_entry_point", "entry_point", "list_tests_for_entry_point"]
