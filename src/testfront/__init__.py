"""
testfront - command-line front end for running tests.

This package provides tools to:
- Parse test runner command-line arguments into a configuration
- Compose console, XML and JSON event recorders into one pipeline
- Derive the process exit status from recorded issues
- List discovered tests with unambiguous identifiers
"""

__version__ = "0.1.0"
__author__ = "testfront Team"
