"""Event recorders for console, JUnit XML and JSON event stream output."""
