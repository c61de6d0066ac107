"""Tests for the testfront command."""

import sys
import textwrap

import pytest
from click.testing import CliRunner

from testfront.cli import main
from testfront.core.registry import registry

SAMPLE_SOURCE = textwrap.dedent(
    """
    from testfront.core.registry import suite, test

    @suite
    class CliSample:
        @test
        def passes(self):
            pass

        @test
        def fails(self):
            assert 1 == 2
    """
)


@pytest.fixture
def sample_module(tmp_path, monkeypatch):
    """Create an importable module declaring tests."""
    (tmp_path / "cli_sample_tests.py").write_text(SAMPLE_SOURCE)
    monkeypatch.syspath_prepend(str(tmp_path))
    yield "cli_sample_tests"
    registry.clear()
    sys.modules.pop("cli_sample_tests", None)


@pytest.fixture
def project_directory(tmp_path, monkeypatch):
    """Create a module in a directory that is only reachable as the working directory."""
    (tmp_path / "cli_project_tests.py").write_text(SAMPLE_SOURCE)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "path", [entry for entry in sys.path if entry not in ("", str(tmp_path))])
    yield "cli_project_tests"
    registry.clear()
    sys.modules.pop("cli_project_tests", None)


class TestMain:
    """Tests for main()."""

    def test_list_tests(self, sample_module):
        """Test listing tests from an imported module."""
        result = CliRunner().invoke(main, ["-I", sample_module, "--list-tests"])

        assert result.exit_code == 0
        assert "cli_sample_tests/CliSample/fails" in result.output
        assert "cli_sample_tests/CliSample/passes" in result.output

    def test_imports_from_working_directory(self, project_directory):
        """Test that modules in the working directory can be imported."""
        result = CliRunner().invoke(main, ["-I", project_directory, "--list-tests"])

        assert result.exit_code == 0
        assert "cli_project_tests/CliSample/passes" in result.output

    def test_run_with_failure(self, sample_module):
        """Test that a failing test gives a non-zero exit code."""
        result = CliRunner().invoke(main, ["--import", sample_module, "--no-parallel", "-q"])

        assert result.exit_code == 1

    def test_run_filtered(self, sample_module):
        """Test that arguments reach the entry point in order."""
        result = CliRunner().invoke(main, ["--import", sample_module, "--filter", "passes", "--verbose"])

        assert result.exit_code == 0

    def test_import_error(self):
        """Test that a module that cannot be imported is reported."""
        result = CliRunner().invoke(main, ["-I", "no_such_module_for_testfront"])

        assert result.exit_code == 1
        assert "no_such_module_for_testfront" in result.output
