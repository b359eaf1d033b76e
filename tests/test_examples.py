"""Smoke tests for all example scripts.

These tests verify that examples run without errors.
They don't verify correctness of results, just that the code executes.
"""

import subprocess
import sys
from pathlib import Path

EXAMPLES_DIR = Path(__file__).parent.parent / "gnc_trainer" / "examples"


def run_example(example_name: str, timeout: int = 120) -> subprocess.CompletedProcess:
    """Run an example script and return the result."""
    script_path = EXAMPLES_DIR / f"{example_name}.py"

    result = subprocess.run(
        [sys.executable, str(script_path)],
        capture_output=True,
        text=True,
        timeout=timeout,
        cwd=Path(__file__).parent.parent,  # Run from project root
    )

    return result


class TestExamplesSmoke:
    """Smoke tests that verify examples run without crashing."""

    def test_lunar_descent_runs(self) -> None:
        """Test that lunar_descent.py runs without errors."""
        result = run_example("lunar_descent")
        assert result.returncode == 0, f"lunar_descent failed:\n{result.stderr}"

    def test_script_controller_runs(self) -> None:
        """Test that script_controller.py runs without errors."""
        result = run_example("script_controller")
        assert result.returncode == 0, f"script_controller failed:\n{result.stderr}"


class TestExamplesOutput:
    """Tests that verify examples produce expected output."""

    def test_lunar_descent_reports_outcome(self) -> None:
        """Test that lunar_descent prints the run summary."""
        result = run_example("lunar_descent")
        assert "Lunar Descent" in result.stdout
        assert "ticks" in result.stdout

    def test_script_controller_shows_console(self) -> None:
        """Test that script_controller echoes controller output."""
        result = run_example("script_controller")
        assert "touchdown" in result.stdout
        assert "Completed levels" in result.stdout
