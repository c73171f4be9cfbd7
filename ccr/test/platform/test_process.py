"""Tests for ccr.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from ccr.core.result import Err, Ok
from ccr.platform.process import ProcessError, run


class TestProcessError:
    """Test ProcessError dataclass."""

    def test_str_short_command(self) -> None:
        error = ProcessError(
            command=("git", "tag"),
            returncode=128,
            stdout="",
            stderr="fatal: not a git repository",
        )
        assert str(error) == "git tag failed (exit 128)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("git", "-C", "/repo", "rev-list", "--count"),
            returncode=1,
            stdout="",
            stderr="error",
        )
        assert str(error) == "git -C /repo ... failed (exit 1)"

    def test_frozen(self) -> None:
        error = ProcessError(("git",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestRun:
    """Test run function."""

    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('v1.0.0')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert result.value.strip() == "v1.0.0"

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(42)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 42
        assert result.error.stderr == "bad"

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1

    def test_timeout(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import time; time.sleep(5)"],
            cwd=tmp_path,
            timeout=0.2,
        )

        assert isinstance(result, Err)
        assert "timed out" in result.error.stderr
