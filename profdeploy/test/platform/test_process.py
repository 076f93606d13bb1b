# SPDX-License-Identifier: MIT
"""Tests for profdeploy.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from profdeploy.core.result import Err, Ok
from profdeploy.platform.process import ProcessError, run, run_streaming

PY = sys.executable


class TestProcessError:
    """Test ProcessError dataclass."""

    def test_str_short_command(self) -> None:
        error = ProcessError(
            command=("git", "fetch"),
            returncode=128,
            stdout="",
            stderr="fatal: 'origin' does not appear to be a git repository",
        )
        assert str(error) == "git fetch failed (exit 128)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("pm2", "restart", "api-a", "api-b", "--update-env"),
            returncode=1,
            stdout="",
            stderr="error",
        )
        assert str(error) == "pm2 restart api-a ... failed (exit 1)"

    def test_output_prefers_stderr(self) -> None:
        error = ProcessError(("npm", "ci"), 1, "stdout text", "  stderr text\n")
        assert error.output == "stderr text"

    def test_output_falls_back_to_stdout(self) -> None:
        error = ProcessError(("pm2", "describe", "x"), 1, "[PM2] x doesn't exist\n", "")
        assert error.output == "[PM2] x doesn't exist"

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestRun:
    """Test run function."""

    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "import sys; sys.exit(42)"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == 42

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert len(result.error.stderr) > 0

    def test_captures_stderr(self, tmp_path: Path) -> None:
        result = run(
            [PY, "-c", "import sys; sys.stderr.write('error msg'); sys.exit(1)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert "error msg" in result.error.stderr

    def test_uses_cwd(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{}")

        result = run([PY, "-c", "import os; print(os.listdir('.'))"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "package.json" in result.value

    def test_env_replaces_inherited_environment(self, tmp_path: Path) -> None:
        result = run(
            [PY, "-c", "import os; print(os.environ.get('NODE_ENV', 'unset'))"],
            cwd=tmp_path,
            env={"NODE_ENV": "production"},
        )

        assert isinstance(result, Ok)
        assert result.value.strip() == "production"

    def test_timeout(self, tmp_path: Path) -> None:
        result = run(
            [PY, "-c", "import time; time.sleep(10)"],
            cwd=tmp_path,
            timeout=0.1,
        )

        assert isinstance(result, Err)
        assert "timed out" in result.error.stderr.lower()


class TestRunStreaming:
    """Test run_streaming function."""

    def test_lines_are_handed_over_in_order(self, tmp_path: Path) -> None:
        seen: list[str] = []
        result = run_streaming(
            [PY, "-c", "print('one'); print('two')"],
            cwd=tmp_path,
            on_line=seen.append,
        )

        assert isinstance(result, Ok)
        assert seen == ["one", "two"]
        assert result.value == "one\ntwo"

    def test_stderr_is_merged(self, tmp_path: Path) -> None:
        seen: list[str] = []
        result = run_streaming(
            [PY, "-c", "import sys; sys.stderr.write('warn\\n')"],
            cwd=tmp_path,
            on_line=seen.append,
        )

        assert isinstance(result, Ok)
        assert seen == ["warn"]

    def test_failure_keeps_output_tail(self, tmp_path: Path) -> None:
        script = "import sys\nfor i in range(50): print(i)\nsys.exit(3)"
        result = run_streaming([PY, "-c", script], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == 3
        tail = result.error.stderr.splitlines()
        assert len(tail) == 20
        assert tail[-1] == "49"

    def test_timeout_kills_the_process(self, tmp_path: Path) -> None:
        seen: list[str] = []
        result = run_streaming(
            [PY, "-c", "import time; print('started', flush=True); time.sleep(10)"],
            cwd=tmp_path,
            on_line=seen.append,
            timeout=2.0,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert "timed out" in result.error.stderr.lower()
        assert result.error.stdout == "started"
        assert seen == ["started"]

    def test_finishes_within_timeout(self, tmp_path: Path) -> None:
        result = run_streaming([PY, "-c", "print('done')"], cwd=tmp_path, timeout=30)

        assert result == Ok("done")

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run_streaming(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
