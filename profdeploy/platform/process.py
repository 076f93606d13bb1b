# SPDX-License-Identifier: MIT
"""Subprocess execution with Result-based error handling.

This is the only module that talks to `subprocess` directly. Everything
else goes through the command executor (`profdeploy.platform.executor`).

Usage:
    result = run(["git", "tag", "--list"], cwd=Path("/srv/app"))
    match result:
        case Ok(stdout):
            tags = stdout.splitlines()
        case Err(error):
            print(f"Failed: {error.stderr}")
"""

from __future__ import annotations

import subprocess
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from profdeploy.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_streaming"]

# Lines of streamed output kept for error reports.
_TAIL_LINES = 20


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: The exit code of the process (-1 if it never ran).
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"

    @property
    def output(self) -> str:
        """stderr if there is any, else stdout."""
        return self.stderr.strip() or self.stdout.strip()


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return its stdout.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        env: Full environment for the child (uses current env if None).
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=e.stdout if isinstance(e.stdout, str) else "",
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)


def run_streaming(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    on_line: Callable[[str], None] | None = None,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command, handing each output line to `on_line` as it arrives.

    stderr is merged into stdout so the operator sees both in order. The
    returned string is the full output; on failure the error carries the last
    lines of it. A process still running after `timeout` seconds is killed.
    """
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(cwd),
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    expired = threading.Event()

    def expire() -> None:
        expired.set()
        proc.kill()

    timer = threading.Timer(timeout, expire) if timeout is not None else None
    if timer is not None:
        timer.daemon = True
        timer.start()

    lines: list[str] = []
    tail: deque[str] = deque(maxlen=_TAIL_LINES)
    assert proc.stdout is not None
    try:
        with proc.stdout:
            for raw in proc.stdout:
                line = raw.rstrip("\n")
                lines.append(line)
                tail.append(line)
                if on_line is not None:
                    on_line(line)
        returncode = proc.wait()
    finally:
        if timer is not None:
            timer.cancel()

    output = "\n".join(lines)
    if expired.is_set():
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=output,
                stderr=f"Command timed out after {timeout}s",
            )
        )
    if returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=returncode,
                stdout=output,
                stderr="\n".join(tail),
            )
        )
    return Ok(output)
