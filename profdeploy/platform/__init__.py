# SPDX-License-Identifier: MIT
"""Platform abstraction layer: processes, files and the command executor."""

from .executor import (
    CommandExecutor,
    DryRunExecutor,
    ExecOptions,
    ExecutionContext,
    StepExecutor,
    SubprocessExecutor,
    child_environment,
)
from .files import atomic_write_text, is_writable, newest_mtime
from .process import ProcessError, run, run_streaming

__all__ = [
    # executor
    "CommandExecutor",
    "DryRunExecutor",
    "ExecOptions",
    "ExecutionContext",
    "StepExecutor",
    "SubprocessExecutor",
    "child_environment",
    # files
    "atomic_write_text",
    "is_writable",
    "newest_mtime",
    # process
    "ProcessError",
    "run",
    "run_streaming",
]
