# SPDX-License-Identifier: MIT
"""Command executor: the single seam through which external commands run.

Every call carries an explicit `ExecutionContext` (working directory plus
environment overlay) instead of relying on the process-wide cwd and
`os.environ`, so one profile's settings can never leak into the next.

Three implementations:
- `SubprocessExecutor` runs commands for real, streaming or buffering output.
- `DryRunExecutor` records and announces mutating commands without running them.
- `StepExecutor` asks the operator before each mutating command.

Read-only queries (`ExecOptions(readonly=True)`, e.g. `git tag --list`) pass
straight through the dry-run and step wrappers; the pipeline needs their
answers to decide what it would do.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from profdeploy.core.config import INTERNAL_ENV_PREFIX
from profdeploy.core.errors import ExternalCommandError
from profdeploy.core.result import Err, Ok, Result
from profdeploy.output.console import ConsoleProtocol, Style
from profdeploy.platform.process import ProcessError, run, run_streaming

__all__ = [
    "CommandExecutor",
    "DryRunExecutor",
    "ExecOptions",
    "ExecutionContext",
    "StepExecutor",
    "SubprocessExecutor",
    "child_environment",
]


def _empty_env() -> dict[str, str]:
    return {}


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Where and with which extra environment a profile's commands run."""

    working_directory: Path
    env_overlay: dict[str, str] = field(default_factory=_empty_env)


@dataclass(frozen=True, slots=True)
class ExecOptions:
    """Per-invocation options.

    Attributes:
        step: What the command does, used in error messages.
        log: Echo the command and stream its output to the operator.
        buffer: Capture output instead of streaming it.
        trim: Strip surrounding whitespace from the returned output.
        env: Extra variables for this invocation only.
        readonly: The command does not change anything (runs in dry/step mode).
        timeout: Seconds before the command is killed (None for no limit).
    """

    step: str = ""
    log: bool = True
    buffer: bool = False
    trim: bool = True
    env: Mapping[str, str] | None = None
    readonly: bool = False
    timeout: float | None = None


_DEFAULT_OPTIONS = ExecOptions()


class CommandExecutor(Protocol):
    """Runs one external command."""

    def run(
        self,
        argv: Sequence[str],
        ctx: ExecutionContext,
        options: ExecOptions | None = None,
    ) -> Result[str, ExternalCommandError]: ...


def child_environment(
    base: Mapping[str, str],
    ctx: ExecutionContext,
    extra: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Inherited environment without orchestrator-only variables, plus overlays."""
    env = {k: v for k, v in base.items() if not k.startswith(INTERNAL_ENV_PREFIX)}
    env.update(ctx.env_overlay)
    if extra:
        env.update(extra)
    return env


def _command_error(argv: Sequence[str], step: str, error: ProcessError) -> ExternalCommandError:
    return ExternalCommandError(
        step=step or argv[0],
        command=tuple(argv),
        returncode=error.returncode,
        output=error.output,
    )


class SubprocessExecutor:
    """Runs commands with `profdeploy.platform.process`."""

    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._console = console
        self._environ = environ

    def run(
        self,
        argv: Sequence[str],
        ctx: ExecutionContext,
        options: ExecOptions | None = None,
    ) -> Result[str, ExternalCommandError]:
        opts = options or _DEFAULT_OPTIONS
        env = child_environment(
            os.environ if self._environ is None else self._environ, ctx, opts.env
        )
        cmd = list(argv)

        if opts.log:
            self._console.print(f"$ {shlex.join(cmd)}", Style.DIM)

        if opts.buffer or not opts.log:
            result = run(cmd, cwd=ctx.working_directory, env=env, timeout=opts.timeout)
        else:
            result = run_streaming(
                cmd,
                cwd=ctx.working_directory,
                env=env,
                on_line=lambda line: self._console.print(f"-> {line}", Style.DIM),
                timeout=opts.timeout,
            )

        match result:
            case Err(e):
                return Err(_command_error(cmd, opts.step, e))
            case Ok(stdout):
                return Ok(stdout.strip() if opts.trim else stdout)


class DryRunExecutor:
    """Announces mutating commands instead of running them."""

    def __init__(self, inner: CommandExecutor, *, console: ConsoleProtocol) -> None:
        self._inner = inner
        self._console = console
        self.commands: list[tuple[str, ...]] = []

    def run(
        self,
        argv: Sequence[str],
        ctx: ExecutionContext,
        options: ExecOptions | None = None,
    ) -> Result[str, ExternalCommandError]:
        opts = options or _DEFAULT_OPTIONS
        if opts.readonly:
            return self._inner.run(argv, ctx, opts)

        self.commands.append(tuple(argv))
        self._console.note(f"--dry-run mode, would exec `{shlex.join(argv)}`")
        return Ok("")


class StepExecutor:
    """Asks for a yes/no confirmation before each mutating command.

    A "no" aborts the run with an `ExternalCommandError`.
    """

    def __init__(
        self,
        inner: CommandExecutor,
        *,
        confirm: Callable[[str], bool],
    ) -> None:
        self._inner = inner
        self._confirm = confirm

    def run(
        self,
        argv: Sequence[str],
        ctx: ExecutionContext,
        options: ExecOptions | None = None,
    ) -> Result[str, ExternalCommandError]:
        opts = options or _DEFAULT_OPTIONS
        if opts.readonly:
            return self._inner.run(argv, ctx, opts)

        if not self._confirm(f"Run `{shlex.join(argv)}` in {ctx.working_directory}"):
            return Err(
                ExternalCommandError(
                    step=opts.step or argv[0],
                    command=tuple(argv),
                    returncode=-1,
                    output="declined by operator",
                )
            )
        return self._inner.run(argv, ctx, opts)
