# SPDX-License-Identifier: MIT
"""Git repository abstraction.

`Repository` wraps the handful of git commands the deploy pipeline needs.
Commands run through the command executor, inside the profile's execution
context, so dry-run and step modes apply to them like to anything else.
Queries are flagged read-only; anything that moves HEAD, writes refs or talks
to a remote is not.

Usage:
    repo = Repository(executor, ctx)

    match repo.current_branch():
        case Ok(branch):
            print(f"Branch: {branch or '(detached)'}")
        case Err(e):
            print(e.message)
"""

from __future__ import annotations

from profdeploy.core.errors import ExternalCommandError
from profdeploy.core.result import Err, Ok, Result
from profdeploy.platform.executor import CommandExecutor, ExecOptions, ExecutionContext

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

__all__ = ["Repository"]


class Repository:
    """Git operations on the repository at a profile's working directory."""

    def __init__(self, executor: CommandExecutor, ctx: ExecutionContext) -> None:
        self._executor = executor
        self._ctx = ctx

    @property
    def context(self) -> ExecutionContext:
        return self._ctx

    def fetch(self, remote: str) -> Result[str, ExternalCommandError]:
        """Fetch branches and tags (tags moved upstream are overwritten)."""
        return self._run(
            ["fetch", "--tags", "--force", remote],
            step=f"git fetch {remote}",
            network=True,
        )

    def list_tags(self) -> Result[list[str], ExternalCommandError]:
        result = self._run(["tag", "--list"], step="git tag --list", readonly=True)
        match result:
            case Err(_):
                return result
            case Ok(stdout):
                return Ok([line.strip() for line in stdout.splitlines() if line.strip()])

    def current_branch(self) -> Result[str, ExternalCommandError]:
        """Current branch name, empty string for a detached HEAD."""
        return self._run(
            ["branch", "--show-current"],
            step="git branch --show-current",
            readonly=True,
        )

    def checkout_branch(self, remote: str, branch: str) -> Result[str, ExternalCommandError]:
        """Force (re)create `branch` from `remote/branch` and switch to it."""
        return self._run(
            ["checkout", "--force", "-B", branch, "--track", f"{remote}/{branch}"],
            step=f"git checkout {branch}",
        )

    def reset_hard(self, remote: str, branch: str) -> Result[str, ExternalCommandError]:
        return self._run(
            ["reset", "--hard", f"{remote}/{branch}"],
            step=f"git reset {remote}/{branch}",
        )

    def checkout_tag(self, tag: str) -> Result[str, ExternalCommandError]:
        return self._run(
            ["checkout", "--force", "--detach", f"refs/tags/{tag}"],
            step=f"git checkout {tag}",
        )

    def list_files(self, pattern: str) -> Result[list[str], ExternalCommandError]:
        """Tracked and untracked-but-not-ignored files matching a glob pattern.

        Paths are relative to the working directory.
        """
        result = self._run(
            [
                "ls-files",
                "--cached",
                "--others",
                "--exclude-standard",
                "--",
                f":(glob){pattern}",
            ],
            step="git ls-files",
            readonly=True,
            log=False,
        )
        match result:
            case Err(_):
                return result
            case Ok(stdout):
                return Ok(sorted({line for line in stdout.splitlines() if line.strip()}))

    def add(self, paths: list[str]) -> Result[str, ExternalCommandError]:
        return self._run(["add", "--", *paths], step="git add")

    def commit(self, message: str) -> Result[str, ExternalCommandError]:
        return self._run(["commit", "-m", message], step="git commit")

    def create_tag(self, tag: str) -> Result[str, ExternalCommandError]:
        return self._run(["tag", tag], step=f"git tag {tag}")

    def push_branch(self, remote: str, branch: str) -> Result[str, ExternalCommandError]:
        """Push the checked-out HEAD to `remote/branch`."""
        return self._run(
            ["push", remote, f"HEAD:{branch}"],
            step=f"git push {remote} {branch}",
            network=True,
        )

    def push_tag(self, remote: str, tag: str) -> Result[str, ExternalCommandError]:
        return self._run(["push", remote, tag], step=f"git push {remote} {tag}", network=True)

    def _run(
        self,
        args: list[str],
        *,
        step: str,
        readonly: bool = False,
        network: bool = False,
        log: bool | None = None,
    ) -> Result[str, ExternalCommandError]:
        options = ExecOptions(
            step=step,
            # queries are captured quietly, mutations stream to the operator
            log=not readonly if log is None else log,
            buffer=readonly,
            readonly=readonly,
            timeout=_GIT_NETWORK_TIMEOUT_SECONDS if network else _GIT_TIMEOUT_SECONDS,
        )
        return self._executor.run(["git", *args], self._ctx, options)
