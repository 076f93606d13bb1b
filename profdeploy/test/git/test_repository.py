# SPDX-License-Identifier: MIT
"""Tests for git/repository.py."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from profdeploy.core.errors import ExternalCommandError
from profdeploy.core.result import Err, Ok
from profdeploy.git.repository import Repository
from profdeploy.platform.executor import ExecOptions, ExecutionContext


def make_repo(tmp_path: Path, stdout: str = "") -> tuple[Repository, MagicMock]:
    executor = MagicMock()
    executor.run.return_value = Ok(stdout)
    ctx = ExecutionContext(working_directory=tmp_path, env_overlay={"NODE_ENV": "production"})
    return Repository(executor, ctx), executor


def last_call(executor: MagicMock) -> tuple[list[str], ExecutionContext, ExecOptions]:
    argv, ctx, options = executor.run.call_args.args
    return list(argv), ctx, options


class TestQueries:
    """Read-only commands are buffered, quiet and flagged readonly."""

    def test_list_tags_parses_lines(self, tmp_path: Path) -> None:
        repo, executor = make_repo(tmp_path, "v1.0.0\n v1.1.0 \n\nv2.0.0\n")

        result = repo.list_tags()

        assert result == Ok(["v1.0.0", "v1.1.0", "v2.0.0"])
        argv, _, options = last_call(executor)
        assert argv == ["git", "tag", "--list"]
        assert options.readonly is True
        assert options.buffer is True
        assert options.log is False

    def test_list_tags_empty_repository(self, tmp_path: Path) -> None:
        repo, _ = make_repo(tmp_path, "")
        assert repo.list_tags() == Ok([])

    def test_current_branch(self, tmp_path: Path) -> None:
        repo, executor = make_repo(tmp_path, "develop")

        assert repo.current_branch() == Ok("develop")
        argv, _, options = last_call(executor)
        assert argv == ["git", "branch", "--show-current"]
        assert options.readonly is True

    def test_list_files_uses_glob_pathspec(self, tmp_path: Path) -> None:
        repo, executor = make_repo(tmp_path, "b.vue\na.vue\na.vue\n")

        result = repo.list_files("**/*.vue")

        assert result == Ok(["a.vue", "b.vue"])
        argv, _, options = last_call(executor)
        assert argv == [
            "git",
            "ls-files",
            "--cached",
            "--others",
            "--exclude-standard",
            "--",
            ":(glob)**/*.vue",
        ]
        assert options.readonly is True

    def test_query_error_is_propagated(self, tmp_path: Path) -> None:
        repo, executor = make_repo(tmp_path)
        error = ExternalCommandError(
            step="git tag --list",
            command=("git", "tag", "--list"),
            returncode=128,
            output="fatal: not a git repository",
        )
        executor.run.return_value = Err(error)

        assert repo.list_tags() == Err(error)


class TestMutations:
    """Commands that move HEAD, write refs or talk to a remote."""

    def test_fetch_forces_tags(self, tmp_path: Path) -> None:
        repo, executor = make_repo(tmp_path)

        repo.fetch("upstream")

        argv, _, options = last_call(executor)
        assert argv == ["git", "fetch", "--tags", "--force", "upstream"]
        assert options.readonly is False
        assert options.log is True
        assert options.timeout is not None and options.timeout > 60

    def test_checkout_branch_tracks_remote(self, tmp_path: Path) -> None:
        repo, executor = make_repo(tmp_path)

        repo.checkout_branch("origin", "release")

        argv, _, _ = last_call(executor)
        assert argv == ["git", "checkout", "--force", "-B", "release", "--track", "origin/release"]

    def test_reset_hard(self, tmp_path: Path) -> None:
        repo, executor = make_repo(tmp_path)

        repo.reset_hard("origin", "master")

        argv, _, options = last_call(executor)
        assert argv == ["git", "reset", "--hard", "origin/master"]
        assert options.readonly is False

    def test_checkout_tag_detaches(self, tmp_path: Path) -> None:
        repo, executor = make_repo(tmp_path)

        repo.checkout_tag("v2.1.0")

        argv, _, _ = last_call(executor)
        assert argv == ["git", "checkout", "--force", "--detach", "refs/tags/v2.1.0"]

    def test_release_commands(self, tmp_path: Path) -> None:
        repo, executor = make_repo(tmp_path)

        repo.add(["package.json"])
        repo.commit("v1.3.0")
        repo.push_branch("origin", "master")
        repo.create_tag("v1.3.0")
        repo.push_tag("origin", "v1.3.0")

        calls = [list(c.args[0]) for c in executor.run.call_args_list]
        assert calls == [
            ["git", "add", "--", "package.json"],
            ["git", "commit", "-m", "v1.3.0"],
            ["git", "push", "origin", "HEAD:master"],
            ["git", "tag", "v1.3.0"],
            ["git", "push", "origin", "v1.3.0"],
        ]


class TestContext:
    def test_every_command_runs_in_the_repository_context(self, tmp_path: Path) -> None:
        repo, executor = make_repo(tmp_path)

        repo.fetch("origin")
        repo.list_tags()
        repo.reset_hard("origin", "master")

        for call in executor.run.call_args_list:
            ctx = call.args[1]
            assert ctx is repo.context
            assert ctx.working_directory == tmp_path
            assert ctx.env_overlay == {"NODE_ENV": "production"}
