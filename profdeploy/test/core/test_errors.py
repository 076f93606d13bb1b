# SPDX-License-Identifier: MIT
"""Tests for profdeploy.core.errors module."""

from __future__ import annotations

from pathlib import Path

import pytest

from profdeploy.core.errors import (
    BranchSyntaxError,
    ConfigError,
    ErrorCode,
    ExternalCommandError,
    FileAccessError,
    PeerConflictError,
    SelectionError,
    SemverResolutionError,
)


class TestErrorCode:
    def test_values(self) -> None:
        assert int(ErrorCode.OK) == 0
        assert int(ErrorCode.ABORTED) == 1

    def test_is_success(self) -> None:
        assert ErrorCode.OK.is_success
        assert not ErrorCode.ABORTED.is_success

    def test_str(self) -> None:
        assert str(ErrorCode.ABORTED) == "aborted"


class TestMessages:
    def test_config_error(self) -> None:
        error = ConfigError("bad", path=Path("deploy.toml"), hint="fix it")
        assert error.message == "bad"
        assert error.hint == "fix it"

    def test_selection_error_hint_lists_profiles(self) -> None:
        error = SelectionError("Select at least one profile", available=("api", "web"))
        assert error.hint == "Select with --all or one of: api web"
        assert SelectionError("nothing").hint is None

    def test_peer_conflict(self) -> None:
        error = PeerConflictError(profile_id="api", denied_id="legacy")
        assert error.message == 'profile "api" cannot be deployed together with "legacy"'

    def test_branch_syntax(self) -> None:
        error = BranchSyntaxError("tag sort=up", "sort must be asc or desc")
        assert "tag sort=up" in error.message
        assert error.hint is not None and "semver=" in error.hint

    def test_semver_resolution(self) -> None:
        error = SemverResolutionError(range="^9.0.0", candidates=4)
        assert error.message == "no tag satisfies semver range '^9.0.0' (4 tags checked)"

    def test_external_command(self) -> None:
        error = ExternalCommandError(
            step="Clean-install packages",
            command=("npm", "ci", "--silent"),
            returncode=1,
            output="  npm ERR! missing lockfile\n",
        )
        assert error.message == "Failed `npm ci --silent` (Clean-install packages, exit 1)"
        assert error.hint == "npm ERR! missing lockfile"

    def test_external_command_without_output_has_no_hint(self) -> None:
        error = ExternalCommandError(step="git fetch", command=("git", "fetch"))
        assert error.hint is None

    def test_file_access(self) -> None:
        error = FileAccessError(Path("/srv/app/package.json"))
        assert error.message == "/srv/app/package.json: not writable"


def test_errors_are_frozen() -> None:
    error = ConfigError("x")
    with pytest.raises(AttributeError):
        error.message = "y"  # type: ignore[misc]
