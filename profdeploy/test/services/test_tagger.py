# SPDX-License-Identifier: MIT
"""Tests for release version bumping and tagging."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from profdeploy.core.errors import ExternalCommandError, FileAccessError
from profdeploy.core.profile import Profile
from profdeploy.core.result import Err, Ok
from profdeploy.output.console import MockConsole
from profdeploy.services.semver import SemVer
from profdeploy.services.tagger import VersionTagger, bump, current_version


def make_profile(path: Path, **kwargs: object) -> Profile:
    return Profile(id="api", path=path, semver_policy="minor", **kwargs)  # type: ignore[arg-type]


def make_repository(tags: list[str]) -> MagicMock:
    repository = MagicMock()
    repository.list_tags.return_value = Ok(tags)
    for name in ("add", "commit", "push_branch", "create_tag", "push_tag"):
        getattr(repository, name).return_value = Ok("")
    return repository


class TestBump:
    @pytest.mark.parametrize(
        ("policy", "expected"),
        [("patch", "1.4.4"), ("minor", "1.5.0"), ("major", "2.0.0")],
    )
    def test_policies(self, policy: str, expected: str) -> None:
        result = bump("1.4.3", policy)
        assert isinstance(result, Ok)
        assert str(result.value) == expected

    def test_minor_bump_tag(self) -> None:
        result = bump("1.4.3", "minor")
        assert isinstance(result, Ok)
        assert result.value.to_tag() == "v1.5.0"

    def test_unknown_policy(self) -> None:
        assert isinstance(bump("1.0.0", "huge"), Err)

    def test_unparseable_version(self) -> None:
        assert isinstance(bump("1.0", "patch"), Err)


class TestCurrentVersion:
    def test_from_manifest(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text('{"version": "3.2.1"}')
        result = current_version(make_profile(tmp_path), ["v3.0.0"])
        assert result == Ok(SemVer(3, 2, 1))

    def test_released_tag_ahead_of_manifest(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text('{"version": "1.4.3"}')
        result = current_version(make_profile(tmp_path), ["v1.4.3", "v1.4.4"])
        assert result == Ok(SemVer(1, 4, 4))

    def test_highest_tag_without_manifest(self, tmp_path: Path) -> None:
        result = current_version(make_profile(tmp_path), ["v1.2.0", "v1.10.0", "v1.9.9", "x"])
        assert result == Ok(SemVer(1, 10, 0))

    def test_nothing_yet(self, tmp_path: Path) -> None:
        assert current_version(make_profile(tmp_path), []) == Ok(SemVer(0, 0, 0))

    def test_bad_manifest_version(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text('{"version": "one"}')
        assert isinstance(current_version(make_profile(tmp_path), []), Err)


class TestVersionTagger:
    def test_tags_and_pushes(self, tmp_path: Path) -> None:
        repository = make_repository(["v1.4.3"])
        console = MockConsole()

        result = VersionTagger(console=console).release(make_profile(tmp_path), repository)

        assert result == Ok("v1.5.0")
        repository.create_tag.assert_called_once_with("v1.5.0")
        repository.push_tag.assert_called_once_with("origin", "v1.5.0")
        repository.commit.assert_not_called()
        repository.push_branch.assert_not_called()
        assert "   * 1.4.3 -> 1.5.0 (minor)" in console.messages

    def test_records_version_in_manifest(self, tmp_path: Path) -> None:
        manifest = tmp_path / "package.json"
        manifest.write_text('{"name": "api", "version": "1.4.3"}')
        repository = make_repository([])

        result = VersionTagger(console=MockConsole()).release(
            make_profile(tmp_path, semver_bump_package_manifest=True), repository
        )

        assert result == Ok("v1.5.0")
        assert json.loads(manifest.read_text())["version"] == "1.5.0"
        repository.add.assert_called_once_with(["package.json"])
        repository.commit.assert_called_once_with("v1.5.0")
        repository.push_branch.assert_called_once_with("origin", "master")
        names = [call[0] for call in repository.method_calls]
        assert names.index("commit") < names.index("push_branch") < names.index("create_tag")
        assert names.index("create_tag") < names.index("push_tag")

    def test_version_commit_stays_local_on_tag_checkout(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text('{"version": "1.4.3"}')
        repository = make_repository([])
        console = MockConsole()
        profile = make_profile(
            tmp_path, semver_bump_package_manifest=True, branch="tag semver=^1.0.0"
        )

        result = VersionTagger(console=console).release(profile, repository)

        assert result == Ok("v1.5.0")
        repository.commit.assert_called_once_with("v1.5.0")
        repository.push_branch.assert_not_called()
        repository.push_tag.assert_called_once_with("origin", "v1.5.0")
        assert console.find("stays local on a tag checkout")

    def test_dry_run_leaves_manifest_alone(self, tmp_path: Path) -> None:
        manifest = tmp_path / "package.json"
        manifest.write_text('{"version": "1.4.3"}')
        console = MockConsole()

        result = VersionTagger(console=console, dry_run=True).release(
            make_profile(tmp_path, semver_bump_package_manifest=True), make_repository([])
        )

        assert result == Ok("v1.5.0")
        assert json.loads(manifest.read_text())["version"] == "1.4.3"
        assert console.find("would set package.json version to 1.5.0")

    def test_missing_manifest_is_not_writable(self, tmp_path: Path) -> None:
        repository = make_repository([])

        result = VersionTagger(console=MockConsole()).release(
            make_profile(tmp_path, semver_bump_package_manifest=True), repository
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, FileAccessError)
        repository.create_tag.assert_not_called()

    def test_push_failure(self, tmp_path: Path) -> None:
        repository = make_repository([])
        error = ExternalCommandError(step="git push", command=("git", "push"), returncode=1)
        repository.push_tag.return_value = Err(error)

        result = VersionTagger(console=MockConsole()).release(make_profile(tmp_path), repository)

        assert result == Err(error)
