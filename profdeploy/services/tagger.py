# SPDX-License-Identifier: MIT
"""Release version bumping and tagging."""

from __future__ import annotations

from profdeploy.core.errors import ConfigError, DeployError, FileAccessError
from profdeploy.core.profile import Profile
from profdeploy.core.result import Err, Ok, Result
from profdeploy.git.repository import Repository
from profdeploy.output.console import ConsoleProtocol
from profdeploy.platform.files import is_writable
from profdeploy.services.branch import is_tag_expression
from profdeploy.services.manifest import load_manifest, write_manifest_version
from profdeploy.services.semver import SemVer, parse_version

__all__ = ["VersionTagger", "bump", "current_version"]


def bump(current: str, policy: str) -> Result[SemVer, ConfigError]:
    """Next version under a bump policy.

    `minor` resets patch and `major` resets minor and patch:
    1.4.3 -> patch 1.4.4, minor 1.5.0, major 2.0.0.
    """
    version = parse_version(current)
    if version is None:
        return Err(ConfigError(f"cannot parse version {current!r} as MAJOR.MINOR.PATCH"))

    match policy:
        case "patch":
            return Ok(version.bump("patch"))
        case "minor":
            return Ok(version.bump("minor"))
        case "major":
            return Ok(version.bump("major"))
        case _:
            return Err(
                ConfigError(
                    f"unknown semver bump policy {policy!r}",
                    hint='Use "patch", "minor" or "major"',
                )
            )


def current_version(profile: Profile, tags: list[str]) -> Result[SemVer, ConfigError]:
    """Highest of the package.json version and the vX.Y.Z tags, 0.0.0 when neither exists."""
    manifest = load_manifest(profile.manifest_path)
    if isinstance(manifest, Err):
        return manifest
    versions = [v for v in (parse_version(t) for t in tags if t.startswith("v")) if v is not None]
    if manifest.value is not None and manifest.value.version is not None:
        parsed = parse_version(manifest.value.version)
        if parsed is None:
            return Err(
                ConfigError(
                    f"cannot parse package.json version {manifest.value.version!r}",
                    path=profile.manifest_path,
                )
            )
        versions.append(parsed)

    return Ok(max(versions, default=SemVer(0, 0, 0)))


class VersionTagger:
    """Computes the next version, records it and publishes the tag."""

    def __init__(self, *, console: ConsoleProtocol, dry_run: bool = False) -> None:
        self._console = console
        self._dry_run = dry_run

    def release(self, profile: Profile, repository: Repository) -> Result[str, DeployError]:
        """Bump, optionally commit the manifest, tag and push. Returns the tag."""
        tags = repository.list_tags()
        if isinstance(tags, Err):
            return tags

        current = current_version(profile, tags.value)
        if isinstance(current, Err):
            return current

        nxt = bump(str(current.value), profile.semver_policy)
        if isinstance(nxt, Err):
            return nxt
        tag = nxt.value.to_tag()
        self._console.point(f"{current.value} -> {nxt.value} ({profile.semver_policy})")

        if profile.semver_bump_package_manifest:
            recorded = self._record_in_manifest(profile, repository, nxt.value)
            if isinstance(recorded, Err):
                return recorded
            if recorded.value:
                published = self._publish_commit(profile, repository)
                if isinstance(published, Err):
                    return published

        created = repository.create_tag(tag)
        if isinstance(created, Err):
            return created

        pushed = repository.push_tag(profile.repo, tag)
        if isinstance(pushed, Err):
            return pushed

        return Ok(tag)

    def _record_in_manifest(
        self, profile: Profile, repository: Repository, version: SemVer
    ) -> Result[bool, DeployError]:
        """Write and commit the new version. Ok(False) when the manifest already had it."""
        path = profile.manifest_path
        if not is_writable(path):
            return Err(FileAccessError(path))

        if self._dry_run:
            self._console.note(f"--dry-run mode, would set {path.name} version to {version}")
        else:
            written = write_manifest_version(path, str(version))
            if isinstance(written, Err):
                return written
            if not written.value:
                return Ok(False)

        rel = path.relative_to(profile.path).as_posix()
        added = repository.add([rel])
        if isinstance(added, Err):
            return added
        committed = repository.commit(version.to_tag())
        if isinstance(committed, Err):
            return committed
        return Ok(True)

    def _publish_commit(
        self, profile: Profile, repository: Repository
    ) -> Result[None, DeployError]:
        # a tag checkout has no branch to carry the version commit
        if is_tag_expression(profile.branch):
            self._console.warning(
                f"{profile.manifest_path.name} version commit stays local on a tag checkout"
            )
            return Ok(None)
        pushed = repository.push_branch(profile.repo, profile.branch)
        if isinstance(pushed, Err):
            return pushed
        return Ok(None)
