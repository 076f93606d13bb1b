# SPDX-License-Identifier: MIT
"""Deployment profile model."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

__all__ = [
    "DEFAULT_BRANCH",
    "DEFAULT_INSTANCE_NAME",
    "DEFAULT_PROCESS_SCRIPT",
    "DEFAULT_REPO",
    "DEFAULT_SORT_ORDER",
    "MAX_LETTER_INSTANCES",
    "Profile",
    "title_from_id",
]

DEFAULT_REPO = "origin"
DEFAULT_BRANCH = "master"
DEFAULT_SORT_ORDER = 10
DEFAULT_INSTANCE_NAME = "${id}-${alpha}"
DEFAULT_PROCESS_SCRIPT = "app.js"
# ${alpha} runs a..z
MAX_LETTER_INSTANCES = 26


def _default_instance_args() -> dict[str, tuple[str, ...]]:
    return {"default": ()}


@dataclass(frozen=True, slots=True)
class Profile:
    """A named deployable unit (a server/process group) of the application.

    Profiles are built once from deploy.toml with all defaults applied; the
    only later change is the CLI `--repo`/`--branch` override, applied with
    `dataclasses.replace` before the run starts.
    """

    id: str
    path: Path
    title: str = ""
    repo: str = DEFAULT_REPO
    branch: str = DEFAULT_BRANCH
    sort_order: int = DEFAULT_SORT_ORDER
    process_count: int = 1
    instance_name_template: str = DEFAULT_INSTANCE_NAME
    instance_names: tuple[str, ...] = ()
    instance_args: dict[str, tuple[str, ...]] = field(default_factory=_default_instance_args)
    process_script: str = DEFAULT_PROCESS_SCRIPT
    env_overrides: dict[str, str] = field(default_factory=dict)
    enabled: bool = True
    peer_deploy: tuple[str, ...] = ()
    peer_deny: tuple[str, ...] = ()
    semver_policy: str = "none"
    semver_bump_package_manifest: bool = False
    script: tuple[str, ...] = ()

    @property
    def display_title(self) -> str:
        return self.title or title_from_id(self.id)

    @property
    def wants_release(self) -> bool:
        return self.semver_policy != "none"

    @property
    def manifest_path(self) -> Path:
        return self.path / "package.json"


def title_from_id(profile_id: str) -> str:
    """Start-case an id: ``api-server`` -> ``Api Server``, ``webApp`` -> ``Web App``."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", profile_id)
    words = [w for w in re.split(r"[^A-Za-z0-9]+", spaced) if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)
