# SPDX-License-Identifier: MIT
"""Target revision resolution and working tree synchronization.

A profile's `branch` is either a literal branch name or a tag expression:

    tag semver=^2.0.0,sort=desc

which picks, among the repository's tags sorted by name (descending unless
`sort=asc`), the first one whose version satisfies the range.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from profdeploy.core.errors import (
    BranchSyntaxError,
    DeployError,
    ExternalCommandError,
    SemverResolutionError,
)
from profdeploy.core.profile import Profile
from profdeploy.core.result import Err, Ok, Result
from profdeploy.git.repository import Repository
from profdeploy.output.console import ConsoleProtocol
from profdeploy.services.semver import SemverRange, parse_range

__all__ = [
    "TAG_SENTINEL",
    "BranchResolver",
    "Revision",
    "TagExpression",
    "is_tag_expression",
    "parse_tag_expression",
]

TAG_SENTINEL = "tag"

_SENTINEL_RE = re.compile(rf"^{TAG_SENTINEL}(\s|$)")

TagLister = Callable[[], Result[list[str], ExternalCommandError]]


@dataclass(frozen=True, slots=True)
class Revision:
    """A concrete revision to deploy."""

    name: str
    kind: Literal["branch", "tag"]

    def __str__(self) -> str:
        return self.name if self.kind == "branch" else f"tag {self.name}"


@dataclass(frozen=True, slots=True)
class TagExpression:
    semver: SemverRange
    sort: Literal["asc", "desc"] = "desc"


def is_tag_expression(branch: str) -> bool:
    return _SENTINEL_RE.match(branch.strip()) is not None


def parse_tag_expression(expression: str) -> Result[TagExpression, BranchSyntaxError]:
    """Parse `tag [semver=<range>][,sort=<asc|desc>]`."""
    text = expression.strip()
    if not is_tag_expression(text):
        return Err(BranchSyntaxError(expression, f'must start with "{TAG_SENTINEL}"'))

    body = text[len(TAG_SENTINEL) :].strip()
    options: dict[str, str] = {"semver": "*", "sort": "desc"}
    if body:
        for item in body.split(","):
            key, sep, value = item.partition("=")
            key = key.strip()
            if not sep or not key:
                detail = f"expected key=value, got {item.strip()!r}"
                return Err(BranchSyntaxError(expression, detail))
            if key not in options:
                return Err(BranchSyntaxError(expression, f"unknown key {key!r}"))
            options[key] = value.strip()

    sort = options["sort"].lower()
    if sort not in {"asc", "desc"}:
        return Err(BranchSyntaxError(expression, f"sort must be asc or desc, got {sort!r}"))

    semver_range = parse_range(options["semver"])
    if semver_range is None:
        return Err(BranchSyntaxError(expression, f"invalid semver range {options['semver']!r}"))

    return Ok(TagExpression(semver=semver_range, sort="asc" if sort == "asc" else "desc"))


class BranchResolver:
    """Resolves a profile's target revision and brings the tree to it."""

    def __init__(self, *, console: ConsoleProtocol) -> None:
        self._console = console

    def resolve(self, profile: Profile, list_tags: TagLister) -> Result[Revision, DeployError]:
        if not is_tag_expression(profile.branch):
            return Ok(Revision(name=profile.branch, kind="branch"))

        parsed = parse_tag_expression(profile.branch)
        if isinstance(parsed, Err):
            return parsed
        expression = parsed.value

        tags = list_tags()
        if isinstance(tags, Err):
            return tags

        candidates = sorted(tags.value, reverse=expression.sort == "desc")
        for tag in candidates:
            if expression.semver.matches_tag(tag):
                return Ok(Revision(name=tag, kind="tag"))

        return Err(
            SemverResolutionError(range=expression.semver.expression, candidates=len(candidates))
        )

    def synchronize(
        self,
        repository: Repository,
        remote: str,
        revision: Revision,
    ) -> Result[None, DeployError]:
        """Force the working tree to `revision`, discarding local edits."""
        if revision.kind == "tag":
            self._console.heading(f'Checking out tag "{revision.name}"')
            checkout = repository.checkout_tag(revision.name)
            return Err(checkout.error) if isinstance(checkout, Err) else Ok(None)

        current = repository.current_branch()
        if isinstance(current, Err):
            return current

        if current.value != revision.name:
            self._console.heading(f'Switching to "{revision.name}" branch')
            result = repository.checkout_branch(remote, revision.name)
        else:
            self._console.heading(f'Resetting "{revision.name}" to {remote}/{revision.name}')
            result = repository.reset_hard(remote, revision.name)

        if isinstance(result, Err):
            return result
        return Ok(None)
