# SPDX-License-Identifier: MIT
"""Change-delta detection per functional domain.

A snapshot records, for each domain, the newest modification time among the
files matching the domain's patterns. Taking one before and one after the
source tree is updated tells which stages have work to do.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from profdeploy.core.config import DomainsConfig
from profdeploy.core.result import Err, Ok
from profdeploy.git.repository import Repository
from profdeploy.platform.files import newest_mtime

__all__ = ["DeltaSnapshot", "DeltaTracker", "Domain", "classify"]


class Domain(Enum):
    DEPENDENCIES = "dependencies"
    FRONTEND = "frontend"
    BACKEND = "backend"

    def __str__(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        return {
            Domain.DEPENDENCIES: "Packages",
            Domain.FRONTEND: "Frontend",
            Domain.BACKEND: "Backend",
        }[self]

    @property
    def action(self) -> str:
        """What a change in this domain requires."""
        return {
            Domain.DEPENDENCIES: "reinstall",
            Domain.FRONTEND: "rebuild",
            Domain.BACKEND: "restart",
        }[self]


def _empty_stamps() -> dict[Domain, float]:
    return {}


@dataclass(frozen=True, slots=True)
class DeltaSnapshot:
    """Newest file timestamp per domain; domains not snapshotted are absent."""

    stamps: dict[Domain, float] = field(default_factory=_empty_stamps)

    def get(self, domain: Domain) -> float | None:
        return self.stamps.get(domain)


def classify(before: DeltaSnapshot, after: DeltaSnapshot) -> dict[Domain, bool]:
    """Changed (True) iff `after` is strictly newer than `before`.

    Domains missing from either snapshot are left out of the result.
    """
    out: dict[Domain, bool] = {}
    for domain in Domain:
        b = before.get(domain)
        a = after.get(domain)
        if a is None or b is None:
            continue
        out[domain] = a > b
    return out


FileLister = Callable[[Path, str], list[Path]]


def glob_files(root: Path, pattern: str) -> list[Path]:
    """List files under root matching a glob pattern (no ignore rules)."""
    return sorted(p for p in root.glob(pattern) if p.is_file())


class DeltaTracker:
    """Snapshots the domain fingerprints of one working tree.

    Files are listed through git so ignore rules apply. If git cannot list
    them (the path is not a repository) the tracker falls back to a plain glob.
    """

    def __init__(
        self,
        domains: DomainsConfig,
        *,
        repository: Repository | None = None,
        fallback: FileLister = glob_files,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._patterns: Mapping[Domain, tuple[str, ...]] = {
            Domain.DEPENDENCIES: domains.dependencies,
            Domain.FRONTEND: domains.frontend,
            Domain.BACKEND: domains.backend,
        }
        self._repository = repository
        self._fallback = fallback
        self._clock = clock

    def patterns(self, domain: Domain) -> tuple[str, ...]:
        return self._patterns[domain]

    def snapshot(self, root: Path, domains: Iterable[Domain] = tuple(Domain)) -> DeltaSnapshot:
        """Fingerprint the requested domains.

        An empty match set counts as "now", so a domain with no files never
        reads as unchanged.
        """
        stamps: dict[Domain, float] = {}
        for domain in domains:
            files: list[Path] = []
            for pattern in self._patterns[domain]:
                files.extend(self._list(root, pattern))
            newest = newest_mtime(files)
            stamps[domain] = newest if newest is not None else self._clock()
        return DeltaSnapshot(stamps=stamps)

    def _list(self, root: Path, pattern: str) -> list[Path]:
        if self._repository is not None:
            match self._repository.list_files(pattern):
                case Ok(names):
                    return [root / name for name in names]
                case Err(_):
                    pass
        return self._fallback(root, pattern)
