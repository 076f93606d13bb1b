# SPDX-License-Identifier: MIT
"""Exit codes and the deploy error taxonomy.

Every failing step returns one of the dataclasses below inside an ``Err``.
They all expose ``message`` and ``hint`` so the CLI can render them the same
way regardless of where the run stopped.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

__all__ = [
    "BranchSyntaxError",
    "ConfigError",
    "DeployError",
    "ErrorCode",
    "ExternalCommandError",
    "FileAccessError",
    "PeerConflictError",
    "SelectionError",
    "SemverResolutionError",
]


class ErrorCode(IntEnum):
    """Process exit codes.

    A run either completes (0) or is aborted (1). The cause is written to
    stderr, so there is no need for finer-grained codes.
    """

    OK = 0
    ABORTED = 1

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Profile set missing or malformed, or a profile value is unusable."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class SelectionError:
    """No profile chosen and no usable default."""

    message: str
    available: tuple[str, ...] = ()

    @property
    def hint(self) -> str | None:
        if not self.available:
            return None
        return "Select with --all or one of: " + " ".join(self.available)


@dataclass(frozen=True, slots=True)
class PeerConflictError:
    """Two mutually denying profiles ended up in the same run."""

    profile_id: str
    denied_id: str
    hint: str | None = None

    @property
    def message(self) -> str:
        return (
            f'profile "{self.profile_id}" cannot be deployed together with "{self.denied_id}"'
        )


@dataclass(frozen=True, slots=True)
class BranchSyntaxError:
    """A ``tag ...`` branch expression could not be parsed."""

    expression: str
    reason: str
    hint: str | None = "Expected: tag semver=<range>,sort=<asc|desc>"

    @property
    def message(self) -> str:
        return f"invalid branch expression {self.expression!r}: {self.reason}"


@dataclass(frozen=True, slots=True)
class SemverResolutionError:
    """No tag satisfies the requested semver range."""

    range: str
    candidates: int = 0
    hint: str | None = None

    @property
    def message(self) -> str:
        return f"no tag satisfies semver range {self.range!r} ({self.candidates} tags checked)"


@dataclass(frozen=True, slots=True)
class ExternalCommandError:
    """An external command failed to spawn or exited non-zero.

    Attributes:
        step: Human readable description of what was attempted.
        command: The argv that was executed.
        returncode: Exit code, -1 when the command could not be spawned.
        output: Captured stderr (or stdout when stderr was empty).
    """

    step: str
    command: tuple[str, ...]
    returncode: int = 1
    output: str = ""

    @property
    def message(self) -> str:
        return f"Failed `{shlex.join(self.command)}` ({self.step}, exit {self.returncode})"

    @property
    def hint(self) -> str | None:
        return self.output.strip() or None


@dataclass(frozen=True, slots=True)
class FileAccessError:
    """A file the run needs to rewrite is not writable."""

    path: Path
    reason: str = "not writable"
    hint: str | None = None

    @property
    def message(self) -> str:
        return f"{self.path}: {self.reason}"


DeployError = (
    ConfigError
    | SelectionError
    | PeerConflictError
    | BranchSyntaxError
    | SemverResolutionError
    | ExternalCommandError
    | FileAccessError
)
