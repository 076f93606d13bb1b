# SPDX-License-Identifier: MIT
"""Profile selection: explicit ids, defaults, peer-deploy and peer-deny.

Peer propagation is a single pass. Only profiles selected when `resolve`
is called contribute their `peer_deploy` ids; a peer added by that pass
does not pull in its own peers unless it was also selected directly.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from profdeploy.core.config import DeployConfig
from profdeploy.core.errors import ConfigError, DeployError, PeerConflictError, SelectionError
from profdeploy.core.profile import Profile
from profdeploy.core.result import Err, Ok, Result
from profdeploy.output.console import ConsoleProtocol

__all__ = ["ProfileRegistry", "SelectionRequest"]


@dataclass(frozen=True, slots=True)
class SelectionRequest:
    """What the operator asked for.

    Attributes:
        profile_ids: Explicitly named profiles.
        all: Select every enabled profile.
        default_profile: Fallback id when nothing is named (from the environment).
        repo: Remote override applied to every selected profile.
        branch: Branch override applied to every selected profile.
    """

    profile_ids: tuple[str, ...] = ()
    all: bool = False
    default_profile: str | None = None
    repo: str | None = None
    branch: str | None = None


class ProfileRegistry:
    """Holds the declared profile set and resolves a run's selection."""

    def __init__(self, profiles: tuple[Profile, ...], *, console: ConsoleProtocol) -> None:
        self._profiles = {p.id: p for p in profiles}
        self._order = {p.id: index for index, p in enumerate(profiles)}
        self._console = console

    @classmethod
    def from_config(cls, config: DeployConfig, *, console: ConsoleProtocol) -> ProfileRegistry:
        return cls(config.profiles, console=console)

    @property
    def profiles(self) -> list[Profile]:
        """All declared profiles, in declaration order."""
        return list(self._profiles.values())

    def enabled(self) -> list[Profile]:
        """Enabled profiles in run order."""
        return self._ordered(p.id for p in self._profiles.values() if p.enabled)

    def resolve(self, request: SelectionRequest) -> Result[tuple[Profile, ...], DeployError]:
        """Resolve a request into the ordered profiles to deploy.

        Returns:
            Ok(profiles) sorted by sort order (ties keep declaration order),
            Err(SelectionError | ConfigError | PeerConflictError) otherwise.
        """
        initial = self._initial_selection(request)
        if isinstance(initial, Err):
            return initial
        selected = initial.value

        peers = self._propagate_peers(selected)
        if isinstance(peers, Err):
            return peers
        if peers.value:
            self._console.note(
                "Peer profiles that will also deploy: " + ", ".join(sorted(peers.value))
            )

        for profile in self._ordered(selected):
            if not profile.enabled:
                self._console.warning(f'peer profile "{profile.id}" is disabled, not deploying it')
                selected.discard(profile.id)

        conflict = self._check_peer_deny(selected)
        if conflict is not None:
            return Err(conflict)

        return Ok(tuple(self._apply_overrides(p, request) for p in self._ordered(selected)))

    def _initial_selection(self, request: SelectionRequest) -> Result[set[str], DeployError]:
        if request.all:
            return Ok({p.id for p in self._profiles.values() if p.enabled})

        named = request.profile_ids
        if not named and request.default_profile:
            named = (request.default_profile,)

        if not named:
            return Err(
                SelectionError(
                    "Select at least one profile",
                    available=tuple(p.id for p in self.enabled()),
                )
            )

        selected: set[str] = set()
        for profile_id in named:
            profile = self._profiles.get(profile_id)
            if profile is None:
                return Err(
                    SelectionError(
                        f'Unknown profile "{profile_id}"',
                        available=tuple(p.id for p in self.enabled()),
                    )
                )
            if not profile.enabled:
                return Err(SelectionError(f'Profile "{profile_id}" is disabled'))
            selected.add(profile_id)
        return Ok(selected)

    def _propagate_peers(self, selected: set[str]) -> Result[set[str], DeployError]:
        """Add one hop of peer_deploy ids to `selected` in place; return the additions."""
        added: set[str] = set()
        for profile_id in sorted(selected, key=self._order.__getitem__):
            profile = self._profiles[profile_id]
            if not profile.enabled or not profile.peer_deploy:
                continue
            for peer in profile.peer_deploy:
                if peer not in self._profiles:
                    return Err(
                        ConfigError(
                            f'profiles.{profile_id}.peer_deploy names unknown profile "{peer}"'
                        )
                    )
                if peer not in selected:
                    added.add(peer)
        selected |= added
        return Ok(added)

    def _check_peer_deny(self, selected: set[str]) -> PeerConflictError | None:
        for profile in self._ordered(selected):
            for denied in profile.peer_deny:
                if denied in selected:
                    return PeerConflictError(profile_id=profile.id, denied_id=denied)
        return None

    def _ordered(self, ids: Iterable[str]) -> list[Profile]:
        profiles = [self._profiles[i] for i in ids]
        return sorted(profiles, key=lambda p: (p.sort_order, self._order[p.id]))

    @staticmethod
    def _apply_overrides(profile: Profile, request: SelectionRequest) -> Profile:
        changes: dict[str, str] = {}
        if request.repo:
            changes["repo"] = request.repo
        if request.branch:
            changes["branch"] = request.branch
        return replace(profile, **changes) if changes else profile
