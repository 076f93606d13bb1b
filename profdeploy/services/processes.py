# SPDX-License-Identifier: MIT
"""Process instances of a profile and their start/restart lifecycle (pm2).

Instance names and arguments are rendered from templates with `${name}`
placeholders. Only these variables exist:

    id       profile id
    offset   zero-based instance index
    alpha    instance letter, a..z
    version, major, minor, patch
             current release version, when the profile manifest declares one

Anything else is a configuration error; there is no expression evaluation.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from enum import Enum

from profdeploy.core.errors import ConfigError, DeployError, ExternalCommandError
from profdeploy.core.profile import MAX_LETTER_INSTANCES, Profile
from profdeploy.core.result import Err, Ok, Result
from profdeploy.output.console import ConsoleProtocol
from profdeploy.platform.executor import CommandExecutor, ExecOptions, ExecutionContext
from profdeploy.services.semver import SemVer

__all__ = [
    "ALPHABET",
    "Lifecycle",
    "ProcessInstance",
    "ProcessLifecycleManager",
    "check_capacity",
    "derive_instances",
    "render_template",
]

ALPHABET = string.ascii_lowercase

# pm2 describe output for an unknown process name
_NOT_FOUND_MARKERS = ("doesn't exist", "does not exist", "not found")


class Lifecycle(Enum):
    START = "start"
    RESTART = "restart"


@dataclass(frozen=True, slots=True)
class ProcessInstance:
    name: str
    argv: tuple[str, ...]
    ordinal: int


def template_variables(
    profile: Profile, offset: int, version: SemVer | None = None
) -> dict[str, str]:
    variables = {
        "id": profile.id,
        "offset": str(offset),
        "alpha": ALPHABET[offset] if offset < len(ALPHABET) else "",
    }
    if version is not None:
        variables.update(
            version=str(version),
            major=str(version.major),
            minor=str(version.minor),
            patch=str(version.patch),
        )
    return variables


def render_template(template: str, variables: dict[str, str]) -> Result[str, ConfigError]:
    """Substitute `${name}` placeholders from a fixed variable set."""
    try:
        return Ok(string.Template(template).substitute(variables))
    except KeyError as e:
        return Err(
            ConfigError(
                f"unknown placeholder ${{{e.args[0]}}} in {template!r}",
                hint="Available: " + ", ".join(sorted(variables)),
            )
        )
    except ValueError as e:
        return Err(ConfigError(f"invalid template {template!r}: {e}"))


def _instance_args(
    profile: Profile, name: str, variables: dict[str, str]
) -> Result[tuple[str, ...], ConfigError]:
    raw = profile.instance_args.get(name)
    if raw is None:
        raw = profile.instance_args.get("default", ())
    rendered: list[str] = []
    for arg in raw:
        result = render_template(arg, variables)
        if isinstance(result, Err):
            return result
        rendered.append(result.value)
    return Ok(tuple(rendered))


def check_capacity(profile: Profile) -> Result[None, ConfigError]:
    """Letter suffixes only cover 26 instances; beyond that names must be listed."""
    if not profile.instance_names and profile.process_count > MAX_LETTER_INSTANCES:
        return Err(
            ConfigError(
                f"profiles.{profile.id}: instance_names must be listed when "
                f"processes > {MAX_LETTER_INSTANCES} (got {profile.process_count})"
            )
        )
    return Ok(None)


def derive_instances(
    profile: Profile, version: SemVer | None = None
) -> Result[list[ProcessInstance], ConfigError]:
    """Concrete instances of a profile, explicit names first, else the template."""
    capacity = check_capacity(profile)
    if isinstance(capacity, Err):
        return capacity

    if profile.instance_names:
        names = list(profile.instance_names)
    else:
        names = []
        for offset in range(profile.process_count):
            rendered = render_template(
                profile.instance_name_template,
                template_variables(profile, offset, version),
            )
            if isinstance(rendered, Err):
                return rendered
            names.append(rendered.value)

    instances: list[ProcessInstance] = []
    for offset, name in enumerate(names):
        args = _instance_args(profile, name, template_variables(profile, offset, version))
        if isinstance(args, Err):
            return args
        instances.append(ProcessInstance(name=name, argv=args.value, ordinal=offset))
    return Ok(instances)


def decide(exists: bool) -> Lifecycle:
    return Lifecycle.RESTART if exists else Lifecycle.START


class ProcessLifecycleManager:
    """Starts or restarts a profile's processes through the process manager."""

    def __init__(
        self,
        executor: CommandExecutor,
        *,
        console: ConsoleProtocol,
        process_manager: str = "pm2",
        restart_timeout: float = 30.0,
    ) -> None:
        self._executor = executor
        self._console = console
        self._pm = process_manager
        self._restart_timeout = restart_timeout

    def is_running(
        self, instances: list[ProcessInstance], ctx: ExecutionContext
    ) -> Result[bool, ExternalCommandError]:
        """Whether the first instance is known to the process manager."""
        if not instances:
            return Ok(False)
        result = self._executor.run(
            [self._pm, "describe", instances[0].name],
            ctx,
            ExecOptions(step=f"{self._pm} describe", log=False, buffer=True, readonly=True),
        )
        match result:
            case Ok(output):
                # some pm2 versions exit 0 and only print a warning
                return Ok(not _is_not_found(output))
            case Err(e):
                if _is_not_found(e.output):
                    return Ok(False)
                return result

    def apply(
        self,
        profile: Profile,
        ctx: ExecutionContext,
        version: SemVer | None = None,
    ) -> Result[Lifecycle, DeployError]:
        instances = derive_instances(profile, version)
        if isinstance(instances, Err):
            return instances

        exists = self.is_running(instances.value, ctx)
        if isinstance(exists, Err):
            return exists

        lifecycle = decide(exists.value)
        if lifecycle is Lifecycle.RESTART:
            result = self.restart(instances.value, ctx)
        else:
            result = self.start(profile, instances.value, ctx)
        if isinstance(result, Err):
            return result
        return Ok(lifecycle)

    def restart(
        self, instances: list[ProcessInstance], ctx: ExecutionContext
    ) -> Result[None, ExternalCommandError]:
        """Restart every instance in one command, waiting for readiness."""
        names = [i.name for i in instances]
        self._console.point("Restarting " + ", ".join(names))
        timeout_ms = int(self._restart_timeout * 1000)
        result = self._executor.run(
            [
                self._pm,
                "restart",
                *names,
                "--update-env",
                "--wait-ready",
                "--listen-timeout",
                str(timeout_ms),
            ],
            ctx,
            ExecOptions(step=f"{self._pm} restart"),
        )
        return Err(result.error) if isinstance(result, Err) else Ok(None)

    def start(
        self,
        profile: Profile,
        instances: list[ProcessInstance],
        ctx: ExecutionContext,
    ) -> Result[None, ExternalCommandError]:
        """Start instances one at a time, stopping at the first failure."""
        for instance in instances:
            self._console.point(f"Starting {instance.name}")
            cmd = [self._pm, "start", profile.process_script, "--name", instance.name]
            if instance.argv:
                cmd.extend(["--", *instance.argv])
            result = self._executor.run(cmd, ctx, ExecOptions(step=f"{self._pm} start"))
            if isinstance(result, Err):
                return Err(result.error)
        return Ok(None)


def _is_not_found(output: str) -> bool:
    lowered = output.lower()
    return any(marker in lowered for marker in _NOT_FOUND_MARKERS)
