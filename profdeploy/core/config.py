# SPDX-License-Identifier: MIT
"""Typed loading of deploy.toml.

The file declares the orchestrator settings and the profile set:

    [deploy]
    default_branch = "master"
    restart_timeout = 30

    [deploy.commands]
    install = ["npm", "ci"]
    frontend = ["npx", "gulp", "build"]

    [deploy.domains]
    backend = ["**/*.doop"]

    [profiles.api]
    sort = 5
    processes = 2
    peer_deploy = ["web"]
    semver = "minor"

Profiles come out with every default applied, in declaration order.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError
from .profile import (
    DEFAULT_BRANCH,
    DEFAULT_INSTANCE_NAME,
    DEFAULT_PROCESS_SCRIPT,
    DEFAULT_REPO,
    DEFAULT_SORT_ORDER,
    MAX_LETTER_INSTANCES,
    Profile,
    title_from_id,
)
from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_int,
    get_str,
    get_str_list,
    get_str_map,
    get_table,
)

__all__ = [
    "CONFIG_FILENAME",
    "ENV_BASE_DIR",
    "ENV_CONFIG",
    "ENV_PROFILE",
    "INTERNAL_ENV_PREFIX",
    "CommandsConfig",
    "DeployConfig",
    "DomainsConfig",
    "EnvSettings",
    "load_config",
]

CONFIG_FILENAME = "deploy.toml"

# Orchestrator-only variables; stripped from every child process environment.
INTERNAL_ENV_PREFIX = "PROFDEPLOY_"
ENV_BASE_DIR = "PROFDEPLOY_BASE_DIR"
ENV_PROFILE = "PROFDEPLOY_PROFILE"
ENV_CONFIG = "PROFDEPLOY_CONFIG"

DEFAULT_RESTART_TIMEOUT_SECONDS = 30.0

_SEMVER_POLICIES = {"none", "patch", "minor", "major"}


@dataclass(frozen=True, slots=True)
class EnvSettings:
    """Environment-derived settings, read once at startup."""

    base_dir: Path
    default_profile: str | None = None
    config_path: Path | None = None

    @classmethod
    def from_environ(cls, environ: Mapping[str, str], cwd: Path) -> EnvSettings:
        base = environ.get(ENV_BASE_DIR, "").strip()
        config = environ.get(ENV_CONFIG, "").strip()
        profile = environ.get(ENV_PROFILE, "").strip()
        return cls(
            base_dir=Path(base).expanduser() if base else cwd,
            default_profile=profile or None,
            config_path=Path(config).expanduser() if config else None,
        )

    def resolve_config_path(self, explicit: Path | None = None) -> Path:
        if explicit is not None:
            return explicit
        if self.config_path is not None:
            return self.config_path
        return self.base_dir / CONFIG_FILENAME


@dataclass(frozen=True, slots=True)
class CommandsConfig:
    """External commands used by the stages."""

    install: tuple[str, ...] = ("npm", "ci")
    frontend: tuple[str, ...] = ("npx", "gulp", "build")
    package_manager: str = "npm"
    process_manager: str = "pm2"


@dataclass(frozen=True, slots=True)
class DomainsConfig:
    """File patterns per change domain, relative to the profile path."""

    dependencies: tuple[str, ...] = ("package.json", "package-lock.json")
    frontend: tuple[str, ...] = ("**/*.vue",)
    backend: tuple[str, ...] = ("**/*.doop",)


@dataclass(frozen=True, slots=True)
class DeployConfig:
    """Main configuration container."""

    profiles: tuple[Profile, ...]
    default_branch: str = DEFAULT_BRANCH
    restart_timeout: float = DEFAULT_RESTART_TIMEOUT_SECONDS
    broadcast: bool = True
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    domains: DomainsConfig = field(default_factory=DomainsConfig)

    def profile(self, profile_id: str) -> Profile | None:
        for p in self.profiles:
            if p.id == profile_id:
                return p
        return None

    @property
    def profile_ids(self) -> tuple[str, ...]:
        return tuple(p.id for p in self.profiles)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(
            ConfigError(
                f"Config file not found: {path}",
                path=path,
                hint=f"Create {CONFIG_FILENAME} or set {ENV_CONFIG}",
            )
        )
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def _command(table: StrDict, key: str, default: tuple[str, ...]) -> tuple[str, ...] | None:
    if key not in table:
        return default
    argv = get_str_list(table, key)
    if not argv:
        return None
    return argv


def _parse_semver_policy(value: object) -> str | None:
    if value is None or value is False:
        return "none"
    if value is True:
        return "patch"
    if isinstance(value, str) and value.strip().lower() in _SEMVER_POLICIES:
        return value.strip().lower()
    return None


def _parse_instance_args(table: StrDict) -> dict[str, tuple[str, ...]] | None:
    raw = get_table(table, "instance_args")
    if raw is None:
        return None if "instance_args" in table else {"default": ()}
    out: dict[str, tuple[str, ...]] = {"default": ()}
    for name in raw:
        args = get_str_list(raw, name)
        if args is None:
            return None
        out[name] = args
    return out


def _parse_profile(
    profile_id: str,
    table: StrDict,
    *,
    base_dir: Path,
    default_branch: str,
    config_path: Path,
) -> Result[Profile, ConfigError]:
    def bad(key: str, expected: str) -> Err[ConfigError]:
        return Err(
            ConfigError(
                f"profiles.{profile_id}.{key} must be {expected}",
                path=config_path,
            )
        )

    raw_path = get_str(table, "path")
    path = Path(raw_path).expanduser() if raw_path else base_dir
    if not path.is_absolute():
        path = base_dir / path

    processes = get_int(table, "processes")
    if "processes" in table and (processes is None or processes < 1):
        return bad("processes", "an integer >= 1")

    sort_order = get_int(table, "sort")
    if "sort" in table and sort_order is None:
        return bad("sort", "an integer")

    semver_policy = _parse_semver_policy(table.get("semver"))
    if semver_policy is None:
        return bad("semver", 'one of "none", "patch", "minor", "major" or a boolean')

    instance_args = _parse_instance_args(table)
    if instance_args is None:
        return bad("instance_args", "a table of string lists")

    env = get_str_map(table, "env")
    if "env" in table and env is None:
        return bad("env", "a table of scalar values")

    list_values: dict[str, tuple[str, ...]] = {}
    for key in ("instance_names", "peer_deploy", "peer_deny", "script"):
        values = get_str_list(table, key)
        if key in table and values is None:
            return bad(key, "a list of strings")
        list_values[key] = values or ()

    if not list_values["instance_names"] and (processes or 1) > MAX_LETTER_INSTANCES:
        return bad("processes", f"at most {MAX_LETTER_INSTANCES} unless instance_names are listed")

    for key in ("enabled", "semver_package"):
        if key in table and get_bool(table, key) is None:
            return bad(key, "a boolean")

    return Ok(
        Profile(
            id=profile_id,
            path=path,
            title=get_str(table, "title") or title_from_id(profile_id),
            repo=get_str(table, "repo") or DEFAULT_REPO,
            branch=get_str(table, "branch") or default_branch,
            sort_order=DEFAULT_SORT_ORDER if sort_order is None else sort_order,
            process_count=processes or 1,
            instance_name_template=get_str(table, "instance_name") or DEFAULT_INSTANCE_NAME,
            instance_names=list_values["instance_names"],
            instance_args=instance_args,
            process_script=get_str(table, "process_script") or DEFAULT_PROCESS_SCRIPT,
            env_overrides=env or {},
            enabled=get_bool(table, "enabled") is not False,
            peer_deploy=list_values["peer_deploy"],
            peer_deny=list_values["peer_deny"],
            semver_policy=semver_policy,
            semver_bump_package_manifest=get_bool(table, "semver_package") is True,
            script=list_values["script"],
        )
    )


def config_from_dict(
    data: Mapping[str, object],
    *,
    base_dir: Path,
    config_path: Path,
) -> Result[DeployConfig, ConfigError]:
    """Build a DeployConfig from parsed TOML."""
    deploy: StrDict = get_table(data, "deploy") or {}
    commands: StrDict = get_table(deploy, "commands") or {}
    domains: StrDict = get_table(deploy, "domains") or {}

    profiles_table = get_table(data, "profiles")
    if not profiles_table:
        return Err(
            ConfigError(
                "Deploy profiles not found in [profiles]",
                path=config_path,
                hint="Declare at least one [profiles.<id>] table",
            )
        )

    default_branch = get_str(deploy, "default_branch") or DEFAULT_BRANCH

    commands_defaults = CommandsConfig()
    install = _command(commands, "install", commands_defaults.install)
    frontend = _command(commands, "frontend", commands_defaults.frontend)
    if install is None or frontend is None:
        return Err(
            ConfigError("deploy.commands entries must be non-empty string lists", path=config_path)
        )

    domain_defaults = DomainsConfig()
    domain_values: dict[str, tuple[str, ...]] = {}
    for name in ("dependencies", "frontend", "backend"):
        patterns = get_str_list(domains, name)
        if name in domains and not patterns:
            return Err(
                ConfigError(f"deploy.domains.{name} must be a list of patterns", path=config_path)
            )
        domain_values[name] = patterns or getattr(domain_defaults, name)

    timeout_obj = deploy.get("restart_timeout", DEFAULT_RESTART_TIMEOUT_SECONDS)
    valid_timeout = isinstance(timeout_obj, (int, float)) and not isinstance(timeout_obj, bool)
    if not valid_timeout or timeout_obj <= 0:
        message = "deploy.restart_timeout must be a positive number"
        return Err(ConfigError(message, path=config_path))

    profiles: list[Profile] = []
    for profile_id, raw in profiles_table.items():
        table = as_str_dict(raw)
        if table is None:
            return Err(ConfigError(f"profiles.{profile_id} must be a table", path=config_path))
        parsed = _parse_profile(
            profile_id,
            table,
            base_dir=base_dir,
            default_branch=default_branch,
            config_path=config_path,
        )
        if isinstance(parsed, Err):
            return parsed
        profiles.append(parsed.value)

    return Ok(
        DeployConfig(
            profiles=tuple(profiles),
            default_branch=default_branch,
            restart_timeout=float(timeout_obj),
            broadcast=get_bool(deploy, "broadcast") is not False,
            commands=CommandsConfig(
                install=install,
                frontend=frontend,
                package_manager=get_str(commands, "package_manager")
                or commands_defaults.package_manager,
                process_manager=get_str(commands, "process_manager")
                or commands_defaults.process_manager,
            ),
            domains=DomainsConfig(**domain_values),
        )
    )


def load_config(path: Path, *, base_dir: Path | None = None) -> Result[DeployConfig, ConfigError]:
    """Load and validate deploy.toml.

    Args:
        path: Path to the TOML file
        base_dir: Directory relative profile paths resolve against
            (defaults to the current working directory)

    Returns:
        Ok(DeployConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result
    return config_from_dict(
        result.value,
        base_dir=base_dir if base_dir is not None else Path(os.getcwd()),
        config_path=path,
    )
