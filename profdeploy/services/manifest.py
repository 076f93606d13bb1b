# SPDX-License-Identifier: MIT
"""Reading and rewriting a profile's package.json."""

from __future__ import annotations

import json
from pathlib import Path

from profdeploy.core.errors import ConfigError, FileAccessError
from profdeploy.core.result import Err, Ok, Result
from profdeploy.core.structured import StrDict, as_str_dict, get_str, get_table
from profdeploy.platform.files import atomic_write_text

__all__ = [
    "PackageManifest",
    "load_manifest",
    "write_manifest_version",
]


class PackageManifest:
    """The parts of package.json the pipeline looks at."""

    def __init__(self, path: Path, data: StrDict) -> None:
        self.path = path
        self._data = data

    @property
    def version(self) -> str | None:
        return get_str(self._data, "version")

    @property
    def scripts(self) -> StrDict:
        return get_table(self._data, "scripts") or {}

    def has_script(self, name: str) -> bool:
        return get_str(self.scripts, name) is not None


def load_manifest(path: Path) -> Result[PackageManifest | None, ConfigError]:
    """Load package.json; Ok(None) when the profile has none."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Ok(None)
    except OSError as e:
        return Err(ConfigError(f"failed to read {path.name}: {e}", path=path))

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(ConfigError(f"invalid JSON in {path.name}: {e}", path=path))

    data = as_str_dict(obj)
    if data is None:
        return Err(ConfigError(f"invalid JSON root in {path.name}", path=path))
    return Ok(PackageManifest(path, data))


def write_manifest_version(
    path: Path, version: str
) -> Result[bool, ConfigError | FileAccessError]:
    """Set `version` in package.json. Ok(False) if it already had that value."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(FileAccessError(path, reason=f"failed to read: {e}"))

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(ConfigError(f"invalid JSON in {path.name}: {e}", path=path))

    data = as_str_dict(obj)
    if data is None:
        return Err(ConfigError(f"invalid JSON root in {path.name}", path=path))

    if get_str(data, "version") == version:
        return Ok(False)
    data["version"] = version

    try:
        atomic_write_text(path, json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        return Err(FileAccessError(path, reason=f"failed to write: {e}"))
    return Ok(True)
