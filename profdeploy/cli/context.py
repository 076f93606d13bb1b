# SPDX-License-Identifier: MIT
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import typer

from profdeploy.core.config import DeployConfig, EnvSettings, load_config
from profdeploy.core.errors import ErrorCode
from profdeploy.core.result import Err
from profdeploy.output.console import ConsoleProtocol, RichConsole, Style


@dataclass(frozen=True, slots=True)
class CLIContext:
    settings: EnvSettings
    config: DeployConfig
    config_path: Path
    console: ConsoleProtocol


def build_context(
    config_path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    console: ConsoleProtocol | None = None,
) -> CLIContext:
    """Read the environment and load deploy.toml, exiting on failure."""
    out = console or RichConsole()
    settings = EnvSettings.from_environ(
        os.environ if environ is None else environ,
        Path(os.getcwd()),
    )
    path = settings.resolve_config_path(config_path)

    result = load_config(path, base_dir=settings.base_dir)
    if isinstance(result, Err):
        out.error(result.error.message)
        if result.error.hint:
            out.print(f"hint: {result.error.hint}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.ABORTED))

    return CLIContext(
        settings=settings,
        config=result.value,
        config_path=path,
        console=out,
    )
