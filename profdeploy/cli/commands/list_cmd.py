# SPDX-License-Identifier: MIT
"""List command - show enabled profiles in run order."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from profdeploy.cli.context import build_context
from profdeploy.services.registry import ProfileRegistry

_console = Console()


def list_profiles(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to deploy.toml", show_default=False
    ),
) -> None:
    """List deploy profiles."""
    ctx = build_context(config)
    registry = ProfileRegistry.from_config(ctx.config, console=ctx.console)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Title")
    table.add_column("Sort", justify="right")
    table.add_column("Path")
    table.add_column("Branch")
    table.add_column("Peers")

    for profile in registry.enabled():
        table.add_row(
            profile.id,
            profile.display_title,
            str(profile.sort_order),
            str(profile.path),
            profile.branch,
            ", ".join(profile.peer_deploy),
        )

    _console.print(table)
