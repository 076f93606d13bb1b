# SPDX-License-Identifier: MIT
"""Run command - deploy the selected profiles."""

from __future__ import annotations

from pathlib import Path

import typer

from profdeploy.cli.commands._helpers import exit_on_error, exit_with_code
from profdeploy.cli.context import CLIContext, build_context
from profdeploy.core.errors import ErrorCode
from profdeploy.core.result import Err, Ok
from profdeploy.output.console import Style
from profdeploy.platform.executor import (
    CommandExecutor,
    DryRunExecutor,
    StepExecutor,
    SubprocessExecutor,
)
from profdeploy.services.delta import Domain
from profdeploy.services.pipeline import PipelineRunner, RunOptions
from profdeploy.services.registry import ProfileRegistry, SelectionRequest


def _confirm(prompt: str) -> bool:
    return typer.confirm(prompt, default=True)


def make_executor(ctx: CLIContext, *, dry_run: bool, step: bool) -> CommandExecutor:
    executor: CommandExecutor = SubprocessExecutor(console=ctx.console)
    if dry_run:
        return DryRunExecutor(executor, console=ctx.console)
    if step:
        return StepExecutor(executor, confirm=_confirm)
    return executor


def run(
    profiles: list[str] | None = typer.Argument(
        None, help="Profile ids to deploy", show_default=False
    ),
    all_profiles: bool = typer.Option(False, "--all", "-a", help="Deploy every enabled profile"),
    force: bool = typer.Option(False, "--force", "-f", help="Run every stage, ignore deltas"),
    force_packages: bool = typer.Option(
        False, "--force-packages", help="Reinstall packages regardless of deltas"
    ),
    force_frontend: bool = typer.Option(
        False, "--force-frontend", help="Rebuild the frontend regardless of deltas"
    ),
    force_backend: bool = typer.Option(
        False, "--force-backend", help="Restart processes regardless of deltas"
    ),
    branch: str | None = typer.Option(
        None,
        "--branch",
        "-b",
        help="Branch or tag expression for every profile",
        show_default=False,
    ),
    repo: str | None = typer.Option(
        None, "--repo", "-r", help="Git remote for every profile", show_default=False
    ),
    no_broadcast: bool = typer.Option(
        False, "--no-broadcast", help="Skip the pre-deploy/post-deploy hooks"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Print actions without executing"),
    step: bool = typer.Option(False, "--step", help="Confirm each command before running it"),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to deploy.toml", show_default=False
    ),
) -> None:
    """Deploy profiles: pull, reinstall, rebuild and restart what changed."""
    ctx = build_context(config)

    registry = ProfileRegistry.from_config(ctx.config, console=ctx.console)
    selected = exit_on_error(
        registry.resolve(
            SelectionRequest(
                profile_ids=tuple(profiles or ()),
                all=all_profiles,
                default_profile=ctx.settings.default_profile,
                repo=repo,
                branch=branch,
            )
        ),
        ctx,
    )
    if not selected:
        ctx.console.warning("no enabled profiles selected")
        return

    force_domains = frozenset(
        domain
        for domain, flag in (
            (Domain.DEPENDENCIES, force_packages),
            (Domain.FRONTEND, force_frontend),
            (Domain.BACKEND, force_backend),
        )
        if flag
    )
    options = RunOptions(
        force=force,
        force_domains=force_domains,
        broadcast=ctx.config.broadcast and not no_broadcast,
        dry_run=dry_run,
    )
    runner = PipelineRunner(
        ctx.config,
        make_executor(ctx, dry_run=dry_run, step=step),
        console=ctx.console,
        options=options,
    )

    match runner.run(selected):
        case Ok(report):
            ctx.console.newline()
            deployed = ", ".join(report.profile_ids)
            ctx.console.confirmed(f"Deployed {deployed}")
        case Err(failure):
            ctx.console.error(failure.message)
            if failure.hint:
                ctx.console.print(f"hint: {failure.hint}", Style.DIM)
            exit_with_code(int(ErrorCode.ABORTED))
