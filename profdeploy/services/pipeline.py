# SPDX-License-Identifier: MIT
"""Per-profile deploy pipeline and the run over a profile set.

Each profile goes through these states, in order, never backwards:

    PENDING -> PATH_ENTERED -> ENV_MERGED -> [SCRIPT_DEFERRED]
      -> PRE_HOOK_RUN -> FETCHED -> BRANCH_RESOLVED -> DELTA_AFTER_CAPTURED
      -> PACKAGES_STAGE -> FRONTEND_STAGE -> BACKEND_STAGE
      -> POST_HOOK_RUN -> TAGGED -> DONE

Every stage returns a `StageOutcome`:
- `Continue` moves on to the next stage,
- `SkipRemainingStages` ends the profile successfully (deferred script),
- `Fail` aborts the whole run; later profiles are not attempted.

Nothing is rolled back: stages that already ran stay applied.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from profdeploy.core.config import DeployConfig
from profdeploy.core.errors import ConfigError, DeployError
from profdeploy.core.profile import Profile
from profdeploy.core.result import Err, Ok, Result
from profdeploy.git.repository import Repository
from profdeploy.output.console import ConsoleProtocol
from profdeploy.platform.executor import CommandExecutor, ExecOptions, ExecutionContext
from profdeploy.services.branch import BranchResolver, Revision
from profdeploy.services.delta import DeltaSnapshot, DeltaTracker, Domain, classify
from profdeploy.services.manifest import PackageManifest, load_manifest
from profdeploy.services.processes import Lifecycle, ProcessLifecycleManager, check_capacity
from profdeploy.services.semver import SemVer, parse_version
from profdeploy.services.tagger import VersionTagger

__all__ = [
    "Continue",
    "Fail",
    "PipelineRunner",
    "PipelineState",
    "ProfileReport",
    "RunFailure",
    "RunOptions",
    "RunReport",
    "SkipRemainingStages",
    "StageOutcome",
]

PRE_DEPLOY_HOOK = "pre-deploy"
POST_DEPLOY_HOOK = "post-deploy"


class PipelineState(Enum):
    PENDING = "pending"
    PATH_ENTERED = "path-entered"
    ENV_MERGED = "env-merged"
    SCRIPT_DEFERRED = "script-deferred"
    PRE_HOOK_RUN = "pre-hook-run"
    FETCHED = "fetched"
    BRANCH_RESOLVED = "branch-resolved"
    DELTA_AFTER_CAPTURED = "delta-after-captured"
    PACKAGES_STAGE = "packages-stage"
    FRONTEND_STAGE = "frontend-stage"
    BACKEND_STAGE = "backend-stage"
    POST_HOOK_RUN = "post-hook-run"
    TAGGED = "tagged"
    DONE = "done"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Continue:
    pass


@dataclass(frozen=True, slots=True)
class SkipRemainingStages:
    reason: str


@dataclass(frozen=True, slots=True)
class Fail:
    error: DeployError


StageOutcome = Continue | SkipRemainingStages | Fail

CONTINUE = Continue()


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Operator switches for one run.

    Attributes:
        force: Run every gated stage and skip delta snapshots entirely.
        force_domains: Domains whose stage runs regardless of the delta.
        broadcast: Run the pre-deploy / post-deploy manifest hooks.
        dry_run: Mutations are announced, not performed.
    """

    force: bool = False
    force_domains: frozenset[Domain] = frozenset()
    broadcast: bool = True
    dry_run: bool = False

    def forced(self, domain: Domain) -> bool:
        return self.force or domain in self.force_domains


def _empty_states() -> list[PipelineState]:
    return []


def _empty_names() -> list[str]:
    return []


def _empty_changes() -> dict[Domain, bool]:
    return {}


@dataclass
class ProfileReport:
    """What happened to one profile."""

    profile_id: str
    states: list[PipelineState] = field(default_factory=_empty_states)
    skipped_stages: list[str] = field(default_factory=_empty_names)
    changes: dict[Domain, bool] = field(default_factory=_empty_changes)
    outcome: Literal["pending", "deployed", "skipped", "failed"] = "pending"
    revision: Revision | None = None
    lifecycle: Lifecycle | None = None
    tag: str | None = None

    @property
    def state(self) -> PipelineState:
        return self.states[-1] if self.states else PipelineState.PENDING


def _empty_reports() -> list[ProfileReport]:
    return []


@dataclass
class RunReport:
    profiles: list[ProfileReport] = field(default_factory=_empty_reports)

    @property
    def profile_ids(self) -> list[str]:
        return [p.profile_id for p in self.profiles]


@dataclass(frozen=True, slots=True)
class RunFailure:
    """The error that aborted a run, with where it happened."""

    profile_id: str
    state: PipelineState
    error: DeployError
    report: RunReport

    @property
    def message(self) -> str:
        return f'profile "{self.profile_id}" failed at {self.state}: {self.error.message}'

    @property
    def hint(self) -> str | None:
        return self.error.hint


@dataclass
class _ProfileRun:
    """Scratch state of one profile's pipeline."""

    profile: Profile
    ctx: ExecutionContext
    repository: Repository
    tracker: DeltaTracker
    report: ProfileReport
    manifest: PackageManifest | None = None
    before: DeltaSnapshot = field(default_factory=DeltaSnapshot)
    after: DeltaSnapshot = field(default_factory=DeltaSnapshot)


Stage = Callable[[_ProfileRun], StageOutcome]


class PipelineRunner:
    """Deploys profiles one at a time, in the order given, stopping at the first failure."""

    def __init__(
        self,
        config: DeployConfig,
        executor: CommandExecutor,
        *,
        console: ConsoleProtocol,
        options: RunOptions | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._config = config
        self._executor = executor
        self._console = console
        self._options = options or RunOptions()
        self._clock = clock or time.time
        self._context: ExecutionContext | None = None
        self._branches = BranchResolver(console=console)
        self._processes = ProcessLifecycleManager(
            executor,
            console=console,
            process_manager=config.commands.process_manager,
            restart_timeout=config.restart_timeout,
        )
        self._tagger = VersionTagger(console=console, dry_run=self._options.dry_run)

    @property
    def current_context(self) -> ExecutionContext | None:
        """Execution context of the profile being deployed, None between profiles."""
        return self._context

    def run(self, profiles: tuple[Profile, ...] | list[Profile]) -> Result[RunReport, RunFailure]:
        report = RunReport()
        for profile in profiles:
            result = self.run_profile(profile, report)
            if isinstance(result, Err):
                return result
        return Ok(report)

    def run_profile(
        self, profile: Profile, report: RunReport | None = None
    ) -> Result[ProfileReport, RunFailure]:
        run_report = report if report is not None else RunReport()
        profile_report = ProfileReport(profile_id=profile.id, states=[PipelineState.PENDING])
        run_report.profiles.append(profile_report)

        self._console.heading(f'Deploy profile "{profile.id}"')
        ctx = ExecutionContext(
            working_directory=profile.path,
            env_overlay=dict(profile.env_overrides),
        )

        with self._enter(ctx):
            repository = Repository(self._executor, ctx)
            run = _ProfileRun(
                profile=profile,
                ctx=ctx,
                repository=repository,
                tracker=DeltaTracker(
                    self._config.domains, repository=repository, clock=self._clock
                ),
                report=profile_report,
            )

            for state, stage in self._stages(profile):
                match stage(run):
                    case Fail(error):
                        profile_report.states.append(PipelineState.FAILED)
                        profile_report.outcome = "failed"
                        return Err(
                            RunFailure(
                                profile_id=profile.id,
                                state=state,
                                error=error,
                                report=run_report,
                            )
                        )
                    case SkipRemainingStages(reason):
                        profile_report.states.append(state)
                        profile_report.outcome = "skipped"
                        self._console.confirmed(f'Profile "{profile.id}" deployed ({reason})')
                        return Ok(profile_report)
                    case Continue():
                        profile_report.states.append(state)

        profile_report.states.append(PipelineState.DONE)
        profile_report.outcome = "deployed"
        self._console.confirmed(f'Profile "{profile.id}" successfully deployed')
        return Ok(profile_report)

    @contextmanager
    def _enter(self, ctx: ExecutionContext) -> Iterator[ExecutionContext]:
        previous = self._context
        self._context = ctx
        try:
            yield ctx
        finally:
            self._context = previous

    def _stages(self, profile: Profile) -> list[tuple[PipelineState, Stage]]:
        stages: list[tuple[PipelineState, Stage]] = [
            (PipelineState.PATH_ENTERED, self._enter_path),
            (PipelineState.ENV_MERGED, self._merge_env),
        ]
        if profile.script:
            stages.append((PipelineState.SCRIPT_DEFERRED, self._defer_to_script))
        stages.extend(
            [
                (PipelineState.PRE_HOOK_RUN, self._pre_hook),
                (PipelineState.FETCHED, self._fetch),
                (PipelineState.BRANCH_RESOLVED, self._resolve_branch),
                (PipelineState.DELTA_AFTER_CAPTURED, self._capture_after),
                (PipelineState.PACKAGES_STAGE, self._packages),
                (PipelineState.FRONTEND_STAGE, self._frontend),
                (PipelineState.BACKEND_STAGE, self._backend),
                (PipelineState.POST_HOOK_RUN, self._post_hook),
                (PipelineState.TAGGED, self._tag),
            ]
        )
        return stages

    # -- stages ---------------------------------------------------------------

    def _enter_path(self, run: _ProfileRun) -> StageOutcome:
        path = run.profile.path
        if not path.is_dir():
            return Fail(ConfigError(f"profiles.{run.profile.id}.path is not a directory: {path}"))
        capacity = check_capacity(run.profile)
        if isinstance(capacity, Err):
            return Fail(capacity.error)
        self._console.note(f"Working directory: {path}")

        manifest = load_manifest(run.profile.manifest_path)
        if isinstance(manifest, Err):
            return Fail(manifest.error)
        run.manifest = manifest.value
        return CONTINUE

    def _merge_env(self, run: _ProfileRun) -> StageOutcome:
        if run.ctx.env_overlay:
            self._console.note("Environment overrides: " + ", ".join(sorted(run.ctx.env_overlay)))
        return CONTINUE

    def _defer_to_script(self, run: _ProfileRun) -> StageOutcome:
        self._console.heading("Run deployment script")
        result = self._executor.run(
            list(run.profile.script), run.ctx, ExecOptions(step="deployment script")
        )
        if isinstance(result, Err):
            return Fail(result.error)
        return SkipRemainingStages("deferred to deployment script")

    def _pre_hook(self, run: _ProfileRun) -> StageOutcome:
        domains = [d for d in Domain if not self._options.forced(d)]
        if domains:
            self._console.heading("Calculate pre-deploy deltas")
            run.before = run.tracker.snapshot(run.profile.path, domains)
        return self._hook(run, PRE_DEPLOY_HOOK)

    def _fetch(self, run: _ProfileRun) -> StageOutcome:
        self._console.heading("Fetching changes")
        result = run.repository.fetch(run.profile.repo)
        if isinstance(result, Err):
            return Fail(result.error)
        return CONTINUE

    def _resolve_branch(self, run: _ProfileRun) -> StageOutcome:
        revision = self._branches.resolve(run.profile, run.repository.list_tags)
        if isinstance(revision, Err):
            return Fail(revision.error)
        run.report.revision = revision.value

        synced = self._branches.synchronize(run.repository, run.profile.repo, revision.value)
        if isinstance(synced, Err):
            return Fail(synced.error)

        # version and hooks come from the checked-out manifest from here on
        manifest = load_manifest(run.profile.manifest_path)
        if isinstance(manifest, Err):
            return Fail(manifest.error)
        run.manifest = manifest.value
        return CONTINUE

    def _capture_after(self, run: _ProfileRun) -> StageOutcome:
        domains = [d for d in Domain if not self._options.forced(d)]
        if not domains:
            return CONTINUE

        self._console.heading("Calculate post-pull deltas")
        run.after = run.tracker.snapshot(run.profile.path, domains)
        run.report.changes = classify(run.before, run.after)

        self._console.heading("Post-update deltas:")
        for domain, changed in run.report.changes.items():
            status = f"has updated, needs {domain.action}" if changed else "no changes"
            self._console.point(f"{domain.label:<8} - {status}")
        if not any(run.report.changes.values()):
            self._console.note("Nothing to do here - use --force if this is wrong")
        return CONTINUE

    def _packages(self, run: _ProfileRun) -> StageOutcome:
        title = "Clean-install packages"
        if not self._should_run(run, Domain.DEPENDENCIES, title):
            return CONTINUE
        result = self._executor.run(
            list(self._config.commands.install), run.ctx, ExecOptions(step=title)
        )
        return Fail(result.error) if isinstance(result, Err) else CONTINUE

    def _frontend(self, run: _ProfileRun) -> StageOutcome:
        title = "Build frontend"
        if not self._should_run(run, Domain.FRONTEND, title):
            return CONTINUE
        result = self._executor.run(
            list(self._config.commands.frontend), run.ctx, ExecOptions(step=title)
        )
        return Fail(result.error) if isinstance(result, Err) else CONTINUE

    def _backend(self, run: _ProfileRun) -> StageOutcome:
        if not self._should_run(run, Domain.BACKEND, "Restart backend processes"):
            return CONTINUE

        version: SemVer | None = None
        if run.manifest is not None and run.manifest.version is not None:
            version = parse_version(run.manifest.version)

        result = self._processes.apply(run.profile, run.ctx, version)
        if isinstance(result, Err):
            return Fail(result.error)
        run.report.lifecycle = result.value
        return CONTINUE

    def _post_hook(self, run: _ProfileRun) -> StageOutcome:
        return self._hook(run, POST_DEPLOY_HOOK)

    def _tag(self, run: _ProfileRun) -> StageOutcome:
        title = "Tag release"
        if not run.profile.wants_release:
            return CONTINUE
        if not (self._options.force or any(run.report.changes.values())):
            self._skip(run, title)
            return CONTINUE

        self._console.heading(title)
        result = self._tagger.release(run.profile, run.repository)
        if isinstance(result, Err):
            return Fail(result.error)
        run.report.tag = result.value
        self._console.confirmed(f"Tagged {result.value}")
        return CONTINUE

    # -- helpers --------------------------------------------------------------

    def _should_run(self, run: _ProfileRun, domain: Domain, title: str) -> bool:
        if self._options.forced(domain) or run.report.changes.get(domain, False):
            self._console.heading(title)
            return True
        self._skip(run, title)
        return False

    def _skip(self, run: _ProfileRun, title: str) -> None:
        self._console.skipped(title)
        run.report.skipped_stages.append(title)

    def _hook(self, run: _ProfileRun, hook: str) -> StageOutcome:
        title = f"Run {hook} hook"
        if not self._options.broadcast or run.manifest is None or not run.manifest.has_script(hook):
            self._skip(run, title)
            return CONTINUE

        self._console.heading(title)
        result = self._executor.run(
            [self._config.commands.package_manager, "run", hook],
            run.ctx,
            ExecOptions(step=f"{hook} hook"),
        )
        return Fail(result.error) if isinstance(result, Err) else CONTINUE
