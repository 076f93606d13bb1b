# SPDX-License-Identifier: MIT
"""Tests for process instance derivation and the pm2 lifecycle."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from profdeploy.core.errors import ConfigError, ExternalCommandError
from profdeploy.core.profile import Profile
from profdeploy.core.result import Err, Ok
from profdeploy.output.console import MockConsole
from profdeploy.platform.executor import ExecutionContext
from profdeploy.services.processes import (
    Lifecycle,
    ProcessInstance,
    ProcessLifecycleManager,
    decide,
    derive_instances,
    render_template,
)
from profdeploy.services.semver import SemVer


def profile(**kwargs: object) -> Profile:
    return Profile(id="worker", path=Path("/srv/worker"), **kwargs)  # type: ignore[arg-type]


def names(result: object) -> list[str]:
    assert isinstance(result, Ok)
    return [instance.name for instance in result.value]


class TestRenderTemplate:
    def test_substitutes_known_variables(self) -> None:
        assert render_template("${id}-${alpha}", {"id": "api", "alpha": "b"}) == Ok("api-b")

    def test_unknown_placeholder_is_a_config_error(self) -> None:
        result = render_template("${id}-${host}", {"id": "api"})
        assert isinstance(result, Err)
        assert "${host}" in result.error.message
        assert result.error.hint == "Available: id"

    def test_no_expression_evaluation(self) -> None:
        result = render_template("${__import__('os')}", {"id": "api"})
        assert isinstance(result, Err)

    def test_literal_dollar_escape(self) -> None:
        assert render_template("$$${id}", {"id": "api"}) == Ok("$api")


class TestDeriveInstances:
    def test_default_template(self) -> None:
        result = derive_instances(profile(process_count=3))
        assert names(result) == ["worker-a", "worker-b", "worker-c"]

    def test_offset_template(self) -> None:
        result = derive_instances(
            profile(process_count=2, instance_name_template="${id}.${offset}")
        )
        assert names(result) == ["worker.0", "worker.1"]

    def test_version_variables(self) -> None:
        result = derive_instances(
            profile(instance_name_template="${id}-v${major}"), SemVer(2, 4, 1)
        )
        assert names(result) == ["worker-v2"]

    def test_version_variables_without_version(self) -> None:
        result = derive_instances(profile(instance_name_template="${id}-v${major}"))
        assert isinstance(result, Err)

    def test_explicit_names_win(self) -> None:
        result = derive_instances(profile(process_count=3, instance_names=("blue", "green")))
        assert names(result) == ["blue", "green"]

    def test_overflow_without_names(self) -> None:
        result = derive_instances(profile(process_count=27))
        assert isinstance(result, Err)
        assert isinstance(result.error, ConfigError)
        assert "instance_names" in result.error.message

    def test_twenty_six_is_fine(self) -> None:
        result = derive_instances(profile(process_count=26))
        assert names(result)[-1] == "worker-z"

    def test_many_instances_with_explicit_names(self) -> None:
        explicit = tuple(f"w{i}" for i in range(30))
        result = derive_instances(profile(process_count=30, instance_names=explicit))
        assert len(names(result)) == 30

    def test_per_instance_args(self) -> None:
        result = derive_instances(
            profile(
                process_count=2,
                instance_args={
                    "default": ("--port=80${offset}",),
                    "worker-b": ("--primary", "--name=${alpha}"),
                },
            )
        )
        assert isinstance(result, Ok)
        assert result.value == [
            ProcessInstance(name="worker-a", argv=("--port=800",), ordinal=0),
            ProcessInstance(name="worker-b", argv=("--primary", "--name=b"), ordinal=1),
        ]


def test_decide() -> None:
    assert decide(True) is Lifecycle.RESTART
    assert decide(False) is Lifecycle.START


def not_found(name: str) -> Err[ExternalCommandError]:
    return Err(
        ExternalCommandError(
            step="pm2 describe",
            command=("pm2", "describe", name),
            returncode=1,
            output=f"[PM2][WARN] {name} doesn't exist",
        )
    )


class TestProcessLifecycleManager:
    def make(self) -> tuple[ProcessLifecycleManager, MagicMock, ExecutionContext]:
        executor = MagicMock()
        manager = ProcessLifecycleManager(executor, console=MockConsole(), restart_timeout=12.5)
        return manager, executor, ExecutionContext(Path("/srv/worker"))

    @staticmethod
    def argvs(executor: MagicMock) -> list[list[str]]:
        return [list(call.args[0]) for call in executor.run.call_args_list]

    def test_restart_when_known(self) -> None:
        manager, executor, ctx = self.make()
        executor.run.return_value = Ok("status: online")

        result = manager.apply(profile(process_count=2), ctx)

        assert result == Ok(Lifecycle.RESTART)
        assert self.argvs(executor) == [
            ["pm2", "describe", "worker-a"],
            [
                "pm2",
                "restart",
                "worker-a",
                "worker-b",
                "--update-env",
                "--wait-ready",
                "--listen-timeout",
                "12500",
            ],
        ]

    def test_existence_check_is_readonly(self) -> None:
        manager, executor, ctx = self.make()
        executor.run.return_value = Ok("")

        manager.is_running([ProcessInstance("worker-a", (), 0)], ctx)

        options = executor.run.call_args.args[2]
        assert options.readonly is True

    def test_start_when_unknown(self) -> None:
        manager, executor, ctx = self.make()
        executor.run.side_effect = [not_found("worker-a"), Ok(""), Ok("")]

        result = manager.apply(
            profile(
                process_count=2, process_script="server.js", instance_args={"default": ("--x",)}
            ),
            ctx,
        )

        assert result == Ok(Lifecycle.START)
        assert self.argvs(executor)[1:] == [
            ["pm2", "start", "server.js", "--name", "worker-a", "--", "--x"],
            ["pm2", "start", "server.js", "--name", "worker-b", "--", "--x"],
        ]

    def test_start_without_args(self) -> None:
        manager, executor, ctx = self.make()
        executor.run.side_effect = [not_found("worker-a"), Ok("")]

        manager.apply(profile(), ctx)

        assert self.argvs(executor)[1] == ["pm2", "start", "app.js", "--name", "worker-a"]

    def test_describe_success_with_warning_means_absent(self) -> None:
        manager, executor, ctx = self.make()
        executor.run.side_effect = [Ok("[PM2][WARN] worker-a doesn't exist"), Ok("")]

        assert manager.apply(profile(), ctx) == Ok(Lifecycle.START)

    def test_lookup_failure_other_than_absence(self) -> None:
        manager, executor, ctx = self.make()
        error = ExternalCommandError(
            step="pm2 describe", command=("pm2",), returncode=-1, output="No such file"
        )
        executor.run.return_value = Err(error)

        assert manager.apply(profile(), ctx) == Err(error)

    def test_start_stops_at_first_failure(self) -> None:
        manager, executor, ctx = self.make()
        error = ExternalCommandError(step="pm2 start", command=("pm2", "start"))
        executor.run.side_effect = [not_found("worker-a"), Err(error), Ok("")]

        result = manager.apply(profile(process_count=2), ctx)

        assert result == Err(error)
        assert executor.run.call_count == 2

    def test_bad_template_runs_nothing(self) -> None:
        manager, executor, ctx = self.make()

        result = manager.apply(profile(process_count=27), ctx)

        assert isinstance(result, Err)
        executor.run.assert_not_called()

    @pytest.mark.parametrize("pm", ["pm2", "/opt/bin/pm2"])
    def test_process_manager_binary(self, pm: str) -> None:
        executor = MagicMock()
        executor.run.return_value = Ok("online")
        manager = ProcessLifecycleManager(executor, console=MockConsole(), process_manager=pm)

        manager.apply(profile(), ExecutionContext(Path("/srv")))

        assert all(call.args[0][0] == pm for call in executor.run.call_args_list)
