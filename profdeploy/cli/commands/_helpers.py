# SPDX-License-Identifier: MIT
"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from profdeploy.core.errors import ErrorCode
from profdeploy.core.result import Err, Result
from profdeploy.output.console import Style

if TYPE_CHECKING:
    from profdeploy.cli.context import CLIContext


def exit_on_error[T, E](
    result: Result[T, E],
    ctx: CLIContext,
    error_code: ErrorCode = ErrorCode.ABORTED,
) -> T:
    """Return the Ok value, or report the error and exit.

    This helper reduces boilerplate for the common pattern:
        match result:
            case Err(e):
                ctx.console.error(e.message)
                if e.hint:
                    ctx.console.print(f"hint: {e.hint}", Style.DIM)
                raise typer.Exit(code=int(ErrorCode.ABORTED))
            case Ok(value):
                ...

    Expects error objects to have 'message' and optional 'hint' attributes.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        ctx.console.error(message)
        if hint:
            ctx.console.print(f"hint: {hint}", Style.DIM)
        exit_with_code(int(error_code))
    return result.value


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
