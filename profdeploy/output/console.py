# SPDX-License-Identifier: MIT
"""Console output abstraction.

Services report deployment progress through `ConsoleProtocol` so they never
depend on Rich directly. `RichConsole` is used by the CLI, `MockConsole`
captures output in tests.

Step vocabulary:
    heading    a step is starting            (● Pull changes)
    skipped    a step was not needed          (✘ Build frontend (skipped))
    confirmed  a step or profile finished     (✔ Profile "api" successfully deployed)
    point      a bullet under a heading       (   * Packages - no changes)
    note       side information               (- Peer profiles that will also deploy: web)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Style",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    BOLD = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for deployment progress output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling."""
        ...

    def heading(self, message: str) -> None:
        """Announce a step that is about to run."""
        ...

    def skipped(self, message: str) -> None:
        """Report a step that was skipped."""
        ...

    def confirmed(self, message: str) -> None:
        """Report a step or profile that completed."""
        ...

    def point(self, message: str) -> None:
        """Print a bullet under the last heading."""
        ...

    def note(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Console implementation using Rich.

    Writes to stderr, leaving stdout to the commands being run.
    """

    def __init__(self, *, stderr: bool = True) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console
        from rich.markup import escape

        self._console = Console(stderr=stderr, highlight=False)
        self._escape = escape
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def heading(self, message: str) -> None:
        self._console.print(f"[blue bold]● {self._escape(message)}[/blue bold]")

    def skipped(self, message: str) -> None:
        self._console.print(f"[bright_black bold]✘ {self._escape(message)} (skipped)[/]")

    def confirmed(self, message: str) -> None:
        self._console.print(f"[green bold]✔ {self._escape(message)}[/green bold]")

    def point(self, message: str) -> None:
        self._console.print(f"[bold blue]   *[/bold blue] {self._escape(message)}")

    def note(self, message: str) -> None:
        self._console.print(f"[bright_black]- {self._escape(message)}[/bright_black]")

    def error(self, message: str) -> None:
        self._console.print(f"[red bold]DEPLOY ERROR:[/red bold] {self._escape(message)}")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]warning:[/yellow] {self._escape(message)}")

    def newline(self) -> None:
        self._console.print()


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def heading(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"● {message}", Style.HEADER))

    def skipped(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"✘ {message} (skipped)", Style.DIM))

    def confirmed(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"✔ {message}", Style.SUCCESS))

    def point(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"   * {message}", Style.DEFAULT))

    def note(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"- {message}", Style.DIM))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"DEPLOY ERROR: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    # Test helper methods

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
