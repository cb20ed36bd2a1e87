"""Output formatting utilities for the CLI.

Statements are the only thing written to stdout so the output can be piped
into a SQL client. Everything else (status, summaries, errors) goes to stderr.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import typer
from rich.console import Console
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME, stderr=True)


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def statements(self, lines: Iterable[str]) -> None:
        """Write SQL statement lines to stdout, unstyled."""
        for line in lines:
            typer.echo(line)

    def plan_tree(self, title: str, text: str) -> None:
        """Print a rendered plan tree under a header."""
        self.header(title)
        console.print(text, markup=False, highlight=False)

    def failed_jobs_table(self, failed: Iterable[Any], title: str = "Failed fetches") -> None:
        """
        Expects objects with .job and .error (like ucsync.core.crawler.FailedJob)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Job", style="warn")
        t.add_column("Error", style="err")

        for f in failed:
            t.add_row(str(f.job), str(f.error))

        console.print(t)


out = Out()
