"""Output formatting utilities for the CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Mapping

import questionary
from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from flinkops.cli.common.tui_style import QUESTIONARY_STYLE_CONFIRM

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

_STATUS_STYLES = {"RUNNING": "ok", "TERMINATED": "warn", "NOT_FOUND": "err"}

console = Console(theme=_THEME)
err_console = Console(theme=_THEME, stderr=True)


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with err_console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        err_console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        err_console.print(f"[err]✗[/] {msg}")

    def session_status(self, cluster_id: str, status: str) -> None:
        """Print the status of a session, coloured by how usable it is."""
        style = _STATUS_STYLES.get(status, "meta")
        console.print(f"[title]{cluster_id}[/] [{style}]{status}[/{style}]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs, skipping empty values."""
        for k, v in items.items():
            if v is None or v == "":
                continue
            console.print(f"[meta]{k}[/]: {v}")

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """
        Ask the user for confirmation using a standardized Questionary prompt.

        Args:
            message: Confirmation question shown to the user.
            default: Default answer if the user just presses enter.

        Returns:
            True if the user confirms, False otherwise (including Ctrl-C).
        """
        console.print("[meta]Use y/n then Enter[/]")
        answer = questionary.confirm(
            f"[flinkops] {message}",
            default=default,
            style=QUESTIONARY_STYLE_CONFIRM,
            qmark="✦",
            auto_enter=False,
        ).ask()
        return bool(answer)

    def config_table(self, config: Mapping[str, str], title: str = "Configuration") -> None:
        """Render an effective configuration as a two-column table."""
        t = Table(title=title, show_lines=False)
        t.add_column("Key", style="meta", no_wrap=True)
        t.add_column("Value")

        for key in sorted(config):
            t.add_row(key, str(config[key]))

        console.print(t)


out = Out()
