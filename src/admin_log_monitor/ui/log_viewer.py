"""Rich rendering of one log pane."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models import LogEntry

EMPTY_MESSAGE = "No logs to display"

LEVEL_STYLES = {
    "info": "blue",
    "warn": "yellow",
    "error": "red",
    "debug": "dim",
}


class LogViewerPanel:
    """Render entries as time / level / [source] / message rows.

    Only the newest ``max_rows`` rows are drawn, so the view follows the tail
    the way a scrolled-to-bottom viewer would.
    """

    def __init__(self, *, title: str = "Logs", max_rows: int = 200) -> None:
        self.title = title
        self.max_rows = max_rows

    def render(
        self,
        entries: Sequence[LogEntry],
        *,
        paused: bool = False,
        pending: int = 0,
        subtitle: str | None = None,
    ) -> Panel:
        body = self.build_table(entries) if entries else Text(EMPTY_MESSAGE, style="dim")
        footer = self.build_footer(len(entries), paused=paused, pending=pending)
        return Panel(
            Group(body, footer),
            title=self.title,
            subtitle=subtitle,
            border_style="yellow" if paused else "white",
        )

    def build_table(self, entries: Sequence[LogEntry]) -> Table:
        table = Table(show_header=False, box=None, padding=(0, 1), expand=True)
        table.add_column("Time", style="dim", no_wrap=True, width=8)
        table.add_column("Level", no_wrap=True, width=5)
        table.add_column("Source", style="bright_black", no_wrap=True)
        table.add_column("Message", overflow="fold", ratio=1)
        for entry in entries[-self.max_rows :]:
            style = LEVEL_STYLES.get(entry.level, "white")
            table.add_row(
                entry.display_time,
                Text(entry.level.upper(), style=f"bold {style}"),
                Text(f"[{entry.source}]" if entry.source else ""),
                Text(entry.message),
            )
        return table

    @staticmethod
    def build_footer(count: int, *, paused: bool, pending: int = 0) -> Text:
        footer = Text()
        if paused:
            footer.append("Paused", style="bold yellow")
            if pending:
                footer.append(f"  ({pending} new)", style="yellow")
        else:
            footer.append("● ", style="green")
            footer.append("Live", style="bold green")
        footer.append(f"   {count} entries", style="dim")
        return footer
