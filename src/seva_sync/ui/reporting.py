"""
Summary rendering.

Renders a ReconcileSummary as a rich table of succeeded and failed
operations per level and provider, followed by one line per failure.
"""

from __future__ import annotations

from rich import box
from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from seva_sync.models.summary import ReconcileSummary


def build_summary_table(summary: ReconcileSummary, title: str) -> Table:
	"""
	Build the per level and provider counts table.

	Parameters:
		summary: Results of one command.
		title: Table title, e.g. "Secrets export".

	Returns:
		Rich Table with a totals row.
	"""
	table = Table(title=f"{title}: {summary.owner}", box=box.ROUNDED,
	              show_header=True)
	table.add_column("Level")
	table.add_column("Provider")
	table.add_column("Succeeded", justify="right")
	table.add_column("Failed", justify="right")
	for (level, provider), (ok, bad) in summary.counts().items():
		table.add_row(level, provider, str(ok),
		              Text(str(bad), style="red" if bad else ""))
	table.add_row("total", "", str(summary.succeeded), str(summary.failed),
	              style="bold")
	return table


def build_failures_text(summary: ReconcileSummary) -> Text:
	text = Text()
	for r in summary.failures:
		text.append(f"• {r.action} {r.level} {r.provider} {r.name} "
		            f"on {r.target}: {r.error}\n", style="red")
	return text


def render_summary(summary: ReconcileSummary, title: str,
                   console: Console | None = None) -> None:
	"""Print the summary table, and the failures when there are any."""
	console = console or Console(stderr=True)
	table = build_summary_table(summary, title)
	if summary.has_failures:
		console.print(Group(table, build_failures_text(summary)))
	else:
		console.print(table)


__all__ = ["build_summary_table", "build_failures_text", "render_summary"]
