"""Rich-based console rendering for analysis outcomes and health reports."""

from __future__ import annotations

import sys
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from riskscope.domain.enums import AnalysisMode, RiskLevel, ZScoreZone
from riskscope.domain.values import AnalysisOutcome, CompanyQuery
from riskscope.infrastructure.event_bus import EventStore
from riskscope.services.health import HealthReport

_RISK_COLOURS = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
}

_EVENT_COLOURS = {
    "AttemptFailed": "yellow",
    "FallbackUsed": "red",
    "CircuitOpened": "red",
    "CircuitRejected": "red",
    "ZoneMismatchDetected": "yellow",
    "CacheHit": "green",
}

_ZONE_COLOURS = {
    ZScoreZone.SAFE: "green",
    ZScoreZone.GREY: "yellow",
    ZScoreZone.DISTRESS: "red",
    ZScoreZone.UNKNOWN: "dim",
}


def _fmt(value: Any, digits: int = 2) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.{digits}f}"
    return str(value)


def _coloured(text: str, colour: str | None) -> str:
    return f"[{colour}]{text}[/{colour}]" if colour else text


class RiskConsole:
    """Console presentation layer for the ``riskscope`` CLI.

    Parameters
    ----------
    console:
        A ``rich`` console.  Defaults to one writing to *file*.
    file:
        Output stream used when *console* is omitted.  Defaults to
        ``sys.stdout``.
    """

    def __init__(self, console: Console | None = None, file: Any = None) -> None:
        self._console = console or Console(file=file or sys.stdout)

    @property
    def console(self) -> Console:
        return self._console

    def print_outcome(self, outcome: AnalysisOutcome) -> None:
        result = outcome.result
        mode = result.metadata.mode

        title = f"Risk analysis {result.analysis_id} ({mode.value})"
        if result.used_fallback:
            title += " (degraded)"
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("Company", style="bold")
        table.add_column("Risk", justify="center")
        table.add_column("Score", justify="right")
        if mode is AnalysisMode.DETAILED:
            table.add_column("Z-Score", justify="right")
            table.add_column("Zone", justify="center")
            table.add_column("Rating", justify="center")
        else:
            table.add_column("Confidence", justify="right")

        for company in result.companies:
            level = company.risk_level
            risk = _coloured(level.value, _RISK_COLOURS.get(level)) if level else "-"
            row = [company.name, risk, _fmt(company.risk_score, 0)]
            if mode is AnalysisMode.DETAILED:
                zscore = company.altman_z_score
                if zscore is not None:
                    zone = _coloured(zscore.zone.value, _ZONE_COLOURS.get(zscore.zone))
                    if not zscore.zone_consistent:
                        zone += " [bold red]![/bold red]"
                    row += [_fmt(zscore.score), zone]
                else:
                    row += ["-", "-"]
                rating = company.overall_rating
                row.append(rating.value if rating else "-")
            else:
                row.append(_fmt(company.confidence))
            table.add_row(*row)

        self._console.print()
        self._console.print(table)

        summary = result.portfolio_summary
        if summary is not None and summary.overall_recommendations:
            self._console.print(f"  [dim]portfolio:[/dim] {summary.overall_recommendations}")

        consistency = outcome.consistency
        self._console.print(f"  [dim]{consistency.format_report()}[/dim]")
        self._console.print(
            f"  [dim]consistency:[/dim] {consistency.score:.0f}/100"
            f"  [dim]cached:[/dim] {outcome.from_cache}"
            f"  [dim]fallback:[/dim] {outcome.used_fallback}"
        )
        for note in result.metadata.zone_mismatches:
            self._console.print(f"  [yellow]zone mismatch:[/yellow] {note}")
        self._console.print()

    def print_health(self, report: HealthReport) -> None:
        status = "[green]OK[/green]" if report.success else "[red]FAILED[/red]"
        table = Table(title="Provider health", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Status", status)
        table.add_row("Provider", report.provider)
        table.add_row("Model", report.model or "-")
        table.add_row("HTTP status", _fmt(report.status))
        table.add_row("Latency", f"{report.latency:.2f}s")
        if report.response_text:
            table.add_row("Response", report.response_text)
        if report.error:
            table.add_row("Error", f"[red]{report.error}[/red]")
        self._console.print(table)

    def print_fingerprint(
        self,
        query: CompanyQuery,
        mode: AnalysisMode,
        fp: int,
        key: str,
    ) -> None:
        table = Table(title="Query fingerprint", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Companies", ", ".join(query.names))
        table.add_row("Mode", mode.value)
        table.add_row("Fingerprint", str(fp))
        table.add_row("Cache key", key)
        self._console.print(table)

    def print_events(self, store: EventStore) -> None:
        """One row per telemetry event, in publication order."""
        table = Table(title="Telemetry", show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Event")
        table.add_column("Details")
        for index, record in enumerate(store.to_records(), start=1):
            name = record.pop("event")
            for key in ("timestamp", "source_id", "fingerprint"):
                record.pop(key, None)
            details = ", ".join(
                f"{key}={value}" for key, value in record.items() if value not in (None, "")
            )
            table.add_row(str(index), _coloured(name, _EVENT_COLOURS.get(name)), escape(details))
        self._console.print(table)
