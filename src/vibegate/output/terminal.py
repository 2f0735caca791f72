"""Rich terminal reporter — verdict banner, severity pills, reasons, regression block."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from vibegate.policy.report import PolicyReport, RegressionSummary

_SEVERITY_STYLE = {
    "critical": "bold white on red",
    "high": "bold white on dark_orange",
    "medium": "bold black on yellow",
    "low": "bold black on bright_cyan",
    "info": "bold black on white",
}

_SEVERITY_ICON = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
    "low": "🔵",
    "info": "⚪",
}

_STATUS_STYLE = {
    "pass": "bold green",
    "warn": "bold yellow",
    "fail": "bold red",
}


def _severity_pill(severity: str) -> Text:
    style = _SEVERITY_STYLE.get(severity, "")
    icon = _SEVERITY_ICON.get(severity, "")
    return Text(f" {icon} {severity.upper()} ", style=style)


def render(report: PolicyReport, *, console: Optional[Console] = None) -> None:
    """Print a policy report to the terminal using Rich."""
    console = console or Console(stderr=True)

    console.print()
    console.print(
        f"[dim]Profile:[/dim] {report.profile_name or 'custom'}"
        + (f"   [dim]Evaluated:[/dim] {report.evaluated_at}" if report.evaluated_at else "")
    )

    if report.active_findings:
        table = Table(
            title="Active Findings",
            show_lines=True,
            title_style="bold",
            border_style="dim",
        )
        table.add_column("Severity", justify="center", width=14)
        table.add_column("Rule", style="cyan", min_width=14)
        table.add_column("Title")
        table.add_column("File", style="magenta")
        table.add_column("Conf.", justify="right", style="green")

        for finding in report.active_findings:
            sev = _severity_pill(finding.severity)
            if finding.original_severity:
                sev.append(f" (was {finding.original_severity})", style="dim")
            table.add_row(
                sev,
                finding.rule_id,
                finding.title or "-",
                finding.evidence[0].file if finding.evidence else "-",
                f"{finding.confidence:.2f}",
            )
        console.print(table)

    # Reasons
    console.print()
    for reason in report.reasons:
        style = _STATUS_STYLE[reason.status]
        console.print(f"  [{style}]{reason.status.upper():<4}[/{style}]  {reason.message}  [dim]({reason.code})[/dim]")

    if report.regression is not None:
        _print_regression(console, report.regression)

    if report.waived_findings:
        console.print()
        console.print(f"[bold]Waived ({len(report.waived_findings)}):[/bold]")
        for waived in report.waived_findings:
            console.print(
                f"  [cyan]{waived.finding.rule_id}[/cyan] {waived.finding.title or waived.finding.id}"
                f"  [dim]{waived.waiver.id}: {waived.waiver.reason}[/dim]"
            )
    if report.expired_waivers:
        console.print(f"[yellow]Expired waivers skipped:[/yellow] {', '.join(report.expired_waivers)}")

    _print_summary(console, report)

    # Final verdict
    console.print()
    if report.status == "fail":
        console.print("[bold red]❌ FAIL — policy blocks this change.[/bold red]")
    elif report.status == "warn":
        console.print("[bold yellow]⚠️  WARN — findings need attention, change allowed.[/bold yellow]")
    else:
        console.print("[bold green]✅ PASS — no findings meet fail or warn criteria.[/bold green]")


def _print_regression(console: Console, regression: RegressionSummary) -> None:
    diff = regression.diff
    console.print()
    console.print(f"[bold]Regression vs. baseline[/bold] [dim]{regression.baseline_id}[/dim]")
    console.print(
        f"  [dim]New:[/dim] {len(diff.new_findings)}  "
        f"[dim]Resolved:[/dim] {len(diff.resolved_findings)}  "
        f"[dim]Persisting:[/dim] {diff.persisting_count}  "
        f"[dim]Net:[/dim] {diff.net_change:+d}"
    )
    for sr in diff.severity_regressions:
        console.print(
            f"  [red]↑[/red] {sr.rule_id} {sr.previous_severity} -> {sr.current_severity}"
        )
    for pr in regression.protection_regressions:
        console.print(
            f"  [red]✗[/red] {pr.protection_type.value} protection removed in "
            f"[magenta]{pr.file}[/magenta]"
        )
    for sem in regression.semantic_regressions:
        if sem.type != "protection_removed":
            console.print(f"  [yellow]•[/yellow] {sem.description}")


def _print_summary(console: Console, report: PolicyReport) -> None:
    summary = report.summary
    counts = "  ".join(
        f"{sev}={count}" for sev, count in summary.by_severity.items() if count
    )
    console.print()
    console.print(f"[dim]Active:[/dim]   {summary.total}  {counts}")
    console.print(f"[dim]Waived:[/dim]   {summary.waived}")
    console.print(f"[dim]Ignored:[/dim]  {summary.ignored}")
