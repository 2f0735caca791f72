"""VibeGate CLI — Typer application with evaluate, profiles, init, and waivers commands."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from vibegate import __version__

app = typer.Typer(
    name="vibegate",
    help="Gate merges on security findings, waivers, and regressions.",
    add_completion=False,
    no_args_is_help=True,
)

waivers_app = typer.Typer(
    help="Manage the waivers file.",
    no_args_is_help=True,
)
app.add_typer(waivers_app, name="waivers")

console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _fail(label: str, exc: Exception) -> typer.Exit:
    console.print(f"[bold red]{label}:[/bold red] {exc}")
    return typer.Exit(code=2)


# ── evaluate ──────────────────────────────────────────────────────────────────


@app.command()
def evaluate(
    artifact: Path = typer.Argument(..., help="Scan artifact (JSON) to evaluate"),
    baseline: Optional[Path] = typer.Option(None, "--baseline", "-b", help="Baseline artifact for regression checks"),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Policy profile name"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .vibegate.toml"),
    waivers: Optional[Path] = typer.Option(None, "--waivers", "-w", help="Waivers file (JSON or YAML)"),
    format: str = typer.Option("terminal", "--format", "-f", help="Output format: terminal | json"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write JSON report to file"),
) -> None:
    """Evaluate a scan artifact against the policy. Exit 1 on fail."""
    from vibegate.config.loader import ConfigError, load_policy_config
    from vibegate.findings.loader import ArtifactError, load_artifact
    from vibegate.output import json_report, terminal
    from vibegate.policy.evaluator import evaluate as run_evaluate
    from vibegate.policy.waivers import WaiverError, load_waivers_file

    if format not in ("terminal", "json"):
        console.print(f"[bold red]Invalid format:[/bold red] {format}")
        raise typer.Exit(code=2)

    # --- Load config ---
    try:
        loaded = load_policy_config(Path.cwd(), config, profile)
    except ConfigError as exc:
        raise _fail("Config error", exc) from exc

    # --- Load artifacts ---
    try:
        current = load_artifact(artifact)
        base = load_artifact(baseline) if baseline else None
    except ArtifactError as exc:
        raise _fail("Artifact error", exc) from exc

    # --- Load waivers ---
    waivers_path = waivers or loaded.waivers_path
    active_waivers = ()
    if waivers_path is not None:
        if waivers is None and not waivers_path.is_file():
            logger.debug("Configured waivers file %s does not exist; continuing without", waivers_path)
        else:
            try:
                active_waivers = load_waivers_file(waivers_path).waivers
            except WaiverError as exc:
                raise _fail("Waiver error", exc) from exc

    report = run_evaluate(
        current,
        base,
        loaded.policy,
        active_waivers,
        now=datetime.now(timezone.utc),
        artifact_path=str(artifact),
    )

    # --- Output ---
    report_text: Optional[str] = None
    if format == "terminal":
        terminal.render(report, console=console)
    else:
        report_text = json_report.render(report)
        print(report_text)

    if output:
        Path(output).write_text(report_text or json_report.render(report), encoding="utf-8")
        console.print(f"[dim]Report written to {output}[/dim]")

    raise typer.Exit(code=report.exit_code)


# ── profiles ──────────────────────────────────────────────────────────────────


@app.command()
def profiles() -> None:
    """List the built-in policy profiles."""
    from vibegate.config.profiles import DEFAULT_PROFILE, PROFILE_DESCRIPTIONS, PROFILES

    table = Table(title="Policy Profiles", title_style="bold", border_style="dim")
    table.add_column("Profile", style="cyan")
    table.add_column("Fail on", justify="center")
    table.add_column("Warn on", justify="center")
    table.add_column("Description")

    for name, cfg in PROFILES.items():
        label = f"{name} (default)" if name == DEFAULT_PROFILE else name
        table.add_row(
            label,
            cfg.thresholds.fail_on_severity,
            cfg.thresholds.warn_on_severity,
            PROFILE_DESCRIPTIONS[name],
        )
    console.print(table)


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing .vibegate.toml"),
) -> None:
    """Generate a starter .vibegate.toml in the current directory."""
    from vibegate.config.defaults import DEFAULT_TOML
    from vibegate.config.loader import CONFIG_FILE_NAME

    config_path = Path.cwd() / CONFIG_FILE_NAME

    if config_path.exists() and not force:
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILE_NAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── waivers ───────────────────────────────────────────────────────────────────


_FILE_OPTION_HELP = "Waivers file (JSON or YAML)"


@waivers_app.command("init")
def waivers_init(
    file: Path = typer.Option(Path("vibegate-waivers.json"), "--file", "-f", help=_FILE_OPTION_HELP),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Create an empty waivers file."""
    from vibegate.policy.waivers import WaiversFile, save_waivers_file

    if file.exists() and not force:
        console.print(f"[yellow]⚠[/yellow]  {file} already exists")
        raise typer.Exit(code=1)
    save_waivers_file(file, WaiversFile())
    console.print(f"[green]✓[/green] Created {file}")


@waivers_app.command("add")
def waivers_add(
    reason: str = typer.Option(..., "--reason", "-r", help="Why this finding is accepted"),
    created_by: str = typer.Option(..., "--by", help="Who accepts the risk"),
    fingerprint: Optional[str] = typer.Option(None, "--fingerprint", help="Waive one finding by fingerprint"),
    rule_id: Optional[str] = typer.Option(None, "--rule", help="Waive a rule id (trailing * allowed)"),
    path_pattern: Optional[str] = typer.Option(None, "--path", help="Narrow a rule waiver to a path glob"),
    expires: Optional[str] = typer.Option(None, "--expires", help="Expiry timestamp (ISO-8601)"),
    ticket: Optional[str] = typer.Option(None, "--ticket", help="Tracking ticket reference"),
    file: Path = typer.Option(Path("vibegate-waivers.json"), "--file", "-f", help=_FILE_OPTION_HELP),
) -> None:
    """Add a waiver to the waivers file."""
    from vibegate.policy.waivers import (
        WaiverError,
        WaiversFile,
        add_waiver,
        create_waiver,
        load_waivers_file,
        parse_timestamp,
        save_waivers_file,
    )

    try:
        current = load_waivers_file(file) if file.exists() else WaiversFile()
        waiver = create_waiver(
            reason=reason,
            created_by=created_by,
            fingerprint=fingerprint,
            rule_id=rule_id,
            path_pattern=path_pattern,
            expires_at=parse_timestamp(expires) if expires else None,
            ticket_ref=ticket,
        )
    except WaiverError as exc:
        raise _fail("Waiver error", exc) from exc

    save_waivers_file(file, add_waiver(current, waiver))
    console.print(f"[green]✓[/green] Added waiver {waiver.id}")
    print(waiver.id)


@waivers_app.command("list")
def waivers_list(
    file: Path = typer.Option(Path("vibegate-waivers.json"), "--file", "-f", help=_FILE_OPTION_HELP),
) -> None:
    """List waivers and whether they have expired."""
    from vibegate.policy.waivers import WaiverError, is_waiver_expired, load_waivers_file

    try:
        waivers_file = load_waivers_file(file)
    except WaiverError as exc:
        raise _fail("Waiver error", exc) from exc

    if not waivers_file.waivers:
        console.print("[dim]No waivers defined.[/dim]")
        return

    now = datetime.now(timezone.utc)
    table = Table(title=f"Waivers ({file})", title_style="bold", border_style="dim")
    table.add_column("ID", style="cyan")
    table.add_column("Match")
    table.add_column("Reason")
    table.add_column("By", style="magenta")
    table.add_column("Expires")

    for waiver in waivers_file.waivers:
        match = waiver.match.fingerprint or waiver.match.rule_id or ""
        if waiver.match.path_pattern:
            match += f" @ {waiver.match.path_pattern}"
        if waiver.expires_at is None:
            expires = "never"
        elif is_waiver_expired(waiver, now):
            expires = f"[red]expired {waiver.expires_at.date()}[/red]"
        else:
            expires = str(waiver.expires_at.date())
        table.add_row(waiver.id, match, waiver.reason, waiver.created_by, expires)
    console.print(table)


@waivers_app.command("remove")
def waivers_remove(
    waiver_id: str = typer.Argument(..., help="Id of the waiver to remove"),
    file: Path = typer.Option(Path("vibegate-waivers.json"), "--file", "-f", help=_FILE_OPTION_HELP),
) -> None:
    """Remove a waiver by id."""
    from vibegate.policy.waivers import WaiverError, load_waivers_file, remove_waiver, save_waivers_file

    try:
        current = load_waivers_file(file)
    except WaiverError as exc:
        raise _fail("Waiver error", exc) from exc

    updated = remove_waiver(current, waiver_id)
    if len(updated.waivers) == len(current.waivers):
        console.print(f"[red]✗[/red] No waiver with id {waiver_id}")
        raise typer.Exit(code=1)
    save_waivers_file(file, updated)
    console.print(f"[green]✓[/green] Removed waiver {waiver_id}")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"vibegate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """VibeGate — policy gate for security scan artifacts."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
