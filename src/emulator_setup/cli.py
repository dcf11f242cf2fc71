"""Typer CLI for wiring an SNS topic to an SQS queue on LocalStack."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import typer
from rich.console import Console
from rich.table import Table

from emulator_setup.aws.clients import (
    ClientUnavailableError,
    build_clients,
    require_boto3,
)
from emulator_setup.config.loader import load_setup_config
from emulator_setup.config.models import SetupConfig
from emulator_setup.observability.health import (
    EmulatorNotReadyError,
    Status,
    check_setup_health,
    wait_for_emulator,
)
from emulator_setup.observability.logging import configure_logging
from emulator_setup.provisioning.results import SetupReport, StepStatus

logger = structlog.get_logger()
console = Console()
app = typer.Typer(name="emulator-setup", help="Provision SNS/SQS on LocalStack")

_STATUS_STYLES = {
    StepStatus.CREATED: "green",
    StepStatus.LINKED: "green",
    StepStatus.DELETED: "green",
    StepStatus.EXISTS: "cyan",
    StepStatus.SKIPPED: "yellow",
    StepStatus.FAILED: "red",
}


@app.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="Log level"),
    log_format: str = typer.Option(
        "console", "--log-format", help="Log format: console or json"
    ),
) -> None:
    """Provision SNS/SQS resources on a local cloud emulator."""
    try:
        configure_logging(log_level, log_format)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


def _load(config_path: str | None, **overrides: Any) -> SetupConfig:
    if config_path is not None and not Path(config_path).exists():
        console.print(f"[red]Config file not found: {config_path}[/red]")
        raise typer.Exit(1)
    try:
        return load_setup_config(config_path, overrides)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc


def _require_client() -> None:
    try:
        require_boto3()
    except ClientUnavailableError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc


def _print_report(report: SetupReport, title: str) -> None:
    table = Table(title=title)
    table.add_column("Step", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")

    for s in report.steps:
        style = _STATUS_STYLES[s.status]
        table.add_row(s.step, f"[{style}]{s.status}[/{style}]", s.detail)

    console.print(table)


@app.command()
def setup(
    config_path: str | None = typer.Option(
        None, "--config", help="Setup YAML overriding defaults"
    ),
    endpoint_url: str | None = typer.Option(
        None, "--endpoint-url", help="Emulator endpoint URL"
    ),
    region: str | None = typer.Option(None, "--region", help="AWS region"),
    topic_name: str | None = typer.Option(None, "--topic-name", help="SNS topic name"),
    queue_name: str | None = typer.Option(None, "--queue-name", help="SQS queue name"),
    wait: float = typer.Option(
        0.0, "--wait", help="Seconds to wait for the emulator to come up"
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Exit non-zero if any step failed"
    ),
) -> None:
    """Create the topic and queue, then subscribe the queue to the topic."""
    console.print("[yellow]Starting LocalStack SNS and SQS creation...[/yellow]")
    _require_client()
    cfg = _load(
        config_path,
        endpoint_url=endpoint_url,
        region=region,
        topic_name=topic_name,
        queue_name=queue_name,
    )

    if wait > 0:
        try:
            wait_for_emulator(cfg.endpoint_url, wait)
        except EmulatorNotReadyError as exc:
            console.print(f"[red]{exc}[/red]")
            raise typer.Exit(1) from exc

    from emulator_setup.provisioning.provisioner import Provisioner

    report = Provisioner(cfg, build_clients(cfg)).run()
    logger.info("setup.finished", ok=report.ok, steps=report.summary)
    _print_report(report, f"Setup — {cfg.endpoint_url}")
    console.print("Finished LocalStack SNS and SQS creation.")
    if strict and not report.ok:
        raise typer.Exit(1)


@app.command()
def teardown(
    config_path: str | None = typer.Option(
        None, "--config", help="Setup YAML overriding defaults"
    ),
    endpoint_url: str | None = typer.Option(
        None, "--endpoint-url", help="Emulator endpoint URL"
    ),
    region: str | None = typer.Option(None, "--region", help="AWS region"),
    topic_name: str | None = typer.Option(None, "--topic-name", help="SNS topic name"),
    queue_name: str | None = typer.Option(None, "--queue-name", help="SQS queue name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove the subscription, the queue and the topic."""
    _require_client()
    cfg = _load(
        config_path,
        endpoint_url=endpoint_url,
        region=region,
        topic_name=topic_name,
        queue_name=queue_name,
    )

    if not yes:
        confirm = typer.confirm(
            f"Delete topic '{cfg.topic_name}' and queue '{cfg.queue_name}'?"
        )
        if not confirm:
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    from emulator_setup.provisioning.provisioner import Provisioner

    report = Provisioner(cfg, build_clients(cfg)).teardown()
    logger.info("teardown.finished", ok=report.ok, steps=report.summary)
    _print_report(report, f"Teardown — {cfg.endpoint_url}")
    if not report.ok:
        raise typer.Exit(1)


@app.command()
def health(
    config_path: str | None = typer.Option(
        None, "--config", help="Setup YAML overriding defaults"
    ),
    endpoint_url: str | None = typer.Option(
        None, "--endpoint-url", help="Emulator endpoint URL"
    ),
    region: str | None = typer.Option(None, "--region", help="AWS region"),
) -> None:
    """Check the emulator and its SNS/SQS APIs."""
    _require_client()
    cfg = _load(config_path, endpoint_url=endpoint_url, region=region)
    result = check_setup_health(cfg.endpoint_url, build_clients(cfg))

    table = Table(title="Emulator Health")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")

    for c in result.components:
        style = "green" if c.status == Status.HEALTHY else "red"
        table.add_row(c.name, f"[{style}]{c.status}[/{style}]", c.detail)

    console.print(table)
    if not result.healthy:
        raise typer.Exit(1)


@app.command()
def validate(
    config_path: str | None = typer.Option(
        None, "--config", help="Setup YAML overriding defaults"
    ),
    endpoint_url: str | None = typer.Option(
        None, "--endpoint-url", help="Emulator endpoint URL"
    ),
    region: str | None = typer.Option(None, "--region", help="AWS region"),
    topic_name: str | None = typer.Option(None, "--topic-name", help="SNS topic name"),
    queue_name: str | None = typer.Option(None, "--queue-name", help="SQS queue name"),
) -> None:
    """Print the effective configuration."""
    cfg = _load(
        config_path,
        endpoint_url=endpoint_url,
        region=region,
        topic_name=topic_name,
        queue_name=queue_name,
    )
    console.print("[green]Valid[/green]")
    console.print(f"  endpoint: {cfg.endpoint_url}")
    console.print(f"  region:   {cfg.region}")
    console.print(f"  topic:    {cfg.topic_name}")
    console.print(f"  queue:    {cfg.queue_name}")
    console.print(f"  policy sid: {cfg.policy_sid}")
    console.print(f"  raw delivery: {cfg.raw_message_delivery}")
    console.print(f"  config file: {config_path or '(defaults)'}")
