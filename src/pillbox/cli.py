"""CLI for pillbox: serve the schedule API and check inputs offline."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from pillbox.config import ConfigError, PillboxConfig, load_config
from pillbox.core.logging import configure_logging
from pillbox.dates import TIME_STYLES, format_time_of_day
from pillbox.schedule import validate_schedule_params

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"


@click.group()
@click.version_option(version="0.1.0")
def cli() -> None:
    """Pillbox: medication schedules, next doses and refill alerts."""


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Directory containing pillbox.toml",
)
@click.option("--host", default=DEFAULT_HOST, show_default=True, help="Host to bind to")
@click.option("--port", type=int, default=None, help="Port to bind to [default: 8200]")
def serve(config_path: Path | None, host: str, port: int | None) -> None:
    """Run the schedule API with uvicorn."""
    import uvicorn

    from pillbox.api.app import create_app

    if config_path is not None:
        try:
            config = load_config(config_path)
        except ConfigError as exc:
            click.echo(f"Config error: {exc}", err=True)
            sys.exit(1)
    else:
        config = PillboxConfig()

    configure_logging(
        level=config.logging.level,
        fmt=config.logging.format,
        log_root=config.logging.log_root,
        service_name=config.name,
    )

    bind_port = port if port is not None else config.port
    click.echo(f"Starting pillbox API on {host}:{bind_port}")
    uvicorn.run(create_app(config), host=host, port=bind_port, log_config=None)


@cli.command("check-config")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory containing pillbox.toml",
)
def check_config(config_path: Path) -> None:
    """Load and validate a config directory."""
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        click.echo(f"Config error: {exc}", err=True)
        sys.exit(1)

    click.echo(f"name:                   {config.name}")
    click.echo(f"port:                   {config.port}")
    click.echo(f"database:               {config.db.name}")
    click.echo(f"schema:                 {config.db.schema or '(default)'}")
    click.echo(f"log level:              {config.logging.level}")
    click.echo(f"log format:             {config.logging.format}")
    click.echo(f"max range days:         {config.schedule.max_range_days}")
    click.echo(f"next dose horizon days: {config.schedule.next_dose_horizon_days}")
    click.echo(f"refill days ahead:      {config.schedule.refill_days_ahead}")


@cli.command()
@click.option("--date", "day", default=None, help="Single date (YYYY-MM-DD)")
@click.option("--start-date", default=None, help="Range start (YYYY-MM-DD)")
@click.option("--end-date", default=None, help="Range end (YYYY-MM-DD)")
@click.option("--max-days", type=int, default=30, show_default=True)
def validate(
    day: str | None,
    start_date: str | None,
    end_date: str | None,
    max_days: int,
) -> None:
    """Report every problem with a set of schedule query parameters."""
    errors = validate_schedule_params(
        day=day, start_date=start_date, end_date=end_date, max_days=max_days
    )
    if errors:
        for message in errors:
            click.echo(f"  - {message}")
        sys.exit(1)
    click.echo("OK")


@cli.command("format-time")
@click.argument("minutes", type=int)
@click.option(
    "--style",
    type=click.Choice(TIME_STYLES),
    default="24h",
    show_default=True,
)
def format_time(minutes: int, style: str) -> None:
    """Render MINUTES past midnight as a clock time."""
    try:
        click.echo(format_time_of_day(minutes, style))
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="MINUTES") from exc
