"""Command-line interface for SolarCast."""

from __future__ import annotations

import asyncio
import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

import click
import structlog
import yaml
from pydantic import ValidationError

from solarcast import __version__
from solarcast.config import Config, ForecastConfig, StorageConfig, load_config
from solarcast.crawler.http_client import FALLBACK_ENCODING
from solarcast.errors import SolarCastError
from solarcast.observability import configure_logging, write_metrics
from solarcast.pipeline import ExtractionPipeline
from solarcast.service import ForecastService
from solarcast.storage import StateStore
from solarcast.utils import atomic_write_json

logger = structlog.get_logger(__name__)

DATE_FORMATS = ["%Y-%m-%d", "%d.%m.%Y"]


def _echo_json(data: Dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _reference_date(value: Optional[datetime]) -> date:
    return value.date() if value else date.today()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration file path",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the config file)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], log_level: Optional[str]) -> None:
    """SolarCast - regional solar forecast scraper."""
    ctx.ensure_object(dict)
    try:
        settings = load_config(config)
    except (ValidationError, FileNotFoundError, yaml.YAMLError) as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    if log_level:
        settings.monitoring.log_level = log_level
    configure_logging(settings.monitoring)
    ctx.obj["config"] = settings


@cli.command()
@click.option("--region", help="Postcode area of the forecast page")
@click.option("--power-kw", type=click.FloatRange(min=0), help="Installed power of the home system in kWp")
@click.option("--db", type=click.Path(dir_okay=False, path_type=Path), help="State store database path")
@click.option("--date", "ref_date", type=click.DateTime(formats=DATE_FORMATS), help="Reference date (default: today)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the run result as JSON")
@click.pass_context
def run(
    ctx: click.Context,
    region: Optional[str],
    power_kw: Optional[float],
    db: Optional[Path],
    ref_date: Optional[datetime],
    output: Optional[Path],
) -> None:
    """Fetch the forecast page, extract the fields and persist the states."""
    config: Config = ctx.obj["config"]

    overrides: Dict[str, Any] = {}
    if region is not None:
        overrides["region"] = region
    if power_kw is not None:
        overrides["power_kw"] = power_kw
    try:
        if overrides:
            config.forecast = ForecastConfig.model_validate({**config.forecast.model_dump(), **overrides})
        if db is not None:
            config.storage = StorageConfig(db_path=db)
    except ValidationError as e:
        raise click.ClickException(f"Invalid option: {e}") from e

    try:
        result = asyncio.run(ForecastService(config).run(_reference_date(ref_date)))
    except SolarCastError as e:
        logger.error("Forecast run failed", error=str(e), error_type=type(e).__name__)
        raise click.ClickException(str(e)) from e
    finally:
        if config.monitoring.metrics_file:
            write_metrics(Path(config.monitoring.metrics_file))

    if output is not None:
        atomic_write_json(output, result.to_dict())
    _echo_json(result.to_dict())


@cli.command()
@click.argument("page", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--power-kw", type=click.FloatRange(min=0), help="Installed power of the home system in kWp")
@click.option("--date", "ref_date", type=click.DateTime(formats=DATE_FORMATS), help="Reference date (default: today)")
@click.option("--encoding", default=FALLBACK_ENCODING, show_default=True, help="Encoding of the saved page")
@click.pass_context
def parse(
    ctx: click.Context,
    page: Path,
    power_kw: Optional[float],
    ref_date: Optional[datetime],
    encoding: str,
) -> None:
    """Extract the fields from a saved forecast page without persisting anything."""
    config: Config = ctx.obj["config"]
    document = page.read_text(encoding=encoding, errors="replace")
    power = power_kw if power_kw is not None else config.forecast.power_kw

    result = ExtractionPipeline(config.marker_table()).run(document, power, _reference_date(ref_date))
    _echo_json(result.to_dict())
    if not result.ok:
        ctx.exit(1)


@cli.command()
@click.option("--db", type=click.Path(dir_okay=False, path_type=Path), help="State store database path")
@click.option("--prefix", default=None, help="Only show states whose id starts with this prefix")
@click.pass_context
def states(ctx: click.Context, db: Optional[Path], prefix: Optional[str]) -> None:
    """Show the persisted states."""
    config: Config = ctx.obj["config"]
    storage = StorageConfig(db_path=db) if db is not None else config.storage

    async def _load() -> Dict[str, Any]:
        async with StateStore(storage) as store:
            entries = await store.all_states(prefix if prefix is not None else config.forecast.state_prefix)
        return {
            entry.state_id: {
                "value": entry.value,
                "ack": entry.ack,
                "updated_at": entry.updated_at.isoformat() if entry.updated_at else None,
            }
            for entry in entries
        }

    _echo_json(asyncio.run(_load()))


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
