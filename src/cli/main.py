"""
CLI entry point: optstruct positions | marks | health.

Every command loads config from --config (default config.yaml, optional),
prints a human-readable structure report, and logs to stderr.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from config import AppConfig, EngineConfig, EngineConfigError, load_config, load_engine_config
from ingest import ColumnMapping, IngestError, IngestResult, load_rows, map_rows
from positions_core.aggregator import AggregationResult, apply_lifecycle, build_structures
from positions_core.contracts import Venue

load_dotenv()

logger = logging.getLogger("optstruct")

DEFAULT_CONFIG_PATH = "config.yaml"


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


@click.group()
@click.option("--config", "config_path", default=DEFAULT_CONFIG_PATH, help="Path to config file.")
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """optstruct: option trade fills -> multi-leg structures, PnL, status and live marks."""
    _setup_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------- shared loading ----------


def _load_app_config(ctx: click.Context) -> AppConfig:
    path = ctx.obj["config_path"]
    try:
        return load_config(path, missing_ok=path == DEFAULT_CONFIG_PATH)
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


def _load_engine_config(cfg: AppConfig, venue: Venue) -> EngineConfig:
    try:
        return load_engine_config(cfg.engine_config_path or None, venue=venue.value)
    except EngineConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _load_mapping(mapping_path: str | None) -> ColumnMapping:
    if not mapping_path:
        return ColumnMapping()
    try:
        with open(mapping_path) as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise click.ClickException(f"Cannot read column mapping {mapping_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise click.ClickException("Column mapping must be a JSON object")
    return ColumnMapping.from_dict(raw)


def _build(
    file: str,
    venue: Venue,
    engine: EngineConfig,
    mapping: ColumnMapping,
    closed: tuple[str, ...],
) -> tuple[IngestResult, AggregationResult]:
    try:
        raw_rows = load_rows(file)
    except IngestError as exc:
        raise click.ClickException(str(exc)) from exc

    ingest = map_rows(raw_rows, mapping, venue=venue)
    aggregation = build_structures(
        ingest.rows,
        thresholds=engine.to_thresholds(),
        default_venue=engine.default_venue,
        epsilon=engine.ledger.lot_epsilon,
    )
    if closed:
        aggregation.structures = [
            apply_lifecycle(s, "closed") if s.id in closed or s.structure_id in closed else s
            for s in aggregation.structures
        ]
    return ingest, aggregation


_venue_option = click.option(
    "--venue",
    type=click.Choice([v.value for v in Venue], case_sensitive=False),
    default=None,
    help="Venue of the import file (default: config default_venue).",
)
_mapping_option = click.option(
    "--mapping", "mapping_path", default=None, help="JSON file mapping logical fields to column names."
)
_closed_option = click.option(
    "--closed", multiple=True, help="Structure id to report as closed (repeatable)."
)


# ---------- optstruct positions ----------


@cli.command()
@click.argument("file", type=click.Path(dir_okay=False))
@_venue_option
@_mapping_option
@_closed_option
@click.pass_context
def positions(
    ctx: click.Context,
    file: str,
    venue: str | None,
    mapping_path: str | None,
    closed: tuple[str, ...],
) -> None:
    """Group trades in FILE (.csv or .json) into structures and print them."""
    from cli.output import format_positions

    cfg = _load_app_config(ctx)
    resolved = Venue(venue.lower()) if venue else cfg.default_venue
    engine = _load_engine_config(cfg, resolved)

    ingest, aggregation = _build(file, resolved, engine, _load_mapping(mapping_path), closed)
    click.echo(format_positions(ingest, aggregation))


# ---------- optstruct marks ----------


@cli.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--quotes", "quotes_path", default=None, help="Quotes JSON: {venue: {symbol: {price, multiplier, greeks}}}.")
@_venue_option
@_mapping_option
@_closed_option
@click.pass_context
def marks(
    ctx: click.Context,
    file: str,
    quotes_path: str | None,
    venue: str | None,
    mapping_path: str | None,
    closed: tuple[str, ...],
) -> None:
    """Refresh marks for the structures in FILE and print unrealized PnL and greeks."""
    from cli.output import format_refresh
    from cli.structured_log import StructuredEventLogger
    from marks import MarkCache, MarkFetcher, StaticMarkClient
    from positions_core.exposure import value_structure

    cfg = _load_app_config(ctx)
    resolved = Venue(venue.lower()) if venue else cfg.default_venue
    engine = _load_engine_config(cfg, resolved)

    quotes = quotes_path or cfg.marks.quotes_path
    if not quotes:
        raise click.ClickException("No quotes source: pass --quotes or set marks.quotes_path in config")

    try:
        clients = {v: StaticMarkClient.from_json(quotes, v.value) for v in Venue}
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    ingest, aggregation = _build(file, resolved, engine, _load_mapping(mapping_path), closed)

    events = StructuredEventLogger(
        Path(file).name,
        enabled=cfg.alerting.structured_logs,
        webhook_url=cfg.alerting.webhook_url,
    )
    fetcher = MarkFetcher(
        clients,
        MarkCache(),
        batch_size=engine.marks.batch_size,
        event_logger=events,
        on_progress=lambda p: logger.info("Marks %d/%d (errors %d)", p.done, p.total, p.errors),
    )

    try:
        progress = asyncio.run(fetcher.refresh(aggregation.structures))
    except Exception as exc:
        events.error("Mark refresh aborted", detail=str(exc))
        raise click.ClickException(f"Mark refresh aborted: {exc}") from exc

    snapshot = fetcher.cache.snapshot()
    valuations = [value_structure(s, snapshot) for s in aggregation.structures]
    click.echo(format_refresh(progress, valuations))


# ---------- optstruct health ----------


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check config and engine config load and validate.

    Exit code 0 = healthy, 1 = unhealthy.
    """
    checks: list[tuple[str, bool, str]] = []

    try:
        cfg = load_config(ctx.obj["config_path"], missing_ok=ctx.obj["config_path"] == DEFAULT_CONFIG_PATH)
        checks.append(("config", True, f"loaded (default venue {cfg.default_venue.value})"))
    except (FileNotFoundError, ValueError) as e:
        checks.append(("config", False, str(e)))
        _print_health(checks)
        raise SystemExit(1)

    try:
        engine = load_engine_config(cfg.engine_config_path or None, venue=cfg.default_venue.value)
        checks.append(("engine_config", True, f"validated (version {engine.version}, batch {engine.marks.batch_size})"))
    except EngineConfigError as e:
        checks.append(("engine_config", False, str(e)))

    if cfg.marks.quotes_path:
        exists = Path(cfg.marks.quotes_path).exists()
        checks.append(("quotes", exists, cfg.marks.quotes_path if exists else f"not found: {cfg.marks.quotes_path}"))

    _print_health(checks)
    healthy = all(ok for _, ok, _ in checks)
    raise SystemExit(0 if healthy else 1)


def _print_health(checks: list[tuple[str, bool, str]]) -> None:
    for name, ok, detail in checks:
        status = "OK" if ok else "FAIL"
        click.echo(f"  [{status}] {name}: {detail}")
    healthy = all(ok for _, ok, _ in checks)
    click.echo(f"\nHealth: {'HEALTHY' if healthy else 'UNHEALTHY'}")


if __name__ == "__main__":
    cli()
