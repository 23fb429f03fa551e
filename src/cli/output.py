"""
Human-readable structure output for the terminal.

Every CLI command uses these formatters.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from positions_core.contracts import Greeks, Structure
from positions_core.summary import build_structure_summary

if TYPE_CHECKING:
    from ingest.rows import IngestResult
    from marks.fetcher import RefreshProgress
    from positions_core.aggregator import AggregationResult
    from positions_core.exposure import StructureValuation


def _fmt_pct(value: float | None) -> str:
    return "n/a" if value is None else f"{value:+.2f}%"


def _fmt_greek(value: float | None) -> str:
    return "-" if value is None else f"{value:+.4f}"


def format_greeks(greeks: Greeks) -> str:
    return (
        f"delta {_fmt_greek(greeks.delta)}  gamma {_fmt_greek(greeks.gamma)}  "
        f"theta {_fmt_greek(greeks.theta)}  vega {_fmt_greek(greeks.vega)}  rho {_fmt_greek(greeks.rho)}"
    )


def format_structure(structure: Structure) -> str:
    """Label line plus the static snapshot: DTE, realized PnL, premium, status."""
    summary = build_structure_summary(structure)
    label = structure.id
    if summary is not None:
        label = summary.header if summary.legs is None else f"{summary.header}  {summary.legs}"

    expiry = structure.expiry.isoformat() if structure.expiry else "-"
    since = "-" if structure.open_since_days is None else f"{structure.open_since_days}d"
    lines = [
        f"  [{structure.status.value}] {label}",
        f"    Id       : {structure.id} ({structure.type.value}, {structure.legs_count} leg(s))",
        f"    Expiry   : {expiry}  DTE {structure.dte}  open {since}",
        f"    Realized : {structure.realized_pnl:+.2f}  |  Net premium: {structure.net_premium:.2f}  |  PnL% {_fmt_pct(structure.pnl_pct)}",
    ]
    return "\n".join(lines)


def format_ingest_summary(ingest: IngestResult, aggregation: AggregationResult) -> str:
    stats = ingest.stats
    return (
        f"Rows         : {stats.total_rows} read, {stats.rows_with_instrument} with instrument, "
        f"{stats.parsed_option_rows} option trade(s)\n"
        f"Set aside    : {len(ingest.excluded)} excluded, {len(ingest.rejected)} rejected, "
        f"{len(aggregation.dropped)} dropped"
    )


def format_positions(ingest: IngestResult, aggregation: AggregationResult) -> str:
    """Full `positions` output: import counts then one block per structure."""
    parts = [
        f"=== Structures: {len(aggregation.structures)} ({ingest.venue.value}) ===",
        format_ingest_summary(ingest, aggregation),
    ]
    if aggregation.structures:
        for structure in aggregation.structures:
            parts.append("")
            parts.append(format_structure(structure))
    else:
        parts.append("")
        parts.append("  No open structures.")
    parts.append("===")
    return "\n".join(parts)


def format_valuation(valuation: StructureValuation) -> str:
    structure = valuation.structure
    lines = [
        format_structure(structure),
        f"    Marked   : {valuation.marked_legs}/{structure.legs_count} leg(s)",
        f"    Unreal.  : {valuation.unrealized_pnl:+.2f}  |  Total: {valuation.total_pnl:+.2f}  |  PnL% {_fmt_pct(valuation.pnl_pct)}",
        f"    Greeks   : {format_greeks(valuation.greeks)}",
    ]
    return "\n".join(lines)


def format_refresh(progress: RefreshProgress, valuations: list[StructureValuation]) -> str:
    """Full `marks` output: refresh counters then marked structures."""
    parts = [
        f"=== Marks: {progress.done}/{progress.total} fetched, {progress.errors} error(s) ===",
    ]
    for valuation in valuations:
        parts.append("")
        parts.append(format_valuation(valuation))
    if not valuations:
        parts.append("")
        parts.append("  No open structures.")
    parts.append("===")
    return "\n".join(parts)
