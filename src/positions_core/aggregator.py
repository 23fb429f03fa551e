"""
Position Aggregator & Status Classifier.

Rolls a structure's legs into realized PnL, net premium, DTE, PnL% and a
risk status. Recomputes fully from the trade set on every call.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from typing import Iterable, Sequence

from positions_core.contracts import (
    Leg,
    PositionStatus,
    Structure,
    StructureKey,
    TradeRecord,
    Venue,
)
from positions_core.grouping import group_structures
from positions_core.ledger import LOT_EPSILON
from positions_core.legs import build_legs

logger = logging.getLogger("optstruct.aggregator")

_DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class StatusThresholds:
    alert_dte: int = 7
    attention_dte: int = 14
    alert_pnl_pct: float = -10.0
    alert_realized_pnl: float = -100.0


DEFAULT_THRESHOLDS = StatusThresholds()


@dataclass
class AggregationResult:
    structures: list[Structure] = field(default_factory=list)
    dropped: list[TradeRecord] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def _utc_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def days_to(expiry: date, now: datetime | None = None) -> int:
    """ceil((expiry at UTC midnight - now) / 1 day)."""
    target = datetime.combine(expiry, time(0, 0), tzinfo=timezone.utc)
    diff = (target - _utc_now(now)).total_seconds()
    return math.ceil(diff / _DAY_SECONDS)


def parse_timestamp(value: str | None) -> datetime | None:
    """Lenient ISO parse: date-only, 'T' or space separated, trailing Z. Naive -> UTC."""
    if not value:
        return None
    text = value.strip()
    if not text:
        return None
    if len(text) == 10:
        text = f"{text}T00:00:00"
    elif "T" not in text:
        text = text.replace(" ", "T", 1)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since(value: str | None, now: datetime | None = None) -> int | None:
    """Whole days elapsed since *value*, floored at 0. None if unparseable."""
    ts = parse_timestamp(value)
    if ts is None:
        return None
    diff = (_utc_now(now) - ts).total_seconds()
    return max(0, math.floor(diff / _DAY_SECONDS))


# ---------------------------------------------------------------------------
# PnL% and status
# ---------------------------------------------------------------------------


def pnl_pct(pnl: float, net_premium: float) -> float | None:
    """PnL as a percentage of absolute net premium; None when there is no premium base."""
    if net_premium > 0:
        return pnl / net_premium * 100.0
    return None


def classify_status(
    dte: int,
    pnl_percent: float | None,
    realized_pnl: float,
    thresholds: StatusThresholds = DEFAULT_THRESHOLDS,
) -> PositionStatus:
    if (
        dte <= thresholds.alert_dte
        or (pnl_percent is not None and pnl_percent <= thresholds.alert_pnl_pct)
        or realized_pnl <= thresholds.alert_realized_pnl
    ):
        return PositionStatus.ALERT
    if dte <= thresholds.attention_dte or (pnl_percent is not None and pnl_percent < 0):
        return PositionStatus.ATTENTION
    return PositionStatus.OPEN


def apply_lifecycle(structure: Structure, lifecycle: str | None) -> Structure:
    """An externally persisted 'closed' lifecycle overrides the computed status."""
    if lifecycle and lifecycle.strip().lower() == "closed":
        return replace(structure, status=PositionStatus.CLOSED)
    return structure


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def _earliest_timestamp(trades: Iterable[TradeRecord]) -> str | None:
    earliest: tuple[datetime, str] | None = None
    for trade in trades:
        ts = parse_timestamp(trade.timestamp)
        if ts is None:
            continue
        if earliest is None or ts < earliest[0]:
            earliest = (ts, trade.timestamp or "")
    return earliest[1] if earliest else None


def aggregate_structure(
    key: StructureKey,
    trades: Sequence[TradeRecord],
    *,
    now: datetime | None = None,
    thresholds: StatusThresholds = DEFAULT_THRESHOLDS,
    epsilon: float = LOT_EPSILON,
) -> Structure:
    """Build one Structure from its trades."""
    legs: list[Leg] = build_legs(list(trades), venue=key.venue, epsilon=epsilon)
    expiries = tuple(sorted({leg.expiry for leg in legs if leg.expiry is not None}))
    primary = expiries[0] if expiries else None

    realized = sum(leg.realized_pnl for leg in legs)
    net_premium = abs(sum(leg.net_premium for leg in legs))
    pct = pnl_pct(realized, net_premium)
    dte = days_to(primary, now) if primary else 0
    status = classify_status(dte, pct, realized, thresholds)

    earliest = _earliest_timestamp(trades)
    return Structure(
        key=key,
        legs=tuple(legs),
        expiry=primary,
        expiries=expiries,
        dte=dte,
        realized_pnl=realized,
        net_premium=net_premium,
        pnl_pct=pct,
        status=status,
        open_since_days=days_since(earliest, now) if earliest else None,
    )


def build_structures(
    trades: Iterable[TradeRecord],
    *,
    now: datetime | None = None,
    thresholds: StatusThresholds = DEFAULT_THRESHOLDS,
    default_venue: Venue = Venue.DERIBIT,
    epsilon: float = LOT_EPSILON,
) -> AggregationResult:
    """Group trades into structures and value each one from trades alone.

    Structures are returned in ascending DTE order.
    """
    grouping = group_structures(trades, default_venue=default_venue)
    if grouping.dropped:
        logger.info("Dropped %d trade(s) missing leg fields", len(grouping.dropped))

    structures = [
        aggregate_structure(key, group, now=now, thresholds=thresholds, epsilon=epsilon)
        for key, group in grouping.groups.items()
    ]
    structures.sort(key=lambda s: s.dte)
    logger.debug("Built %d structure(s)", len(structures))
    return AggregationResult(structures=structures, dropped=grouping.dropped)
