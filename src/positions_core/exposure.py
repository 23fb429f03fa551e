"""
Exposure Aggregator: unrealized PnL and greek exposure from marks.

PnL is valued lot by lot (each lot has its own entry price). Greeks scale
with the leg's net signed quantity, since they are per-contract sensitivities.
"""

import math
from dataclasses import dataclass
from typing import Mapping

from positions_core.aggregator import pnl_pct
from positions_core.contracts import Greeks, Leg, MarkInfo, MarkRef, Structure
from positions_core.mark_refs import get_leg_mark_ref

GREEK_NAMES = ("delta", "gamma", "theta", "vega", "rho")


def _usable_multiplier(multiplier: float | None) -> float:
    if multiplier is not None and math.isfinite(multiplier) and multiplier > 0:
        return float(multiplier)
    return 1.0


def effective_multiplier(ref: MarkRef, info: MarkInfo | None) -> float:
    """Live multiplier for venues that publish one, else the reference default."""
    if ref.live_multiplier and info is not None:
        if info.multiplier is not None and math.isfinite(info.multiplier) and info.multiplier > 0:
            return float(info.multiplier)
    return ref.default_multiplier


def leg_net_qty(leg: Leg) -> float:
    return leg.net_qty


def leg_unrealized_pnl(leg: Leg, mark_price: float, multiplier: float | None = None) -> float:
    """Sum over open lots of direction * qty * (mark - entry) * multiplier."""
    m = _usable_multiplier(multiplier)
    return sum(lot.direction * lot.qty * (mark_price - lot.price) * m for lot in leg.open_lots)


def leg_greek_exposure(leg: Leg, per_contract: float | None, multiplier: float | None = None) -> float:
    if per_contract is None or not math.isfinite(per_contract):
        return 0.0
    return per_contract * leg_net_qty(leg) * _usable_multiplier(multiplier)


def position_unrealized_pnl(structure: Structure, marks: Mapping[str, MarkInfo]) -> float:
    total = 0.0
    for leg in structure.legs:
        ref = get_leg_mark_ref(structure, leg)
        if ref is None:
            continue
        info = marks.get(ref.key)
        if info is None or info.price is None:
            continue
        total += leg_unrealized_pnl(leg, info.price, effective_multiplier(ref, info))
    return total


def position_greeks(structure: Structure, marks: Mapping[str, MarkInfo]) -> Greeks:
    """Sum leg greek exposure; legs without a resolvable mark are skipped."""
    totals = dict.fromkeys(GREEK_NAMES, 0.0)
    for leg in structure.legs:
        ref = get_leg_mark_ref(structure, leg)
        if ref is None:
            continue
        info = marks.get(ref.key)
        if info is None or info.greeks is None:
            continue
        multiplier = effective_multiplier(ref, info)
        for name in GREEK_NAMES:
            totals[name] += leg_greek_exposure(leg, getattr(info.greeks, name), multiplier)
    return Greeks(**totals)


@dataclass(frozen=True)
class StructureValuation:
    structure: Structure
    unrealized_pnl: float
    total_pnl: float
    pnl_pct: float | None
    greeks: Greeks
    marked_legs: int


def value_structure(structure: Structure, marks: Mapping[str, MarkInfo]) -> StructureValuation:
    """Layer live marks on top of a structure's static snapshot."""
    marked = 0
    for leg in structure.legs:
        ref = get_leg_mark_ref(structure, leg)
        info = marks.get(ref.key) if ref else None
        if info is not None and info.price is not None:
            marked += 1

    unrealized = position_unrealized_pnl(structure, marks)
    total = structure.realized_pnl + unrealized
    return StructureValuation(
        structure=structure,
        unrealized_pnl=unrealized,
        total_pnl=total,
        pnl_pct=pnl_pct(total, structure.net_premium),
        greeks=position_greeks(structure, marks),
        marked_legs=marked,
    )
