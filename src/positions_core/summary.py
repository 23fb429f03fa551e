"""
Compact structure labels, e.g. header "BTC 27DEC24 x2" and legs "+C60 / -C70".
"""

import math
from dataclasses import dataclass
from datetime import date

from positions_core.contracts import OptionType, Structure
from positions_core.exposure import leg_net_qty
from positions_core.instruments import format_day_first


@dataclass(frozen=True)
class StructureSummary:
    header: str
    legs: str | None = None


def _trim_decimals(value: float, places: int) -> str:
    text = f"{value:.{places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_compact_strike(strike: float) -> str:
    """Strike in thousands: 60000 -> '60', 2500 -> '2.5'."""
    base = strike / 1000
    if float(base).is_integer():
        return str(int(base))
    return _trim_decimals(base, 3)


def _leg_size_token(structure: Structure) -> str | None:
    for leg in structure.legs:
        qty = abs(leg_net_qty(leg))
        if not math.isfinite(qty) or qty == 0:
            continue
        if float(qty).is_integer():
            return f"x{int(qty)}"
        return f"x{_trim_decimals(qty, 2)}"
    return None


def _expiry_tokens(structure: Structure) -> list[str]:
    expiries: set[date] = {leg.expiry for leg in structure.legs if leg.expiry is not None}
    if not expiries and structure.expiry is not None:
        expiries.add(structure.expiry)
    return [format_day_first(e, zero_pad=True) for e in sorted(expiries)]


def _legs_line(structure: Structure) -> str:
    tokens = []
    for leg in structure.legs:
        qty = leg_net_qty(leg)
        if not math.isfinite(qty) or qty == 0:
            continue
        sign = "+" if qty > 0 else "-"
        expiry = leg.expiry or structure.expiry or date.max
        put_first = 0 if leg.option_type == OptionType.PUT else 1
        token = f"{sign}{leg.option_type.value}{format_compact_strike(leg.strike)}"
        tokens.append((expiry, leg.strike, put_first, token))
    tokens.sort()
    return " / ".join(t[-1] for t in tokens)


def build_structure_summary(structure: Structure) -> StructureSummary | None:
    parts = [structure.underlying.upper().strip(), " / ".join(_expiry_tokens(structure))]
    header = " ".join(p for p in parts if p)
    size = _leg_size_token(structure)
    if size:
        header = f"{header} {size}".strip()
    legs = _legs_line(structure)

    if not header and not legs:
        return None
    if not header:
        return StructureSummary(header=legs)
    return StructureSummary(header=header, legs=legs or None)
