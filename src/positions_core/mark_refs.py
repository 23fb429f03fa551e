"""
Mark Reference Resolver: venue symbol + cache key for each leg.

Leg-level venue/expiry override the structure-level values when present.
"""

from typing import TypeVar

from positions_core.contracts import Leg, MarkRef, Structure, Venue
from positions_core.instruments import coincall_symbol, deribit_instrument

T = TypeVar("T")

DEFAULT_MULTIPLIER = 1.0


def resolve_override(leg_value: T | None, structure_value: T | None) -> T | None:
    """Two-level fallback: the leg value wins whenever it is set."""
    return leg_value if leg_value is not None else structure_value


def mark_key(venue: Venue, symbol: str) -> str:
    return f"{venue.value}:{symbol}"


def get_leg_mark_ref(structure: Structure, leg: Leg) -> MarkRef | None:
    """Resolve the MarkRef for *leg*, or None when no mark is obtainable."""
    venue = resolve_override(leg.venue, structure.venue)
    if venue is None:
        return None
    expiry = resolve_override(leg.expiry, structure.expiry)
    if expiry is None:
        return None

    if venue == Venue.COINCALL:
        symbol = coincall_symbol(structure.underlying, expiry, leg.strike, leg.option_type)
        return MarkRef(
            key=mark_key(venue, symbol),
            symbol=symbol,
            venue=venue,
            default_multiplier=DEFAULT_MULTIPLIER,
            live_multiplier=True,
        )
    if venue == Venue.DERIBIT:
        symbol = deribit_instrument(structure.underlying, expiry, leg.strike, leg.option_type)
        return MarkRef(
            key=mark_key(venue, symbol),
            symbol=symbol,
            venue=venue,
            default_multiplier=DEFAULT_MULTIPLIER,
        )
    return None
