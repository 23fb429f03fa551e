"""
Lot Ledger: FIFO matching of an incoming lot against a leg's open inventory.

Pure: the input inventory is never mutated; a new inventory tuple is returned.
"""

from dataclasses import dataclass, replace
from typing import Sequence

from positions_core.contracts import Lot

LOT_EPSILON = 1e-9


@dataclass(frozen=True)
class MatchResult:
    realized: float
    inventory: tuple[Lot, ...]
    remainder: Lot | None = None


def match_lot(
    inventory: Sequence[Lot],
    incoming: Lot,
    *,
    epsilon: float = LOT_EPSILON,
) -> MatchResult:
    """Close *incoming* against the oldest opposite-direction lots first.

    No match (empty inventory or same direction): incoming is returned as the
    remainder, inventory unchanged. If incoming outlives the inventory, the
    leftover comes back as a remainder in the incoming direction (a flip).
    """
    lots = list(inventory)
    if not lots or lots[0].direction == incoming.direction:
        return MatchResult(realized=0.0, inventory=tuple(lots), remainder=incoming)

    realized = 0.0
    remaining = abs(incoming.qty)
    while remaining > epsilon and lots:
        oldest = lots[0]
        if oldest.direction == incoming.direction:
            break
        closed = min(oldest.qty, remaining)
        if oldest.direction == 1:
            realized += (incoming.price - oldest.price) * closed
        else:
            realized += (oldest.price - incoming.price) * closed
        remaining -= closed
        left = oldest.qty - closed
        if left <= epsilon:
            lots.pop(0)
        else:
            lots[0] = replace(oldest, qty=left)

    remainder = replace(incoming, qty=remaining) if remaining > epsilon else None
    return MatchResult(realized=realized, inventory=tuple(lots), remainder=remainder)
