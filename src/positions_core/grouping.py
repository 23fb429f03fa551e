"""
Structure Grouper: partition trades by (venue, underlying, structure id).

Trades missing any leg-identifying field are returned in ``dropped``
rather than discarded silently.
"""

from dataclasses import dataclass, field
from typing import Iterable

from positions_core.contracts import StructureKey, TradeRecord, Venue

DEFAULT_STRUCTURE_ID = "auto"


@dataclass
class GroupingResult:
    groups: dict[StructureKey, list[TradeRecord]] = field(default_factory=dict)
    dropped: list[TradeRecord] = field(default_factory=list)


def has_leg_fields(trade: TradeRecord) -> bool:
    return bool(
        trade.underlying
        and trade.expiry is not None
        and trade.strike is not None
        and trade.option_type is not None
    )


def structure_key_for(trade: TradeRecord, default_venue: Venue = Venue.DERIBIT) -> StructureKey:
    return StructureKey(
        venue=trade.venue or default_venue,
        underlying=str(trade.underlying),
        structure_id=str(trade.structure_id or DEFAULT_STRUCTURE_ID),
    )


def group_structures(
    trades: Iterable[TradeRecord],
    *,
    default_venue: Venue = Venue.DERIBIT,
) -> GroupingResult:
    result = GroupingResult()
    for trade in trades:
        if not has_leg_fields(trade):
            result.dropped.append(trade)
            continue
        key = structure_key_for(trade, default_venue)
        result.groups.setdefault(key, []).append(trade)
    return result
