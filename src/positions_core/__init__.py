"""
positions-core: pure position-aggregation and valuation engine.

No I/O or network access. Consumes TradeRecords, produces Structures,
and layers mark-based valuation on top when marks are supplied.
"""

from positions_core.aggregator import (
    AggregationResult,
    StatusThresholds,
    apply_lifecycle,
    build_structures,
    classify_status,
)
from positions_core.contracts import (
    Greeks,
    Leg,
    Lot,
    MarkInfo,
    MarkRef,
    PositionStatus,
    Side,
    Structure,
    TradeRecord,
    Venue,
)
from positions_core.exposure import position_greeks, position_unrealized_pnl, value_structure
from positions_core.ledger import match_lot
from positions_core.mark_refs import get_leg_mark_ref

__all__ = [
    "AggregationResult",
    "apply_lifecycle",
    "build_structures",
    "classify_status",
    "get_leg_mark_ref",
    "Greeks",
    "Leg",
    "Lot",
    "MarkInfo",
    "MarkRef",
    "match_lot",
    "position_greeks",
    "position_unrealized_pnl",
    "PositionStatus",
    "Side",
    "StatusThresholds",
    "Structure",
    "TradeRecord",
    "value_structure",
    "Venue",
]
