"""
Leg Builder: fold one structure's trades into per-leg inventories.

Trades are folded in input order; no re-sorting by timestamp.
"""

from positions_core.contracts import Leg, LegKey, Lot, TradeRecord, Venue
from positions_core.ledger import LOT_EPSILON, match_lot


def leg_key_for(trade: TradeRecord) -> LegKey:
    """Leg identity of a trade. Raises ValueError when expiry, strike or option type is missing."""
    if trade.expiry is None or trade.strike is None or trade.option_type is None:
        raise ValueError(f"Trade {trade.trade_id or trade.instrument} is missing leg fields")
    return LegKey(expiry=trade.expiry, strike=float(trade.strike), option_type=trade.option_type)


def build_leg(
    key: LegKey,
    trades: list[TradeRecord],
    *,
    venue: Venue | None = None,
    epsilon: float = LOT_EPSILON,
) -> Leg:
    """Fold *trades* (all sharing *key*) into a Leg.

    net_premium is premium-received-positive: sells add price*|qty|, buys subtract.
    net_qty accumulates direction*|qty| independently of FIFO matching.
    """
    open_lots: tuple[Lot, ...] = ()
    realized = 0.0
    net_premium = 0.0
    net_qty = 0.0

    for trade in trades:
        direction = trade.direction
        qty = abs(trade.amount)
        lot = Lot(qty=qty, price=trade.price, direction=direction)
        net_premium += -direction * trade.price * qty
        net_qty += direction * qty

        if not open_lots or open_lots[0].direction == direction:
            open_lots = open_lots + (lot,)
            continue

        result = match_lot(open_lots, lot, epsilon=epsilon)
        realized += result.realized
        open_lots = result.inventory
        if result.remainder is not None:
            open_lots = open_lots + (result.remainder,)

    leg_venue = trades[0].venue if trades and trades[0].venue else venue
    return Leg(
        key=key,
        open_lots=open_lots,
        realized_pnl=realized,
        net_premium=net_premium,
        net_qty=net_qty,
        trades=tuple(trades),
        venue=leg_venue,
    )


def build_legs(
    trades: list[TradeRecord],
    *,
    venue: Venue | None = None,
    epsilon: float = LOT_EPSILON,
) -> list[Leg]:
    """Sub-group a structure's trades by (expiry, strike, option type) and build each leg."""
    by_leg: dict[LegKey, list[TradeRecord]] = {}
    for trade in trades:
        by_leg.setdefault(leg_key_for(trade), []).append(trade)
    return [build_leg(k, leg_trades, venue=venue, epsilon=epsilon) for k, leg_trades in by_leg.items()]
