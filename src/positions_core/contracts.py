"""
Data contracts for positions-core: TradeRecord, Lot, Leg, Structure, MarkRef, MarkInfo.

positions-core consumes TradeRecords and produces Structures. Structures and
legs are projections of the full trade set, rebuilt on every aggregation run.
No I/O; these are plain dataclasses.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Venue(str, Enum):
    """Trading venue tag carried by each trade."""

    DERIBIT = "deribit"
    COINCALL = "coincall"
    CME = "cme"


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"


class Action(str, Enum):
    OPEN = "open"
    CLOSE = "close"


class OptionType(str, Enum):
    CALL = "C"
    PUT = "P"


class PositionStatus(str, Enum):
    """Risk status surfaced outward. CLOSED only comes from an external lifecycle."""

    OPEN = "OPEN"
    ATTENTION = "ATTENTION"
    ALERT = "ALERT"
    CLOSED = "CLOSED"


class StructureType(str, Enum):
    SINGLE = "Single"
    MULTI_LEG = "Multi-leg"


# ---------------------------------------------------------------------------
# Trades and inventory
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TradeRecord:
    """One validated trade row. Immutable after ingestion.

    Leg-identifying fields (underlying, expiry, strike, option_type) are set
    once the instrument has been parsed; rows lacking any of them are dropped
    by the grouper.
    """

    instrument: str
    side: Side
    amount: float
    price: float
    venue: Venue | None = None
    action: Action | None = None
    fee: float = 0.0
    timestamp: str | None = None
    trade_id: str | None = None
    order_id: str | None = None
    info: str | None = None
    underlying: str | None = None
    expiry: date | None = None
    strike: float | None = None
    option_type: OptionType | None = None
    structure_id: str | None = None

    @property
    def direction(self) -> int:
        """+1 for buy, -1 for sell."""
        return 1 if self.side == Side.BUY else -1


@dataclass(frozen=True)
class Lot:
    """Open inventory slice: qty >= 0, direction carries long (+1) / short (-1)."""

    qty: float
    price: float
    direction: int

    def __post_init__(self) -> None:
        if self.qty < 0:
            raise ValueError(f"Lot qty must be non-negative, got {self.qty}")
        if self.direction not in (1, -1):
            raise ValueError(f"Lot direction must be +1 or -1, got {self.direction}")


@dataclass(frozen=True)
class LegKey:
    expiry: date | None
    strike: float
    option_type: OptionType


@dataclass(frozen=True)
class Leg:
    """Inventory history for one (expiry, strike, option type) inside a structure."""

    key: LegKey
    open_lots: tuple[Lot, ...]
    realized_pnl: float
    net_premium: float      # premium received positive
    net_qty: float          # sum of direction * |amount|
    trades: tuple[TradeRecord, ...]
    venue: Venue | None = None

    @property
    def expiry(self) -> date | None:
        return self.key.expiry

    @property
    def strike(self) -> float:
        return self.key.strike

    @property
    def option_type(self) -> OptionType:
        return self.key.option_type


# ---------------------------------------------------------------------------
# Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Greeks:
    delta: float | None = None
    gamma: float | None = None
    theta: float | None = None
    vega: float | None = None
    rho: float | None = None


@dataclass(frozen=True)
class StructureKey:
    venue: Venue | None
    underlying: str
    structure_id: str

    def as_id(self) -> str:
        venue = self.venue.value if self.venue else "unknown"
        return f"{venue}__{self.underlying}__{self.structure_id}"


@dataclass(frozen=True)
class Structure:
    """A multi-leg position: legs plus derived valuation snapshot."""

    key: StructureKey
    legs: tuple[Leg, ...]
    expiry: date | None          # primary (earliest) expiry
    expiries: tuple[date, ...]
    dte: int
    realized_pnl: float
    net_premium: float           # absolute value of the summed signed leg premium
    pnl_pct: float | None
    status: PositionStatus
    open_since_days: int | None = None

    @property
    def id(self) -> str:
        return self.key.as_id()

    @property
    def venue(self) -> Venue | None:
        return self.key.venue

    @property
    def underlying(self) -> str:
        return self.key.underlying

    @property
    def structure_id(self) -> str:
        return self.key.structure_id

    @property
    def legs_count(self) -> int:
        return len(self.legs)

    @property
    def type(self) -> StructureType:
        return StructureType.MULTI_LEG if len(self.legs) > 1 else StructureType.SINGLE


# ---------------------------------------------------------------------------
# Marks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarkRef:
    """Cacheable (venue, symbol) pair for one leg."""

    key: str                     # "<venue>:<symbol>"
    symbol: str
    venue: Venue
    default_multiplier: float = 1.0
    live_multiplier: bool = False  # venue publishes its own contract multiplier


@dataclass(frozen=True)
class MarkInfo:
    """Last known price, multiplier and per-contract greeks for one mark key."""

    price: float | None
    multiplier: float | None
    greeks: Greeks | None = None
