"""
Instrument symbol grammar: parse on ingestion, regenerate for mark lookups.

Venue A (Deribit):   UNDERLYING-D[D]MONYY-STRIKE-{C|P}   day not zero-padded
Venue B (Coincall):  INDEXUSD-DDMONYY-STRIKE-{C|P}       day zero-padded
"""

import re
from dataclasses import dataclass
from datetime import date

from positions_core.contracts import OptionType, Venue

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")

_INSTRUMENT_RE = re.compile(r"^([A-Z]+)-(\d{1,2})([A-Z]{3})(\d{2})-(\d+)-(C|P)$", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedInstrument:
    underlying: str
    expiry: date
    strike: float
    option_type: OptionType


def parse_instrument(text: str | None) -> ParsedInstrument | None:
    """Parse an option instrument string. Returns None for anything that is not an option."""
    if not text:
        return None
    m = _INSTRUMENT_RE.match(text.strip())
    if not m:
        return None
    underlying, dd, mon, yy, strike, opt = m.groups()
    mon = mon.upper()
    if mon not in MONTHS:
        return None
    try:
        expiry = date(2000 + int(yy), MONTHS.index(mon) + 1, int(dd))
    except ValueError:
        return None
    return ParsedInstrument(
        underlying=underlying.upper(),
        expiry=expiry,
        strike=float(strike),
        option_type=OptionType(opt.upper()),
    )


# Coincall and CME symbols share the Deribit grammar for now.
_PARSERS = {
    Venue.DERIBIT: parse_instrument,
    Venue.COINCALL: parse_instrument,
    Venue.CME: parse_instrument,
}


def parse_instrument_by_venue(venue: Venue, text: str | None) -> ParsedInstrument | None:
    return _PARSERS.get(venue, parse_instrument)(text)


def format_day_first(expiry: date, *, zero_pad: bool) -> str:
    """Render a date as DMONYY / DDMONYY."""
    day = f"{expiry.day:02d}" if zero_pad else str(expiry.day)
    return f"{day}{MONTHS[expiry.month - 1]}{expiry.year % 100:02d}"


def format_strike(strike: float) -> str:
    """50000.0 -> '50000', 2.5 -> '2.5'."""
    value = float(strike)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def normalize_option_type(option_type: OptionType | str | None) -> str:
    raw = option_type.value if isinstance(option_type, OptionType) else (option_type or "")
    return "P" if raw.strip().upper().startswith("P") else "C"


def deribit_instrument(
    underlying: str,
    expiry: date,
    strike: float,
    option_type: OptionType | str,
) -> str:
    """Build a Venue-A (Deribit) instrument name, e.g. BTC-7JUN24-50000-C."""
    u = (underlying or "").strip().upper()
    return f"{u}-{format_day_first(expiry, zero_pad=False)}-{format_strike(strike)}-{normalize_option_type(option_type)}"


def coincall_symbol(
    underlying: str,
    expiry: date,
    strike: float,
    option_type: OptionType | str,
) -> str:
    """Build a Venue-B (Coincall) symbol, e.g. BTCUSD-07JUN24-50000-C."""
    base = (underlying or "").strip().upper() or "BTC"
    index = base if base.endswith("USD") else f"{base}USD"
    return f"{index}-{format_day_first(expiry, zero_pad=True)}-{format_strike(strike)}-{normalize_option_type(option_type)}"
