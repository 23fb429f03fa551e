"""
Venue mark clients. Implement one per venue; the HTTP transport lives outside this repo.
"""

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Protocol

from positions_core.contracts import Greeks, MarkInfo

logger = logging.getLogger("optstruct.marks")


class VenueMarkClient(Protocol):
    """Protocol for venue mark clients. get_best may raise; the fetcher tolerates it."""

    async def get_best(self, symbol: str) -> MarkInfo:
        """Best available price, multiplier and per-contract greeks for *symbol*."""
        ...


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


def mark_info_from_dict(raw: Mapping[str, Any]) -> MarkInfo:
    """{"price": .., "multiplier": .., "greeks": {"delta": ..}} -> MarkInfo."""
    greeks_raw = raw.get("greeks")
    greeks = None
    if isinstance(greeks_raw, Mapping):
        greeks = Greeks(
            delta=_optional_float(greeks_raw.get("delta")),
            gamma=_optional_float(greeks_raw.get("gamma")),
            theta=_optional_float(greeks_raw.get("theta")),
            vega=_optional_float(greeks_raw.get("vega")),
            rho=_optional_float(greeks_raw.get("rho")),
        )
    return MarkInfo(
        price=_optional_float(raw.get("price")),
        multiplier=_optional_float(raw.get("multiplier")),
        greeks=greeks,
    )


class StaticMarkClient:
    """Serves marks from an in-memory symbol map; for tests and offline runs.

    Unknown symbols raise KeyError, which the fetcher records as a failed task.
    """

    def __init__(self, quotes: Mapping[str, MarkInfo]) -> None:
        self._quotes = dict(quotes)

    async def get_best(self, symbol: str) -> MarkInfo:
        if symbol not in self._quotes:
            raise KeyError(f"No quote for {symbol}")
        return self._quotes[symbol]

    @classmethod
    def from_json(cls, path: str | Path, venue: str) -> "StaticMarkClient":
        """Load the *venue* section of a quotes file: {"deribit": {"BTC-...": {...}}}."""
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Quotes file not found: {file_path}")
        with open(file_path) as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError(f"Quotes file must be a JSON object, got {type(raw).__name__}")
        section = raw.get(venue, {})
        quotes = {symbol: mark_info_from_dict(v) for symbol, v in section.items()}
        logger.debug("Loaded %d %s quote(s) from %s", len(quotes), venue, file_path)
        return cls(quotes)
