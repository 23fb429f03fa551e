"""
Scalar normalizers for loosely-typed import rows: numbers, side/action, timestamps.
"""

import math
import re
from typing import Any

from positions_core.contracts import Action, Side

NO_TS = "NO_TS"


def to_number(value: Any) -> float:
    """Lenient numeric parse. Handles '1,234.56' and '1234,56'; anything else -> 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    if value is None:
        return 0.0
    text = str(value).strip()
    if "," in text and "." not in text:
        text = text.replace(".", "").replace(",", ".")
    else:
        text = text.replace(",", "")
    try:
        number = float(text)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


_EXACT_SIDES: dict[str, tuple[Action | None, Side | None]] = {
    "open buy": (Action.OPEN, Side.BUY),
    "open sell": (Action.OPEN, Side.SELL),
    "close buy": (Action.CLOSE, Side.BUY),
    "close sell": (Action.CLOSE, Side.SELL),
    "buy": (None, Side.BUY),
    "sell": (None, Side.SELL),
}


def parse_action_side(raw: Any) -> tuple[Action | None, Side | None]:
    """'  Open   Sell ' -> (Action.OPEN, Side.SELL). Unknown parts come back as None."""
    text = re.sub(r"\s+", " ", str(raw or "").strip().lower())
    if text in _EXACT_SIDES:
        return _EXACT_SIDES[text]
    side = Side.SELL if "sell" in text else (Side.BUY if "buy" in text else None)
    action = Action.OPEN if "open" in text else (Action.CLOSE if "close" in text else None)
    return action, side


def normalize_second(ts: Any) -> str:
    """Truncate a timestamp to YYYY-MM-DDTHH:MM:SS; 'NO_TS' when missing."""
    if ts is None:
        return NO_TS
    text = str(ts).strip()
    if not text:
        return NO_TS
    date_part = text[:10]
    t_idx = text.find("T")
    if t_idx < 0:
        t_idx = text.find(" ")
    if t_idx >= 0 and len(text) >= t_idx + 9:
        return f"{date_part}T{text[t_idx + 1:t_idx + 9]}"
    return text[:19] if len(text) >= 19 else text
