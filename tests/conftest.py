"""Pytest fixtures: trade records and a fixed clock for deterministic tests."""

from datetime import datetime, timezone

import pytest

from factories import make_trade
from positions_core.contracts import TradeRecord


@pytest.fixture
def now() -> datetime:
    """Fixed clock: 2024-06-01 12:00 UTC."""
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def call_spread_trades() -> list[TradeRecord]:
    """Long 60k / short 70k call spread, two lots on the long leg, partial close."""
    return [
        make_trade("buy", 1, 0.05, strike=60000.0, timestamp="2024-05-20T09:00:00Z"),
        make_trade("sell", 1, 0.02, strike=70000.0, timestamp="2024-05-20T09:00:00Z"),
        make_trade("buy", 1, 0.06, strike=60000.0, timestamp="2024-05-21T09:00:00Z"),
        make_trade("sell", 1, 0.08, strike=60000.0, timestamp="2024-05-25T09:00:00Z"),
    ]


@pytest.fixture
def sample_csv(tmp_path):
    """Deribit-style export: two spreads, one future row, one row without side."""
    path = tmp_path / "trades.csv"
    path.write_text(
        "instrument,side,amount,price,fee,timestamp,trade_id\n"
        "BTC-28JUN24-60000-C,open buy,1,0.05,0.0003,2024-05-20T09:00:00.120Z,t1\n"
        "BTC-28JUN24-70000-C,open sell,1,0.02,0.0003,2024-05-20T09:00:00.450Z,t2\n"
        "ETH-7JUN24-3000-P,sell,2,0.01,0,2024-05-22 14:30:05,t3\n"
        "BTC-PERPETUAL,buy,100,67000,0,2024-05-23T10:00:00Z,t4\n"
        "BTC-28JUN24-80000-C,,1,0.01,0,2024-05-24T10:00:00Z,t5\n"
    )
    return path
