"""Tests for instrument parsing and venue symbol builders."""

import calendar
from datetime import date

import pytest

from positions_core.contracts import OptionType, Venue
from positions_core.instruments import (
    MONTHS,
    coincall_symbol,
    deribit_instrument,
    format_day_first,
    parse_instrument,
    parse_instrument_by_venue,
)


class TestParse:
    def test_deribit_name(self) -> None:
        p = parse_instrument("BTC-7JUN24-50000-C")
        assert p is not None
        assert p.underlying == "BTC"
        assert p.expiry == date(2024, 6, 7)
        assert p.strike == 50000.0
        assert p.option_type == OptionType.CALL

    def test_case_insensitive_and_padded_day(self) -> None:
        p = parse_instrument(" eth-07jun24-3000-p ")
        assert p is not None
        assert (p.underlying, p.expiry, p.option_type) == ("ETH", date(2024, 6, 7), OptionType.PUT)

    @pytest.mark.parametrize(
        "text",
        ["BTC-PERPETUAL", "BTC-28JUN24", "BTC-31FEB24-50000-C", "BTC-1XYZ24-50000-C", "", None],
    )
    def test_non_options_return_none(self, text) -> None:
        assert parse_instrument(text) is None

    def test_by_venue(self) -> None:
        assert parse_instrument_by_venue(Venue.COINCALL, "BTC-28JUN24-60000-C") is not None


class TestBuilders:
    @pytest.mark.parametrize("year", [2000, 2024, 2028, 2099])
    @pytest.mark.parametrize("month", range(1, 13))
    def test_deribit_round_trip(self, year: int, month: int) -> None:
        last_day = calendar.monthrange(year, month)[1]
        for day in range(1, last_day + 1):
            for strike in (1, 150, 3500, 62500):
                for opt in ("C", "P"):
                    name = f"BTC-{day}{MONTHS[month - 1]}{year % 100:02d}-{strike}-{opt}"
                    p = parse_instrument(name)
                    assert p is not None, name
                    assert p.expiry == date(year, month, day)
                    assert deribit_instrument(p.underlying, p.expiry, p.strike, p.option_type) == name

    def test_round_trip_normalizes_case_and_padding(self) -> None:
        p = parse_instrument("btc-07jun24-50000-c")
        assert deribit_instrument(p.underlying, p.expiry, p.strike, p.option_type) == "BTC-7JUN24-50000-C"

    def test_coincall_zero_pads_day(self) -> None:
        assert coincall_symbol("BTC", date(2024, 6, 7), 50000, "C") == "BTCUSD-07JUN24-50000-C"

    def test_coincall_keeps_existing_usd_suffix(self) -> None:
        assert coincall_symbol("ethusd", date(2024, 6, 28), 3000, OptionType.PUT) == "ETHUSD-28JUN24-3000-P"

    def test_fractional_strike(self) -> None:
        assert deribit_instrument("XRP", date(2024, 6, 7), 0.5, "put") == "XRP-7JUN24-0.5-P"

    def test_format_day_first(self) -> None:
        assert format_day_first(date(2025, 3, 4), zero_pad=False) == "4MAR25"
        assert format_day_first(date(2025, 3, 4), zero_pad=True) == "04MAR25"
