"""Tests for per-leg mark reference resolution."""

from datetime import date

from positions_core.contracts import (
    Leg,
    LegKey,
    OptionType,
    PositionStatus,
    Structure,
    StructureKey,
    Venue,
)
from positions_core.mark_refs import get_leg_mark_ref, resolve_override


def _structure(
    venue: Venue | None,
    expiry: date | None,
    *,
    leg_venue: Venue | None = None,
    leg_expiry: date | None = None,
) -> Structure:
    leg = Leg(
        key=LegKey(expiry=leg_expiry, strike=60000.0, option_type=OptionType.CALL),
        open_lots=(),
        realized_pnl=0.0,
        net_premium=0.0,
        net_qty=0.0,
        trades=(),
        venue=leg_venue,
    )
    return Structure(
        key=StructureKey(venue, "BTC", "S1"),
        legs=(leg,),
        expiry=expiry,
        expiries=(expiry,) if expiry else (),
        dte=10,
        realized_pnl=0.0,
        net_premium=0.0,
        pnl_pct=None,
        status=PositionStatus.OPEN,
    )


def _ref(structure: Structure):
    return get_leg_mark_ref(structure, structure.legs[0])


def test_resolve_override_prefers_leg() -> None:
    assert resolve_override("leg", "structure") == "leg"
    assert resolve_override(None, "structure") == "structure"
    assert resolve_override(None, None) is None
    assert resolve_override(0, 5) == 0


def test_deribit_ref() -> None:
    ref = _ref(_structure(Venue.DERIBIT, date(2024, 6, 7), leg_expiry=date(2024, 6, 7)))
    assert ref is not None
    assert ref.symbol == "BTC-7JUN24-60000-C"
    assert ref.key == "deribit:BTC-7JUN24-60000-C"
    assert ref.default_multiplier == 1.0
    assert not ref.live_multiplier


def test_coincall_ref_uses_live_multiplier() -> None:
    ref = _ref(_structure(Venue.COINCALL, date(2024, 6, 7)))
    assert ref is not None
    assert ref.key == "coincall:BTCUSD-07JUN24-60000-C"
    assert ref.live_multiplier


def test_leg_venue_overrides_structure_venue() -> None:
    ref = _ref(_structure(Venue.DERIBIT, date(2024, 6, 7), leg_venue=Venue.COINCALL))
    assert ref.venue == Venue.COINCALL


def test_leg_expiry_overrides_structure_expiry() -> None:
    ref = _ref(_structure(Venue.DERIBIT, date(2024, 6, 7), leg_expiry=date(2024, 9, 27)))
    assert ref.symbol == "BTC-27SEP24-60000-C"


def test_null_when_no_venue() -> None:
    assert _ref(_structure(None, date(2024, 6, 7))) is None


def test_null_when_no_expiry() -> None:
    assert _ref(_structure(Venue.DERIBIT, None)) is None


def test_null_for_venue_without_symbol_builder() -> None:
    assert _ref(_structure(Venue.CME, date(2024, 6, 7))) is None
