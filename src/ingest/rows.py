"""
Ingestion boundary: raw import rows -> validated TradeRecords.

Nothing looser than a TradeRecord crosses into positions_core. Rows that
cannot become trades are kept as data (rejected / excluded), not dropped.
"""

import csv
import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Mapping

from positions_core.contracts import TradeRecord, Venue
from positions_core.instruments import parse_instrument_by_venue

from ingest.normalize import NO_TS, normalize_second, parse_action_side, to_number

logger = logging.getLogger("optstruct.ingest")


class IngestError(Exception):
    """Raised when an import file cannot be read."""


@dataclass(frozen=True)
class ColumnMapping:
    """Logical field -> raw column name. Empty string means 'not mapped'."""

    instrument: str = "instrument"
    side: str = "side"
    amount: str = "amount"
    price: str = "price"
    fee: str = "fee"
    timestamp: str = "timestamp"
    trade_id: str = "trade_id"
    order_id: str = "order_id"
    info: str = "info"
    structure_id: str = "structure_id"

    @classmethod
    def from_dict(cls, raw: Mapping[str, str]) -> "ColumnMapping":
        known = set(cls.__dataclass_fields__)
        return cls(**{k: str(v) for k, v in raw.items() if k in known})


@dataclass(frozen=True)
class RejectedRow:
    row: Mapping[str, Any]
    reason: str


@dataclass(frozen=True)
class IngestStats:
    total_rows: int
    rows_with_instrument: int
    parsed_option_rows: int


@dataclass
class IngestResult:
    venue: Venue
    rows: list[TradeRecord] = field(default_factory=list)
    excluded: list[TradeRecord] = field(default_factory=list)
    rejected: list[RejectedRow] = field(default_factory=list)
    stats: IngestStats = IngestStats(0, 0, 0)


def _cell(row: Mapping[str, Any], column: str) -> Any:
    return row.get(column) if column else None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _base_record(row: Mapping[str, Any], mapping: ColumnMapping, venue: Venue) -> TradeRecord | RejectedRow:
    action, side = parse_action_side(_cell(row, mapping.side))
    amount = to_number(_cell(row, mapping.amount))
    raw_price = _cell(row, mapping.price)
    price = to_number(raw_price)

    if side is None:
        return RejectedRow(row=row, reason="missing side")
    if not amount:
        return RejectedRow(row=row, reason="missing amount")
    if raw_price is None or str(raw_price).strip() == "":
        return RejectedRow(row=row, reason="missing price")

    return TradeRecord(
        instrument=str(_cell(row, mapping.instrument)).strip(),
        side=side,
        action=action,
        amount=amount,
        price=price,
        fee=to_number(_cell(row, mapping.fee)),
        timestamp=_optional_str(_cell(row, mapping.timestamp)),
        trade_id=_optional_str(_cell(row, mapping.trade_id)),
        order_id=_optional_str(_cell(row, mapping.order_id)),
        info=_optional_str(_cell(row, mapping.info)),
        venue=venue,
        structure_id=_optional_str(_cell(row, mapping.structure_id)),
    )


def map_rows(
    raw_rows: Iterable[Mapping[str, Any]],
    mapping: ColumnMapping | None = None,
    venue: Venue = Venue.DERIBIT,
) -> IngestResult:
    """Validate raw rows into TradeRecords.

    Rows without an instrument are skipped. Rows without a usable side,
    amount or price are rejected. Rows whose instrument is not an option
    go to ``excluded``. Parsed rows get a structure id: the explicit one,
    else the timestamp truncated to the second, else NO_TS_<n>.
    """
    mapping = mapping or ColumnMapping()
    result = IngestResult(venue=venue)
    total = 0
    with_instrument = 0

    for row in raw_rows:
        total += 1
        if not str(_cell(row, mapping.instrument) or "").strip():
            continue
        with_instrument += 1

        record = _base_record(row, mapping, venue)
        if isinstance(record, RejectedRow):
            result.rejected.append(record)
            continue

        parsed = parse_instrument_by_venue(venue, record.instrument)
        if parsed is None:
            result.excluded.append(record)
            continue

        structure_id = record.structure_id
        if structure_id is None:
            normalized = normalize_second(record.timestamp)
            structure_id = f"{NO_TS}_{len(result.rows) + 1}" if normalized == NO_TS else normalized

        result.rows.append(
            replace(
                record,
                underlying=parsed.underlying,
                expiry=parsed.expiry,
                strike=parsed.strike,
                option_type=parsed.option_type,
                structure_id=structure_id,
            )
        )

    result.stats = IngestStats(
        total_rows=total,
        rows_with_instrument=with_instrument,
        parsed_option_rows=len(result.rows),
    )
    logger.info(
        "Ingested %d option row(s) from %d row(s); %d excluded, %d rejected",
        len(result.rows),
        total,
        len(result.excluded),
        len(result.rejected),
    )
    return result


def load_rows(path: str | Path) -> list[dict[str, Any]]:
    """Read raw rows from a .csv (header row) or .json (list of objects) file."""
    file_path = Path(path)
    if not file_path.exists():
        raise IngestError(f"Import file not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix == ".csv":
        with open(file_path, newline="", encoding="utf-8-sig") as f:
            return [dict(r) for r in csv.DictReader(f)]
    if suffix == ".json":
        try:
            with open(file_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise IngestError(f"Import file is not valid JSON: {exc}") from exc
        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise IngestError("JSON import file must contain a list of objects")
        return data
    raise IngestError(f"Unsupported import file type: {suffix or file_path.name}")
