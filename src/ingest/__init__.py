"""
Ingestion boundary: raw rows (CSV/JSON, column-mapped) -> TradeRecord.

Depends on positions_core.contracts; no dependency from positions_core back to ingest.
"""

from ingest.normalize import normalize_second, parse_action_side, to_number
from ingest.rows import (
    ColumnMapping,
    IngestError,
    IngestResult,
    IngestStats,
    RejectedRow,
    load_rows,
    map_rows,
)

__all__ = [
    "ColumnMapping",
    "IngestError",
    "IngestResult",
    "IngestStats",
    "load_rows",
    "map_rows",
    "normalize_second",
    "parse_action_side",
    "RejectedRow",
    "to_number",
]
