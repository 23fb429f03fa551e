"""
Engine config loader: JSON file -> frozen dataclass tree, validated against JSON Schema.

Default values:      docs/config/engine.default.json
Schema:              docs/config/engine_config.schema.json

Per-venue overrides: place a partial JSON file named ``engine.{venue}.json``
next to the default config (e.g. ``docs/config/engine.coincall.json``). Only
the keys you want to override need to be present; they are deep-merged on
top of the base config before schema validation.

Usage:
    from config.engine_config import load_engine_config
    cfg = load_engine_config()                       # loads default
    cfg = load_engine_config(venue="coincall")       # merges engine.coincall.json if present
    cfg.status.alert_dte  # -> 7
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema

from positions_core.aggregator import StatusThresholds
from positions_core.contracts import Venue

logger = logging.getLogger("optstruct.config")

# ---------------------------------------------------------------------------
# Project root detection (walk up from this file to find pyproject.toml)
# ---------------------------------------------------------------------------


def _find_project_root() -> Path:
    """Walk up from this file looking for pyproject.toml; fall back to CWD."""
    candidate = Path(__file__).resolve().parent
    for _ in range(10):
        if (candidate / "pyproject.toml").exists():
            return candidate
        parent = candidate.parent
        if parent == candidate:
            break
        candidate = parent
    return Path.cwd()


_PROJECT_ROOT = _find_project_root()

DEFAULT_CONFIG_PATH = _PROJECT_ROOT / "docs" / "config" / "engine.default.json"
DEFAULT_SCHEMA_PATH = _PROJECT_ROOT / "docs" / "config" / "engine_config.schema.json"


# ---------------------------------------------------------------------------
# Frozen dataclass tree: mirrors engine.default.json structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatusConfig:
    alert_dte: int
    attention_dte: int
    alert_pnl_pct: float
    alert_realized_pnl: float


@dataclass(frozen=True)
class LedgerConfig:
    lot_epsilon: float


@dataclass(frozen=True)
class MarksConfig:
    batch_size: int


@dataclass(frozen=True)
class EngineConfig:
    """Top-level engine configuration: status thresholds, matching tolerance, fetch batching."""
    version: str
    default_venue: Venue
    status: StatusConfig
    ledger: LedgerConfig
    marks: MarksConfig

    def to_thresholds(self) -> StatusThresholds:
        return StatusThresholds(
            alert_dte=self.status.alert_dte,
            attention_dte=self.status.attention_dte,
            alert_pnl_pct=self.status.alert_pnl_pct,
            alert_realized_pnl=self.status.alert_realized_pnl,
        )


# ---------------------------------------------------------------------------
# Deep merge for per-venue overrides
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overrides* into a copy of *base*; override keys win."""
    merged = dict(base)
    for key, val in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(val, dict):
            merged[key] = _deep_merge(merged[key], val)
        else:
            merged[key] = val
    return merged


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class EngineConfigError(Exception):
    """Raised when engine config loading or validation fails."""


def _read_json(path: Path, label: str) -> dict[str, Any]:
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise EngineConfigError(f"{label} is not valid JSON: {exc}") from exc


def _validate_schema(data: dict[str, Any], schema_path: Path) -> None:
    if not schema_path.exists():
        raise EngineConfigError(f"Schema file not found: {schema_path}")
    with open(schema_path) as f:
        schema = json.load(f)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        raise EngineConfigError(f"Engine config validation failed: {exc.message}") from exc


def _build_config(data: dict[str, Any]) -> EngineConfig:
    status_raw = data["status"]
    return EngineConfig(
        version=data["version"],
        default_venue=Venue(data.get("default_venue", Venue.DERIBIT.value)),
        status=StatusConfig(
            alert_dte=status_raw["alert_dte"],
            attention_dte=status_raw["attention_dte"],
            alert_pnl_pct=float(status_raw["alert_pnl_pct"]),
            alert_realized_pnl=float(status_raw["alert_realized_pnl"]),
        ),
        ledger=LedgerConfig(lot_epsilon=float(data["ledger"]["lot_epsilon"])),
        marks=MarksConfig(batch_size=data["marks"]["batch_size"]),
    )


def load_engine_config(
    config_path: str | Path | None = None,
    schema_path: str | Path | None = None,
    venue: str | None = None,
) -> EngineConfig:
    """Load and validate engine configuration.

    Parameters
    ----------
    config_path:
        Path to an engine JSON config file.  Defaults to ``docs/config/engine.default.json``.
    schema_path:
        Path to the JSON Schema file.  Defaults to ``docs/config/engine_config.schema.json``.
    venue:
        Optional venue name.  When provided, ``engine.{venue}.json`` in the
        same directory as the base config is deep-merged on top if it exists.

    Raises
    ------
    EngineConfigError
        If the file is missing, unparseable, or fails schema validation.
    """
    cfg_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    sch_path = Path(schema_path) if schema_path else DEFAULT_SCHEMA_PATH

    if not cfg_path.exists():
        raise EngineConfigError(f"Engine config file not found: {cfg_path}")
    data = _read_json(cfg_path, "Engine config")

    if venue:
        override_path = cfg_path.parent / f"engine.{venue.lower()}.json"
        if override_path.exists():
            overrides = _read_json(override_path, f"Per-venue config {override_path.name}")
            data = _deep_merge(data, overrides)
            logger.info("Loaded per-venue config: %s", override_path.name)
        else:
            logger.debug("No per-venue config found at %s, using defaults", override_path)

    _validate_schema(data, sch_path)

    return _build_config(data)
