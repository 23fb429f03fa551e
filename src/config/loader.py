"""
Config loader: YAML file -> frozen dataclass tree.

Webhook URL resolved from the environment (OPTSTRUCT_WEBHOOK_URL) when set.
Config file holds only non-secret values.
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from positions_core.contracts import Venue

WEBHOOK_ENV_VAR = "OPTSTRUCT_WEBHOOK_URL"


@dataclass(frozen=True)
class MarksSourceConfig:
    quotes_path: str = ""


@dataclass(frozen=True)
class AlertingConfig:
    structured_logs: bool = True
    webhook_url: str = ""


@dataclass(frozen=True)
class AppConfig:
    default_venue: Venue = Venue.DERIBIT
    engine_config_path: str = ""
    marks: MarksSourceConfig = MarksSourceConfig()
    alerting: AlertingConfig = AlertingConfig()


def _parse_venue(raw: object) -> Venue:
    try:
        return Venue(str(raw).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(v.value for v in Venue)
        raise ValueError(f"Unknown default_venue '{raw}' (expected one of: {allowed})") from exc


def load_config(path: str | Path = "config.yaml", *, missing_ok: bool = False) -> AppConfig:
    """
    Load configuration from a YAML file.

    The webhook URL is taken from OPTSTRUCT_WEBHOOK_URL when that variable is
    set, otherwise from ``alerting.webhook_url``. With *missing_ok*, an
    absent file yields the defaults.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    elif missing_ok:
        raw = {}
    else:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    m_raw = raw.get("marks", {}) or {}
    m_cfg = MarksSourceConfig(quotes_path=str(m_raw.get("quotes_path", "") or ""))

    a_raw = raw.get("alerting", {}) or {}
    a_cfg = AlertingConfig(
        structured_logs=bool(a_raw.get("structured_logs", True)),
        webhook_url=os.environ.get(WEBHOOK_ENV_VAR) or str(a_raw.get("webhook_url", "") or ""),
    )

    return AppConfig(
        default_venue=_parse_venue(raw.get("default_venue", Venue.DERIBIT.value)),
        engine_config_path=str(raw.get("engine_config_path", "") or ""),
        marks=m_cfg,
        alerting=a_cfg,
    )
