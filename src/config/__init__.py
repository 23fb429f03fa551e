"""
Configuration loaders.

App config:     reads config.yaml, resolves env vars for the alert webhook.
Engine config:  reads engine.default.json (or override), validates against JSON Schema.
"""

from config.engine_config import (
    EngineConfig,
    EngineConfigError,
    LedgerConfig,
    MarksConfig,
    StatusConfig,
    load_engine_config,
)
from config.loader import (
    AlertingConfig,
    AppConfig,
    MarksSourceConfig,
    load_config,
)

__all__ = [
    # App config (YAML)
    "AlertingConfig",
    "AppConfig",
    "MarksSourceConfig",
    "load_config",
    # Engine config (JSON + schema)
    "EngineConfig",
    "EngineConfigError",
    "LedgerConfig",
    "MarksConfig",
    "StatusConfig",
    "load_engine_config",
]
