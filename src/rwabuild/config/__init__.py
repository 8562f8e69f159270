# src/rwabuild/config/__init__.py
"""
Configuration Package

Environment-backed settings and the resolved ledger configuration.
"""

from rwabuild.config.settings import (
    NETWORK_ENDPOINTS,
    LedgerConfig,
    Settings,
    load_settings,
    parse_flag_overrides,
)

__all__ = [
    "NETWORK_ENDPOINTS",
    "LedgerConfig",
    "Settings",
    "load_settings",
    "parse_flag_overrides",
]
