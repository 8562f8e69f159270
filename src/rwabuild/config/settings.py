# src/rwabuild/config/settings.py
"""
Settings - Pydantic-based Configuration Management

Provides centralized configuration using Pydantic Settings. Values come from
environment variables (or a .env file) and may be overridden by
command-line style flags. Settings are built on demand by ``load_settings``;
the rest of the core only ever sees the resolved ``LedgerConfig``.

Files that USE this module:
- rwabuild.app (loads settings and logging configuration)
- rwabuild.application.session (resolves the ledger config and signing contexts)
- rwabuild.application.health (endpoint probing)

Files that this module USES:
- rwabuild.shared.validators (seed format validation)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Literal, Mapping, Optional, Sequence

from pydantic import Field, SecretStr, field_validator  # Data validation and field configuration
from pydantic_settings import BaseSettings, SettingsConfigDict  # Settings management with Pydantic

from rwabuild.shared.validators import validate_seed

Network = Literal["testnet", "devnet", "mainnet"]

NETWORK_ENDPOINTS: Dict[str, Dict[str, str]] = {
    "testnet": {
        "websocket": "wss://s.altnet.rippletest.net:51233",
        "rpc": "https://s.altnet.rippletest.net:51234",
    },
    "devnet": {
        "websocket": "wss://s.devnet.rippletest.net:51233",
        "rpc": "https://s.devnet.rippletest.net:51234",
    },
    "mainnet": {
        "websocket": "wss://xrplcluster.com",
        "rpc": "https://xrplcluster.com",
    },
}


@dataclass(frozen=True)
class LedgerConfig:
    """Resolved credential, network and endpoint handed to the core."""
    credential: SecretStr
    network: str
    endpoint: str
    issuer_credential: Optional[SecretStr] = None

    def __repr__(self) -> str:
        return f"LedgerConfig(network={self.network!r}, endpoint={self.endpoint!r})"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # --- Ledger credentials ---
    xrpl_private_key: SecretStr = Field(..., alias="XRPL_PRIVATE_KEY")
    xrpl_issuer_seed: Optional[SecretStr] = Field(default=None, alias="XRPL_ISSUER_SEED")

    # --- Network ---
    xrpl_network: Network = Field(default="testnet", alias="XRPL_NETWORK")
    xrpl_endpoint: Optional[str] = Field(default=None, alias="XRPL_ENDPOINT")

    # --- Timeouts ---
    http_timeout_seconds: int = Field(default=10, alias="HTTP_TIMEOUT_SECONDS", ge=1, le=60)
    operation_timeout_seconds: int = Field(default=120, alias="OPERATION_TIMEOUT_SECONDS", ge=5, le=900)

    # --- Portfolio aggregation ---
    metadata_lookup_concurrency: int = Field(default=4, alias="METADATA_LOOKUP_CONCURRENCY", ge=1, le=16)
    history_page_size: int = Field(default=100, alias="HISTORY_PAGE_SIZE", ge=1, le=400)
    history_max_pages: int = Field(default=5, alias="HISTORY_MAX_PAGES", ge=1, le=50)
    reserve_threshold_xrp: Decimal = Field(default=Decimal(10), alias="RESERVE_THRESHOLD_XRP", ge=0)

    # --- Logging ---
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_dir: Optional[str] = Field(default=None, alias="LOG_DIR")
    log_stdout: bool = Field(default=True, alias="RWABUILD_LOG_STDOUT")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, alias="LOG_MAX_BYTES")  # 10MB
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")

    @field_validator("xrpl_private_key", "xrpl_issuer_seed")
    @classmethod
    def _check_seed(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        if v is None:
            return v
        if not validate_seed(v.get_secret_value()):
            # never echo the value back
            raise ValueError("Invalid seed format")
        return v

    @field_validator("xrpl_network", mode="before")
    @classmethod
    def _normalize_network(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def websocket_url(self) -> str:
        return self.xrpl_endpoint or NETWORK_ENDPOINTS[self.xrpl_network]["websocket"]

    @property
    def rpc_url(self) -> str:
        return NETWORK_ENDPOINTS[self.xrpl_network]["rpc"]

    def ledger_config(self) -> LedgerConfig:
        return LedgerConfig(
            credential=self.xrpl_private_key,
            network=self.xrpl_network,
            endpoint=self.websocket_url,
            issuer_credential=self.xrpl_issuer_seed,
        )


def parse_flag_overrides(argv: Sequence[str]) -> Dict[str, str]:
    """
    Collect ``--name=value`` flags into settings field overrides.

    Unrecognized positional arguments are ignored.
    """
    overrides: Dict[str, str] = {}
    for arg in argv:
        if not arg.startswith("--") or "=" not in arg:
            continue
        name, value = arg[2:].split("=", 1)
        overrides[name.replace("-", "_").lower()] = value
    return overrides


def load_settings(overrides: Optional[Mapping[str, Any]] = None) -> Settings:
    """
    Build settings from the environment with optional overrides.

    Args:
        overrides: Field-name keyed values (e.g. from ``parse_flag_overrides``)

    Returns:
        Validated Settings instance
    """
    fields = Settings.model_fields
    # keyed by alias so overrides outrank the environment source
    values = {
        fields[k].alias or k: v
        for k, v in (overrides or {}).items()
        if k in fields and v is not None
    }
    return Settings(**values)
