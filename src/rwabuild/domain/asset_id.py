# src/rwabuild/domain/asset_id.py
"""
Asset Identifiers - Composite Token Keys

An issued token is identified by its currency code and issuer address,
written as ``CUR.issuer``. The base currency is written as ``XRP`` and has
no issuer.

Files that USE this module:
- rwabuild.domain.models (AssetRef on trust lines and pools)
- rwabuild.application.* (parsing tool inputs)
- rwabuild.adapters.ledger.transactions (currency model conversion)

Files that this module USES:
- None (pure functions)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

BASE_CODE = "XRP"


def generate_asset_id(currency: str, issuer: str) -> str:
    return f"{currency}.{issuer}"


def parse_asset_id(asset_id: str) -> Optional["AssetRef"]:
    """
    Split ``CUR.issuer`` into its parts.

    Returns:
        AssetRef, or None unless the id has exactly two non-empty parts
    """
    if not asset_id:
        return None
    parts = asset_id.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return AssetRef(parts[0], parts[1])


@dataclass(frozen=True)
class AssetRef:
    """Reference to the base currency (issuer None) or an issued token."""
    currency: str
    issuer: Optional[str] = None

    @classmethod
    def base(cls) -> "AssetRef":
        return cls(BASE_CODE, None)

    @classmethod
    def parse(cls, text: str) -> Optional["AssetRef"]:
        """Parse ``XRP`` or ``CUR.issuer``."""
        if text and text.upper() == BASE_CODE:
            return cls.base()
        return parse_asset_id(text)

    @property
    def is_base(self) -> bool:
        return self.issuer is None and self.currency == BASE_CODE

    @property
    def asset_id(self) -> str:
        if self.is_base:
            return BASE_CODE
        return generate_asset_id(self.currency, self.issuer)

    def __str__(self) -> str:
        return self.asset_id
