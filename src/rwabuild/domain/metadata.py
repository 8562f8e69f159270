# src/rwabuild/domain/metadata.py
"""
Asset Metadata - Versioned Tokenization Record Schema

Pydantic models for the JSON document attached to an issuer's
configuration transaction when an asset is tokenized. Field aliases follow
the camelCase wire shape so records written by other clients of the same
format decode unchanged.

Files that USE this module:
- rwabuild.adapters.ledger.codec (encode/decode of memo payloads)
- rwabuild.application.issuance_service (builds metadata at tokenization)
- rwabuild.application.portfolio_service (valuation from metadata)

Files that this module USES:
- rwabuild.domain.models (AssetType)
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from rwabuild.domain.models import AssetType

METADATA_VERSION = "1.0"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class AssetDetails(_WireModel):
    name: str
    type: AssetType
    total_value: Decimal = Field(..., alias="totalValue")
    token_symbol: str = Field(..., alias="tokenSymbol")
    total_supply: int = Field(..., alias="totalSupply")
    yield_rate: Decimal = Field(default=Decimal(0), alias="yieldRate")
    price_per_token: Optional[Decimal] = Field(default=None, alias="pricePerToken")


class ComplianceInfo(_WireModel):
    accredited_only: bool = Field(default=False, alias="accreditedOnly")
    jurisdiction: str = "US"
    tokenization_date: Optional[datetime] = Field(default=None, alias="tokenizationDate")


class IssuerInfo(_WireModel):
    address: str
    network: str


class AssetMetadata(_WireModel):
    """Complete tokenization record as stored in the ledger memo."""
    version: str = METADATA_VERSION
    timestamp: int
    asset_details: AssetDetails = Field(..., alias="assetDetails")
    compliance: ComplianceInfo = Field(default_factory=ComplianceInfo)
    issuer: IssuerInfo

    @property
    def token_symbol(self) -> str:
        return self.asset_details.token_symbol

    @property
    def value_per_token(self) -> Optional[Decimal]:
        """USD value of one token, or None when the record cannot price it."""
        details = self.asset_details
        if details.total_supply <= 0:
            return None
        return details.total_value / details.total_supply

    @classmethod
    def build(
        cls,
        *,
        name: str,
        asset_type: AssetType,
        total_value: Decimal,
        token_symbol: str,
        total_supply: int,
        issuer_address: str,
        network: str,
        yield_rate: Decimal = Decimal(0),
        accredited_only: bool = False,
        jurisdiction: str = "US",
        now: Optional[datetime] = None,
    ) -> "AssetMetadata":
        """Assemble a fresh record stamped with the current time."""
        now = now or datetime.now(timezone.utc)
        return cls(
            timestamp=int(now.timestamp() * 1000),
            asset_details=AssetDetails(
                name=name,
                type=asset_type,
                total_value=total_value,
                token_symbol=token_symbol,
                total_supply=total_supply,
                yield_rate=yield_rate,
                price_per_token=Decimal(total_value) / total_supply,
            ),
            compliance=ComplianceInfo(
                accredited_only=accredited_only,
                jurisdiction=jurisdiction,
                tokenization_date=now,
            ),
            issuer=IssuerInfo(address=issuer_address, network=network),
        )
