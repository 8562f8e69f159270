# src/rwabuild/adapters/tools/schemas.py
"""
Tool Input Schemas - Pydantic Models per Tool

One model per exposed tool. Field constraints here are the first line of
input checking; the services repeat the domain checks (symbol, supply,
compliance) with their exact messages.

Files that USE this module:
- rwabuild.adapters.tools.registry (parameter validation and JSON schema)

Files that this module USES:
- rwabuild.application.amm_service (deposit and withdraw modes)
- rwabuild.domain.models (AssetType)
- rwabuild.domain.calculations (PayoutFrequency)
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from rwabuild.application.amm_service import DEFAULT_SLIPPAGE, DepositMode, WithdrawMode
from rwabuild.domain.amm_math import DEFAULT_TRADING_FEE, MAX_TRADING_FEE
from rwabuild.domain.calculations import PayoutFrequency
from rwabuild.domain.models import AssetType

ADDRESS_PATTERN = r"^r[1-9A-HJ-NP-Za-km-z]{25,34}$"
TOKEN_ID_PATTERN = r"^[A-Za-z0-9]{3}\.r[1-9A-HJ-NP-Za-km-z]{25,34}$"
SWAP_ASSET_PATTERN = r"^(XRP|[A-Za-z0-9]{3}\.r[1-9A-HJ-NP-Za-km-z]{25,34})$"


class ToolInput(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class NoInput(ToolInput):
    pass


class AddressInput(ToolInput):
    address: str = Field(..., pattern=ADDRESS_PATTERN, description="XRPL account address")


class OptionalAddressInput(ToolInput):
    address: Optional[str] = Field(default=None, pattern=ADDRESS_PATTERN,
                                   description="Account address; defaults to the operator wallet")


class TokenIdInput(ToolInput):
    token_id: str = Field(..., pattern=TOKEN_ID_PATTERN, description="Token id CURRENCY.ISSUER_ADDRESS")


# --- Portfolio ---

class TokenHoldersInput(TokenIdInput):
    min_balance: Decimal = Field(default=Decimal(0), ge=0)


# --- Issuance ---

class TokenizeAssetInput(ToolInput):
    name: str = Field(..., min_length=1, max_length=50)
    asset_type: AssetType
    total_value: Decimal = Field(..., gt=0, description="Asset value in USD")
    token_symbol: str = Field(..., min_length=1, max_length=3)
    total_supply: int = Field(..., gt=0)
    yield_rate: Decimal = Field(default=Decimal(0), ge=0, le=50)
    accredited_only: bool = False
    max_investors: Optional[int] = Field(default=None, ge=1)
    jurisdiction: str = Field(default="US", min_length=2, max_length=8)


class SendTokenInput(TokenIdInput):
    destination: str = Field(..., pattern=ADDRESS_PATTERN)
    amount: Decimal = Field(..., gt=0)
    destination_tag: Optional[int] = Field(default=None, ge=0, le=4294967295)
    memo: Optional[str] = Field(default=None, max_length=256)


class PlanYieldInput(TokenIdInput):
    annual_rate: Decimal = Field(..., ge=0, le=50)
    frequency: PayoutFrequency = PayoutFrequency.QUARTERLY
    principal: Optional[Decimal] = Field(default=None, gt=0)


class DistributeYieldInput(TokenIdInput):
    total_amount: Decimal = Field(..., gt=0, le=1_000_000, description="XRP to distribute")
    recipients: Optional[List[str]] = Field(default=None, min_length=1, max_length=100)
    memo: Optional[str] = Field(default=None, max_length=256)


# --- Wallet ---

class SendXrpInput(ToolInput):
    destination: str = Field(..., pattern=ADDRESS_PATTERN)
    amount: Decimal = Field(..., gt=0)
    destination_tag: Optional[int] = Field(default=None, ge=0, le=4294967295)
    memo: Optional[str] = Field(default=None, max_length=256)


class CreateTrustlineInput(ToolInput):
    currency: str = Field(..., min_length=3, max_length=3)
    issuer: str = Field(..., pattern=ADDRESS_PATTERN)
    limit: Decimal = Field(default=Decimal(1_000_000_000), gt=0)


class TransactionHistoryInput(OptionalAddressInput):
    limit: int = Field(default=10, ge=1, le=100)


# --- AMM ---

class CreatePoolInput(TokenIdInput):
    token_amount: Decimal = Field(..., gt=0)
    xrp_amount: Decimal = Field(..., gt=0)
    trading_fee: int = Field(default=DEFAULT_TRADING_FEE, ge=0, le=MAX_TRADING_FEE,
                             description="Basis points of 1/100000; 1000 = 1%")


class DepositInput(TokenIdInput):
    mode: DepositMode = DepositMode.BALANCED
    token_amount: Optional[Decimal] = Field(default=None, gt=0)
    xrp_amount: Optional[Decimal] = Field(default=None, gt=0)
    lp_tokens_out: Optional[Decimal] = Field(default=None, gt=0)
    slippage_percent: Decimal = Field(default=DEFAULT_SLIPPAGE, ge=Decimal("0.1"), le=50)


class WithdrawInput(TokenIdInput):
    mode: WithdrawMode = WithdrawMode.BOTH_ASSETS
    lp_tokens: Optional[Decimal] = Field(default=None, gt=0)
    token_amount: Optional[Decimal] = Field(default=None, gt=0)
    xrp_amount: Optional[Decimal] = Field(default=None, gt=0)
    percentage: Optional[Decimal] = Field(default=None, gt=0, le=100)


class SwapInput(ToolInput):
    from_asset: str = Field(..., pattern=SWAP_ASSET_PATTERN, description="XRP or CURRENCY.ISSUER_ADDRESS")
    to_asset: str = Field(..., pattern=SWAP_ASSET_PATTERN)
    amount: Optional[Decimal] = Field(default=None, gt=0, description="Exact input amount")
    desired_output: Optional[Decimal] = Field(default=None, gt=0, description="Exact output amount")
    slippage_percent: Decimal = Field(default=DEFAULT_SLIPPAGE, ge=Decimal("0.1"), le=50)


class ExecuteSwapInput(SwapInput):
    memo: Optional[str] = Field(default=None, max_length=256)
