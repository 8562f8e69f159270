# src/rwabuild/domain/models.py
"""
Domain Models - Pure Business Objects

This module contains domain models representing core ledger concepts:
- Asset types and account state
- Trust lines (holdings) observed on the ledger
- AMM pools and LP positions
- Portfolio snapshots and orchestration step records

All monetary and token quantities are ``Decimal``.

Files that USE this module:
- rwabuild.adapters.ledger.* (gateway builds these from ledger responses)
- rwabuild.application.* (services consume and produce them)
- tests.* (tests build fixtures from them)

Files that this module USES:
- rwabuild.domain.asset_id (AssetRef for pool sides)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from rwabuild.domain.asset_id import AssetRef

BASE_CURRENCY = "XRP"


class AssetType(str, Enum):
    """Real-world asset categories recognized in tokenization metadata."""
    REAL_ESTATE = "real_estate"
    TREASURY = "treasury"
    COMMODITY = "commodity"
    BOND = "bond"


@dataclass(frozen=True)
class AccountState:
    """Account root data (balance in XRP, sequence, owned objects)."""
    address: str
    balance: Decimal
    sequence: int
    owner_count: int = 0
    flags: int = 0


@dataclass(frozen=True)
class TrustLine:
    """
    A holding relationship between the queried account and a peer.

    Attributes:
        account: Peer account (the issuer when queried from the holder side)
        currency: Currency code
        balance: Signed balance as reported by the ledger
        limit: Trust limit set by the queried account
        quality_in: Inbound quality (0 = face value)
        quality_out: Outbound quality (0 = face value)
        frozen: True if either side froze the line
    """
    account: str
    currency: str
    balance: Decimal
    limit: Decimal
    quality_in: int = 0
    quality_out: int = 0
    frozen: bool = False

    @property
    def holder_balance(self) -> Decimal:
        """Balance as seen by the holder; always non-negative."""
        return abs(self.balance)

    @property
    def asset(self) -> AssetRef:
        return AssetRef(self.currency, self.account)


@dataclass(frozen=True)
class AmmPool:
    """
    Constant-product pool state as returned by an ``amm_info`` query.

    Attributes:
        account: Pool's special AMM account (also the LP token issuer)
        asset1, asset2: Pool sides
        amount1, amount2: Reserve balances
        lp_currency: LP token currency code (40-char hex)
        total_lp_tokens: Outstanding LP tokens
        trading_fee: Fee in units of 1/100000 (0 to 1000)
    """
    account: str
    asset1: AssetRef
    asset2: AssetRef
    amount1: Decimal
    amount2: Decimal
    lp_currency: str
    total_lp_tokens: Decimal
    trading_fee: int

    def reserve_of(self, asset: AssetRef) -> Decimal:
        if asset == self.asset1:
            return self.amount1
        if asset == self.asset2:
            return self.amount2
        raise KeyError(f"{asset} is not a side of pool {self.account}")

    def reserves(self, sell: AssetRef) -> Tuple[Decimal, Decimal]:
        """Return (pool_in, pool_out) oriented for selling ``sell`` into the pool."""
        if sell == self.asset1:
            return self.amount1, self.amount2
        if sell == self.asset2:
            return self.amount2, self.amount1
        raise KeyError(f"{sell} is not a side of pool {self.account}")

    def spot_price(self, asset: AssetRef) -> Decimal:
        """Price of one unit of ``asset`` in units of the other side."""
        pool_in, pool_out = self.reserves(asset)
        return pool_out / pool_in

    @property
    def lp_token(self) -> AssetRef:
        return AssetRef(self.lp_currency, self.account)


@dataclass(frozen=True)
class LpPosition:
    """An account's LP token balance in a pool."""
    pool: AmmPool
    lp_balance: Decimal

    @property
    def share(self) -> Decimal:
        if self.pool.total_lp_tokens == 0:
            return Decimal(0)
        return self.lp_balance / self.pool.total_lp_tokens

    @property
    def share_percent(self) -> Decimal:
        return self.share * 100


@dataclass(frozen=True)
class HoldingView:
    """One classified holding within a portfolio snapshot."""
    asset_id: str
    currency: str
    issuer: str
    balance: Decimal
    limit: Decimal
    is_rwa_token: bool
    estimated_value: Decimal
    metadata: Optional[Any] = None


@dataclass(frozen=True)
class PortfolioSnapshot:
    """
    Derived view over one account's holdings at query time. Never cached.

    Attributes:
        total_rwa_value: Sum of estimated values over classified holdings
        diversification: Count per asset type plus ``other_tokens``
        reserve_healthy: XRP balance is at or above the reserve threshold
    """
    account: str
    xrp_balance: Decimal
    holdings: List[HoldingView]
    total_rwa_value: Decimal
    diversification: Dict[str, int]
    reserve_healthy: bool
    reserve_threshold: Decimal
    failed_lookups: int = 0

    @property
    def rwa_holdings(self) -> List[HoldingView]:
        return [h for h in self.holdings if h.is_rwa_token]


@dataclass(frozen=True)
class BalanceView:
    """XRP balance plus raw trust lines, without metadata classification."""
    account: AccountState
    lines: List[TrustLine] = field(default_factory=list)

    @property
    def xrp_balance(self) -> Decimal:
        return self.account.balance

    def line_for(self, asset: AssetRef) -> Optional[TrustLine]:
        for line in self.lines:
            if line.currency == asset.currency and line.account == asset.issuer:
                return line
        return None

    def balance_of(self, asset: AssetRef) -> Decimal:
        if asset.is_base:
            return self.account.balance
        line = self.line_for(asset)
        return line.holder_balance if line else Decimal(0)


@dataclass(frozen=True)
class SubmissionResult:
    """Terminal outcome of a submit-and-wait round trip."""
    tx_hash: str
    ledger_index: Optional[int]
    code: str
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def delivered_amount(self) -> Optional[Any]:
        return self.meta.get("delivered_amount", self.meta.get("DeliveredAmount"))


@dataclass(frozen=True)
class StepRecord:
    """One settled step of a multi-step orchestration."""
    step: str
    tx_hash: str
    ledger_index: Optional[int]
    description: str = ""
