# src/rwabuild/application/portfolio_service.py
"""
Portfolio Aggregator - Holdings Classification and Valuation

Builds a classified view of an account's trust lines. Each distinct holding
is looked up in its issuer's history for a tokenization record; lookups run
in parallel under a bounded semaphore and a failed lookup only marks that
holding unclassified. Also answers asset, supply and holder queries for a
single token.

Files that USE this module:
- rwabuild.application.issuance_service (asset resolution, balance checks)
- rwabuild.application.amm_service (balance view before and after)
- rwabuild.application.wallet_service (balances)
- rwabuild.adapters.tools.registry (portfolio tools)

Files that this module USES:
- rwabuild.adapters.ledger (LedgerGateway, find_tokenization_record)
- rwabuild.shared.validators (address checks)
- rwabuild.domain.* (models and errors)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from rwabuild.adapters.ledger.base import LedgerGateway
from rwabuild.adapters.ledger.codec import TokenizationRecord, find_tokenization_record
from rwabuild.domain.asset_id import AssetRef, parse_asset_id
from rwabuild.domain.errors import AssetNotFoundError, DomainError, ValidationError
from rwabuild.domain.models import AssetType, BalanceView, HoldingView, PortfolioSnapshot, TrustLine
from rwabuild.shared.validators import require_address

log = logging.getLogger(__name__)

OTHER_TOKENS = "other_tokens"
DEFAULT_RESERVE_THRESHOLD = Decimal(10)


@dataclass(frozen=True)
class TokenHolder:
    address: str
    balance: Decimal
    ownership_percent: Decimal


@dataclass(frozen=True)
class TokenSupply:
    asset_id: str
    outstanding: Decimal
    holder_count: int
    declared_supply: Optional[int] = None


def parse_asset(asset_id: str) -> AssetRef:
    """
    Parse and format-check an issued-token id.

    Raises:
        ValidationError: If the id is not ``CUR.issuer``
        InvalidAddressError: If the issuer is malformed
    """
    asset = parse_asset_id(asset_id)
    if asset is None:
        raise ValidationError(
            "Invalid token ID format. Expected format: CURRENCY.ISSUER_ADDRESS", field="token_id"
        )
    require_address(asset.issuer)
    return asset


class PortfolioAggregator:
    """Read-only views over accounts and tokens."""

    def __init__(
        self,
        gateway: LedgerGateway,
        reserve_threshold: Decimal = DEFAULT_RESERVE_THRESHOLD,
        lookup_concurrency: int = 4,
        history_page_size: int = 100,
        history_max_pages: int = 5,
    ):
        self.gateway = gateway
        self.reserve_threshold = reserve_threshold
        self.lookup_concurrency = lookup_concurrency
        self.history_page_size = history_page_size
        self.history_max_pages = history_max_pages

    async def get_balance_view(self, address: str) -> BalanceView:
        """XRP balance and raw trust lines; no metadata lookups."""
        require_address(address)
        account = await self.gateway.get_account(address)
        lines = await self.gateway.get_trust_lines(address)
        return BalanceView(account=account, lines=lines)

    async def get_asset_info(self, asset_id: str) -> Optional[TokenizationRecord]:
        """
        Find the tokenization record of ``asset_id`` in its issuer's history.

        Returns:
            TokenizationRecord, or None if the issuer never tokenized this symbol
        """
        asset = parse_asset(asset_id)
        records = await self.gateway.get_transactions(
            asset.issuer, limit=self.history_page_size, max_pages=self.history_max_pages
        )
        return find_tokenization_record(records, asset.currency)

    async def require_asset(self, asset_id: str) -> TokenizationRecord:
        """
        Raises:
            AssetNotFoundError: If no tokenization record exists
        """
        record = await self.get_asset_info(asset_id)
        if record is None:
            raise AssetNotFoundError(asset_id)
        return record

    async def _classify(
        self, assets: List[AssetRef]
    ) -> Tuple[Dict[AssetRef, Optional[TokenizationRecord]], int]:
        semaphore = asyncio.Semaphore(self.lookup_concurrency)
        failures = 0

        async def lookup(asset: AssetRef) -> Tuple[AssetRef, Optional[TokenizationRecord]]:
            nonlocal failures
            async with semaphore:
                try:
                    return asset, await self.get_asset_info(asset.asset_id)
                except DomainError as e:
                    failures += 1
                    log.warning("Metadata lookup for %s failed, treating as unclassified: %s", asset, e)
                    return asset, None

        results = await asyncio.gather(*(lookup(a) for a in assets))
        return dict(results), failures

    async def get_holdings(self, address: str) -> PortfolioSnapshot:
        """
        Classify and value every holding of ``address``.

        Raises:
            InvalidAddressError: If the address is malformed
            AccountNotFoundError: If the account does not exist
        """
        view = await self.get_balance_view(address)
        distinct: List[AssetRef] = []
        for line in view.lines:
            if line.asset not in distinct:
                distinct.append(line.asset)
        records, failures = await self._classify(distinct)

        holdings: List[HoldingView] = []
        diversification: Dict[str, int] = {t.value: 0 for t in AssetType}
        diversification[OTHER_TOKENS] = 0
        total_value = Decimal(0)

        for line in view.lines:
            record = records.get(line.asset)
            metadata = record.metadata if record else None
            balance = line.holder_balance
            estimated = Decimal(0)
            if metadata is not None:
                per_token = metadata.value_per_token
                if per_token is not None:
                    estimated = balance * per_token
                diversification[metadata.asset_details.type.value] += 1
                total_value += estimated
            else:
                diversification[OTHER_TOKENS] += 1
            holdings.append(
                HoldingView(
                    asset_id=line.asset.asset_id,
                    currency=line.currency,
                    issuer=line.account,
                    balance=balance,
                    limit=line.limit,
                    is_rwa_token=metadata is not None,
                    estimated_value=estimated,
                    metadata=metadata,
                )
            )

        snapshot = PortfolioSnapshot(
            account=view.account.address,
            xrp_balance=view.xrp_balance,
            holdings=holdings,
            total_rwa_value=total_value,
            diversification=diversification,
            reserve_healthy=view.xrp_balance >= self.reserve_threshold,
            reserve_threshold=self.reserve_threshold,
            failed_lookups=failures,
        )
        log.info(
            "Portfolio %s: %d holdings, %d classified, value=%s",
            address, len(holdings), len(snapshot.rwa_holdings), total_value,
        )
        return snapshot

    async def _issuer_lines(self, asset: AssetRef) -> List[TrustLine]:
        lines = await self.gateway.get_trust_lines(asset.issuer)
        # issuer-side balances are negative while holders hold tokens
        return [l for l in lines if l.currency == asset.currency and l.balance < 0]

    async def get_token_holders(self, asset_id: str, min_balance: Decimal = Decimal(0)) -> List[TokenHolder]:
        asset = parse_asset(asset_id)
        lines = await self._issuer_lines(asset)
        outstanding = sum((l.holder_balance for l in lines), Decimal(0))
        holders = [
            TokenHolder(
                address=l.account,
                balance=l.holder_balance,
                ownership_percent=(l.holder_balance / outstanding * 100) if outstanding else Decimal(0),
            )
            for l in lines
            if l.holder_balance > min_balance
        ]
        holders.sort(key=lambda h: h.balance, reverse=True)
        return holders

    async def get_token_supply(self, asset_id: str) -> TokenSupply:
        asset = parse_asset(asset_id)
        lines = await self._issuer_lines(asset)
        record = await self.get_asset_info(asset_id)
        return TokenSupply(
            asset_id=asset.asset_id,
            outstanding=sum((l.holder_balance for l in lines), Decimal(0)),
            holder_count=len(lines),
            declared_supply=record.metadata.asset_details.total_supply if record else None,
        )
