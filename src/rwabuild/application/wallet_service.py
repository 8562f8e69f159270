# src/rwabuild/application/wallet_service.py
"""
Wallet Service - Account Queries, XRP Payments and Trust Lines

Operator-account utilities around the core flows: wallet and balance
queries, address checks, XRP payments with a balance precheck, idempotent
trust line creation and readable transaction history.

Files that USE this module:
- rwabuild.application.session (service wiring)
- rwabuild.adapters.tools.registry (wallet tools)

Files that this module USES:
- rwabuild.application.portfolio_service (balance views)
- rwabuild.adapters.ledger.* (gateway and builders)
- rwabuild.shared.validators (address, currency and memo checks)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from rwabuild.adapters.ledger.base import LedgerGateway
from rwabuild.adapters.ledger.signing import SigningContext
from rwabuild.adapters.ledger.transactions import (
    MEMO_TYPE_PAYMENT,
    build_payment,
    build_trust_set,
    parse_ledger_amount,
    text_memo,
)
from rwabuild.application.portfolio_service import PortfolioAggregator
from rwabuild.domain.asset_id import AssetRef
from rwabuild.domain.calculations import STANDARD_FEE_XRP
from rwabuild.domain.errors import AccountNotFoundError, InsufficientBalanceError, ValidationError
from rwabuild.shared.validators import (
    require_address,
    sanitize_memo,
    validate_currency_code,
    validate_positive_amount,
    validate_xrpl_address,
)

log = logging.getLogger(__name__)

DEFAULT_TRUST_LIMIT = Decimal(1_000_000_000)
MAX_HISTORY = 100


@dataclass(frozen=True)
class WalletInfo:
    address: str
    network: str
    xrp_balance: Decimal
    sequence: int
    owner_count: int
    trust_line_count: int
    reserve_healthy: bool


@dataclass(frozen=True)
class AddressCheck:
    address: str
    format_valid: bool
    exists: bool
    xrp_balance: Optional[Decimal] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class TokenBalance:
    currency: str
    issuer: str
    balance: Decimal
    limit: Decimal
    frozen: bool


@dataclass(frozen=True)
class AccountBalances:
    address: str
    xrp_balance: Decimal
    tokens: List[TokenBalance] = field(default_factory=list)


@dataclass(frozen=True)
class XrpPaymentResult:
    tx_hash: str
    ledger_index: Optional[int]
    destination: str
    amount: Decimal
    previous_balance: Decimal
    new_balance: Decimal


@dataclass(frozen=True)
class TrustlineResult:
    currency: str
    issuer: str
    limit: Decimal
    created: bool
    tx_hash: Optional[str] = None


@dataclass(frozen=True)
class TransactionSummary:
    tx_hash: Optional[str]
    tx_type: Optional[str]
    result: Optional[str]
    ledger_index: Optional[int]
    account: Optional[str]
    destination: Optional[str]
    amount: Optional[str]
    direction: str


def _format_amount(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    try:
        asset, value = parse_ledger_amount(raw)
    except ValueError:
        return None
    return f"{format(value.normalize(), 'f')} {asset.currency}"


def summarize_transaction(record: Mapping[str, Any], owner: str) -> TransactionSummary:
    """Flatten one account_tx record into a summary from ``owner``'s point of view."""
    tx = record.get("tx_json") or record.get("tx") or {}
    meta = record.get("meta") or {}
    account = tx.get("Account")
    destination = tx.get("Destination")
    if account == owner and destination != owner:
        direction = "outgoing"
    elif destination == owner and account != owner:
        direction = "incoming"
    else:
        direction = "self"
    delivered = meta.get("delivered_amount") if isinstance(meta, dict) else None
    return TransactionSummary(
        tx_hash=record.get("hash") or tx.get("hash"),
        tx_type=tx.get("TransactionType"),
        result=meta.get("TransactionResult") if isinstance(meta, dict) else None,
        ledger_index=record.get("ledger_index") or tx.get("ledger_index"),
        account=account,
        destination=destination,
        amount=_format_amount(delivered if delivered is not None else tx.get("Amount")),
        direction=direction,
    )


class WalletService:
    """Account-level utilities for the operator wallet."""

    def __init__(
        self,
        gateway: LedgerGateway,
        aggregator: PortfolioAggregator,
        operator: SigningContext,
        network: str = "testnet",
    ):
        self.gateway = gateway
        self.aggregator = aggregator
        self.operator = operator
        self.network = network

    async def get_wallet_info(self) -> WalletInfo:
        view = await self.aggregator.get_balance_view(self.operator.address)
        return WalletInfo(
            address=self.operator.address,
            network=self.network,
            xrp_balance=view.xrp_balance,
            sequence=view.account.sequence,
            owner_count=view.account.owner_count,
            trust_line_count=len(view.lines),
            reserve_healthy=view.xrp_balance >= self.aggregator.reserve_threshold,
        )

    async def validate_address(self, address: str) -> AddressCheck:
        """Format check first; the ledger is only queried for well-formed addresses."""
        result = validate_xrpl_address(address)
        if not result:
            return AddressCheck(address=address, format_valid=False, exists=False, error=result.error)
        try:
            account = await self.gateway.get_account(address)
        except AccountNotFoundError as e:
            return AddressCheck(address=address, format_valid=True, exists=False, error=str(e))
        return AddressCheck(address=address, format_valid=True, exists=True, xrp_balance=account.balance)

    async def get_account_balances(self, address: Optional[str] = None) -> AccountBalances:
        view = await self.aggregator.get_balance_view(address or self.operator.address)
        return AccountBalances(
            address=view.account.address,
            xrp_balance=view.xrp_balance,
            tokens=[
                TokenBalance(l.currency, l.account, l.holder_balance, l.limit, l.frozen)
                for l in view.lines
            ],
        )

    async def send_xrp(
        self,
        destination: str,
        amount: Decimal,
        destination_tag: Optional[int] = None,
        memo: Optional[str] = None,
    ) -> XrpPaymentResult:
        """
        Raises:
            ValidationError / InvalidAddressError: On malformed input
            InsufficientBalanceError: If amount plus fee exceeds the balance
        """
        require_address(destination)
        validate_positive_amount(amount).raise_for_error("amount")
        amount = Decimal(amount)
        if destination == self.operator.address:
            raise ValidationError("Cannot send XRP to the sending account", field="destination")

        account = await self.gateway.get_account(self.operator.address)
        required = amount + STANDARD_FEE_XRP
        if account.balance < required:
            raise InsufficientBalanceError("XRP", account.balance, required, note="amount plus network fee")

        payment = build_payment(
            self.operator.address, destination, AssetRef.base(), amount,
            destination_tag=destination_tag,
            memos=text_memo(sanitize_memo(memo), MEMO_TYPE_PAYMENT),
        )
        result = await self.gateway.submit(payment, self.operator)
        after = await self.gateway.get_account(self.operator.address)
        log.info("Sent %s XRP to %s (%s)", amount, destination, result.tx_hash)
        return XrpPaymentResult(
            tx_hash=result.tx_hash,
            ledger_index=result.ledger_index,
            destination=destination,
            amount=amount,
            previous_balance=account.balance,
            new_balance=after.balance,
        )

    async def create_trustline(
        self, currency: str, issuer: str, limit: Decimal = DEFAULT_TRUST_LIMIT
    ) -> TrustlineResult:
        """
        Open a trust line from the operator account. An existing line is
        reported as-is and nothing is submitted.
        """
        validate_currency_code(currency).raise_for_error("currency")
        require_address(issuer)
        validate_positive_amount(limit, "Limit").raise_for_error("limit")
        limit = Decimal(limit)
        asset = AssetRef(currency, issuer)

        lines = await self.gateway.get_trust_lines(self.operator.address)
        for line in lines:
            if line.currency == currency and line.account == issuer:
                log.info("Trust line %s already exists", asset)
                return TrustlineResult(currency, issuer, line.limit, created=False)

        result = await self.gateway.submit(build_trust_set(self.operator.address, asset, limit), self.operator)
        return TrustlineResult(currency, issuer, limit, created=True, tx_hash=result.tx_hash)

    async def get_transaction_history(
        self, address: Optional[str] = None, limit: int = 10
    ) -> List[TransactionSummary]:
        if not 1 <= limit <= MAX_HISTORY:
            raise ValidationError(f"limit must be between 1 and {MAX_HISTORY}", field="limit")
        owner = require_address(address or self.operator.address)
        records: List[Dict[str, Any]] = await self.gateway.get_transactions(owner, limit=limit, max_pages=1)
        return [summarize_transaction(r, owner) for r in records[:limit]]
