# src/rwabuild/application/issuance_service.py
"""
Issuance Service - Tokenization, Transfers and Yield Distribution

Sequences asset tokenization as a step log:
1. the issuer account is configured with the metadata memo attached
2. the distribution (operator) account opens a trust line for the supply
3. the issuer pays the full supply to the distribution account

Steps are never rolled back. A failure after step 1 raises
PartialCompletionError carrying the settled steps. Also handles token
transfers with balance preconditions and XRP yield payouts to holders,
where each recipient succeeds or fails on its own.

Files that USE this module:
- rwabuild.application.session (service wiring)
- rwabuild.adapters.tools.registry (tokenize, send, yield tools)

Files that this module USES:
- rwabuild.application.portfolio_service (asset resolution and balances)
- rwabuild.adapters.ledger.* (gateway, builders, codec)
- rwabuild.domain.* (metadata, calculations, errors)
- rwabuild.shared.validators (input checks)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_DOWN, Decimal
from typing import List, Optional, Sequence

from rwabuild.adapters.ledger.base import LedgerGateway
from rwabuild.adapters.ledger.codec import encode_memo
from rwabuild.adapters.ledger.signing import SigningContext
from rwabuild.adapters.ledger.transactions import (
    MEMO_TYPE_TRANSFER,
    MEMO_TYPE_YIELD,
    build_issuer_setup,
    build_payment,
    build_trust_set,
    text_memo,
)
from rwabuild.application.portfolio_service import PortfolioAggregator, parse_asset
from rwabuild.domain.asset_id import AssetRef, generate_asset_id
from rwabuild.domain.calculations import (
    STANDARD_FEE_XRP,
    PayoutFrequency,
    YieldDistribution,
    calculate_yield_distribution,
    next_payment_date,
)
from rwabuild.domain.errors import (
    AccountNotFoundError,
    ConfigurationError,
    DestinationNotFoundError,
    DomainError,
    InsufficientBalanceError,
    LedgerUnavailableError,
    PartialCompletionError,
    ValidationError,
)
from rwabuild.domain.metadata import AssetMetadata
from rwabuild.domain.models import AssetType, StepRecord
from rwabuild.shared.validators import (
    require_address,
    sanitize_memo,
    validate_asset_name,
    validate_asset_value,
    validate_compliance_settings,
    validate_distribution_amount,
    validate_positive_amount,
    validate_token_supply,
    validate_token_symbol,
    validate_yield_rate,
)

log = logging.getLogger(__name__)

STEP_ISSUER_CONFIGURED = "issuer_configured"
STEP_TRUSTLINE_ESTABLISHED = "trustline_established"
STEP_TOKENS_ISSUED = "tokens_issued"

_DROP = Decimal("0.000001")


@dataclass(frozen=True)
class TokenizeRequest:
    name: str
    asset_type: AssetType
    total_value: Decimal
    token_symbol: str
    total_supply: int
    yield_rate: Decimal = Decimal(0)
    accredited_only: bool = False
    max_investors: Optional[int] = None
    jurisdiction: str = "US"


@dataclass(frozen=True)
class TokenizationResult:
    asset_id: str
    currency: str
    issuer_address: str
    distribution_address: str
    price_per_token: Decimal
    metadata: AssetMetadata
    steps: List[StepRecord]


@dataclass(frozen=True)
class TransferResult:
    tx_hash: str
    ledger_index: Optional[int]
    asset_id: str
    destination: str
    amount: Decimal
    previous_balance: Decimal
    new_balance: Decimal
    estimated_value: Decimal
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class YieldSchedule:
    asset_id: str
    principal: Decimal
    annual_rate: Decimal
    frequency: PayoutFrequency
    distribution: YieldDistribution
    amount_per_token: Decimal
    next_payment_date: date


@dataclass(frozen=True)
class RecipientPayment:
    address: str
    amount: Decimal
    status: str
    tx_hash: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class DistributionResult:
    asset_id: str
    status: str
    total_requested: Decimal
    total_paid: Decimal
    payments: List[RecipientPayment]


def validate_tokenize_request(request: TokenizeRequest) -> None:
    """
    Raises:
        ValidationError: On the first violated field constraint
    """
    validate_asset_name(request.name).raise_for_error("name")
    validate_token_symbol(request.token_symbol).raise_for_error("token_symbol")
    validate_asset_value(request.total_value).raise_for_error("total_value")
    validate_token_supply(request.total_supply, request.total_value).raise_for_error("total_supply")
    validate_yield_rate(request.yield_rate).raise_for_error("yield_rate")
    validate_compliance_settings(request.accredited_only, request.max_investors).raise_for_error("max_investors")


class IssuanceService:
    """Tokenization and token movements for the operator account."""

    def __init__(
        self,
        gateway: LedgerGateway,
        aggregator: PortfolioAggregator,
        operator: SigningContext,
        issuer: Optional[SigningContext] = None,
        network: str = "testnet",
        reserve_xrp: Decimal = Decimal(10),
    ):
        self.gateway = gateway
        self.aggregator = aggregator
        self.operator = operator
        self.issuer = issuer
        self.network = network
        self.reserve_xrp = reserve_xrp

    async def tokenize_asset(self, request: TokenizeRequest) -> TokenizationResult:
        """
        Create a new asset token and move its supply to the operator account.

        Not idempotent: callers must not retry blindly after a failure.

        Raises:
            ValidationError: If a field is out of bounds
            ConfigurationError: If no issuer credential is configured
            LedgerRejectionError: If the issuer configuration step is rejected
            PartialCompletionError: If a later step fails or the call is cancelled mid-sequence
        """
        validate_tokenize_request(request)
        if self.issuer is None:
            raise ConfigurationError("Tokenization requires XRPL_ISSUER_SEED to be configured")
        if self.issuer.address == self.operator.address:
            raise ConfigurationError("Issuer and distribution accounts must be different")

        currency = request.token_symbol
        asset = AssetRef(currency, self.issuer.address)
        metadata = AssetMetadata.build(
            name=request.name,
            asset_type=request.asset_type,
            total_value=Decimal(request.total_value),
            token_symbol=currency,
            total_supply=request.total_supply,
            issuer_address=self.issuer.address,
            network=self.network,
            yield_rate=Decimal(request.yield_rate or 0),
            accredited_only=request.accredited_only,
            jurisdiction=request.jurisdiction,
        )
        supply = Decimal(request.total_supply)
        log.info("Tokenizing %s (%s) for issuer %s", request.name, currency, self.issuer.address)

        steps: List[StepRecord] = []
        setup = await self.gateway.submit(
            build_issuer_setup(self.issuer.address, encode_memo(metadata)), self.issuer
        )
        steps.append(StepRecord(STEP_ISSUER_CONFIGURED, setup.tx_hash, setup.ledger_index,
                                "Issuer configured with tokenization metadata"))
        try:
            trust = await self.gateway.submit(
                build_trust_set(self.operator.address, asset, supply), self.operator
            )
            steps.append(StepRecord(STEP_TRUSTLINE_ESTABLISHED, trust.tx_hash, trust.ledger_index,
                                    f"Distribution trust line for {supply} {currency}"))
            issued = await self.gateway.submit(
                build_payment(self.issuer.address, self.operator.address, asset, supply), self.issuer
            )
            steps.append(StepRecord(STEP_TOKENS_ISSUED, issued.tx_hash, issued.ledger_index,
                                    f"Issued {supply} {currency} to distribution account"))
        except DomainError as e:
            log.error("Tokenization of %s stopped after %d step(s): %s", currency, len(steps), e)
            raise PartialCompletionError("tokenize_asset", steps, e) from e
        except asyncio.CancelledError:
            # deadline or shutdown; settled steps must still reach the caller
            log.error("Tokenization of %s cancelled after %d step(s): %s", currency, len(steps),
                      ", ".join(s.tx_hash for s in steps))
            cause = LedgerUnavailableError("tokenize_asset was cancelled before all steps settled")
            raise PartialCompletionError("tokenize_asset", steps, cause) from None
        except Exception as e:
            log.exception("Tokenization of %s failed unexpectedly after %d step(s)", currency, len(steps))
            cause = LedgerUnavailableError(f"Unexpected failure: {e}")
            raise PartialCompletionError("tokenize_asset", steps, cause) from e

        return TokenizationResult(
            asset_id=asset.asset_id,
            currency=currency,
            issuer_address=self.issuer.address,
            distribution_address=self.operator.address,
            price_per_token=metadata.asset_details.price_per_token,
            metadata=metadata,
            steps=steps,
        )

    async def send_token(
        self,
        token_id: str,
        destination: str,
        amount: Decimal,
        destination_tag: Optional[int] = None,
        memo: Optional[str] = None,
    ) -> TransferResult:
        """
        Transfer a tokenized asset from the operator account.

        Raises:
            ValidationError / InvalidAddressError: On malformed input
            AssetNotFoundError: If the token has no tokenization record
            InsufficientBalanceError: If the operator holds less than ``amount``
            DestinationNotFoundError: If the destination account does not exist
            LedgerRejectionError: If the payment is rejected
        """
        asset = parse_asset(token_id)
        require_address(destination)
        validate_positive_amount(amount).raise_for_error("amount")
        amount = Decimal(amount)
        if destination == self.operator.address:
            raise ValidationError("Cannot send tokens to the sending account", field="destination")

        record = await self.aggregator.require_asset(token_id)
        before = await self.aggregator.get_balance_view(self.operator.address)
        available = before.balance_of(asset)
        if available < amount:
            raise InsufficientBalanceError(asset.currency, available, amount)

        try:
            await self.gateway.get_account(destination)
        except AccountNotFoundError:
            raise DestinationNotFoundError(destination) from None

        warnings: List[str] = []
        if destination != asset.issuer:
            dest_lines = await self.gateway.get_trust_lines(destination)
            if not any(l.currency == asset.currency and l.account == asset.issuer for l in dest_lines):
                warnings.append(
                    f"Destination has no trust line for {asset.currency}; "
                    "the ledger will reject the payment unless one is created first"
                )

        payment = build_payment(
            self.operator.address,
            destination,
            asset,
            amount,
            destination_tag=destination_tag,
            memos=text_memo(sanitize_memo(memo), MEMO_TYPE_TRANSFER),
        )
        result = await self.gateway.submit(payment, self.operator)
        after = await self.aggregator.get_balance_view(self.operator.address)
        per_token = record.metadata.value_per_token or Decimal(0)
        log.info("Sent %s %s to %s (%s)", amount, asset.currency, destination, result.tx_hash)
        return TransferResult(
            tx_hash=result.tx_hash,
            ledger_index=result.ledger_index,
            asset_id=asset.asset_id,
            destination=destination,
            amount=amount,
            previous_balance=available,
            new_balance=after.balance_of(asset),
            estimated_value=amount * per_token,
            warnings=warnings,
        )

    async def plan_yield_distribution(
        self,
        token_id: str,
        annual_rate: Decimal,
        frequency: PayoutFrequency,
        principal: Optional[Decimal] = None,
        start: Optional[date] = None,
    ) -> YieldSchedule:
        """
        Compute the payout schedule for a tokenized asset. Nothing is submitted.

        Args:
            principal: Value the rate applies to; defaults to the asset's total value
        """
        record = await self.aggregator.require_asset(token_id)
        details = record.metadata.asset_details
        frequency = PayoutFrequency(frequency)
        principal = Decimal(principal) if principal is not None else details.total_value
        distribution = calculate_yield_distribution(principal, Decimal(annual_rate), frequency)
        return YieldSchedule(
            asset_id=generate_asset_id(details.token_symbol, record.metadata.issuer.address),
            principal=principal,
            annual_rate=Decimal(annual_rate),
            frequency=frequency,
            distribution=distribution,
            amount_per_token=distribution.amount_per_period / details.total_supply,
            next_payment_date=next_payment_date(start or date.today(), frequency),
        )

    async def distribute_yield(
        self,
        token_id: str,
        total_amount: Decimal,
        recipients: Optional[Sequence[str]] = None,
        memo: Optional[str] = None,
    ) -> DistributionResult:
        """
        Pay ``total_amount`` XRP to token holders.

        Without explicit recipients, current holders are paid pro rata to
        their balances. Explicit recipients split the amount evenly.
        Payments go out one at a time from the operator account; a failed
        recipient is recorded and the batch continues.

        Raises:
            ValidationError: On malformed input or no recipients
            AssetNotFoundError: If the token has no tokenization record
            InsufficientBalanceError: If the operator cannot cover the batch
        """
        asset = parse_asset(token_id)
        total_amount = Decimal(total_amount)
        record = await self.aggregator.require_asset(token_id)
        validate_distribution_amount(total_amount, record.metadata.asset_details.total_supply) \
            .raise_for_error("total_amount")

        if recipients:
            for address in recipients:
                require_address(address)
            unique = list(dict.fromkeys(recipients))
            allocations = [(a, total_amount / len(unique)) for a in unique]
        else:
            # the XRP pool holds supply but cannot receive direct payments
            pool = await self.gateway.get_amm_pool(asset, AssetRef.base())
            excluded = {self.operator.address}
            if pool is not None:
                excluded.add(pool.account)
            holders = [
                h for h in await self.aggregator.get_token_holders(token_id)
                if h.address not in excluded
            ]
            held = sum((h.balance for h in holders), Decimal(0))
            allocations = [(h.address, total_amount * h.balance / held) for h in holders] if held else []
        if not allocations:
            raise ValidationError("No token holders to distribute to", field="recipients")

        account = await self.gateway.get_account(self.operator.address)
        required = total_amount + STANDARD_FEE_XRP * len(allocations)
        spendable = account.balance - self.reserve_xrp
        if spendable < required:
            raise InsufficientBalanceError("XRP", spendable, required, note="after keeping the account reserve")

        memos = text_memo(sanitize_memo(memo) or f"Yield distribution for {token_id}", MEMO_TYPE_YIELD)
        payments: List[RecipientPayment] = []
        for address, share in allocations:
            amount = share.quantize(_DROP, rounding=ROUND_DOWN)
            if amount <= 0:
                payments.append(RecipientPayment(address, amount, "skipped", error="Share below one drop"))
                continue
            try:
                result = await self.gateway.submit(
                    build_payment(self.operator.address, address, AssetRef.base(), amount, memos=memos),
                    self.operator,
                )
            except DomainError as e:
                log.warning("Yield payment of %s XRP to %s failed: %s", amount, address, e)
                payments.append(RecipientPayment(address, amount, "failed", error=str(e)))
                continue
            payments.append(RecipientPayment(address, amount, "success", tx_hash=result.tx_hash))

        paid = [p for p in payments if p.status == "success"]
        if len(paid) == len(payments):
            status = "success"
        elif paid:
            status = "partial"
        else:
            status = "error"
        total_paid = sum((p.amount for p in paid), Decimal(0))
        log.info("Yield distribution for %s: %s, paid %s of %s XRP", token_id, status, total_paid, total_amount)
        return DistributionResult(
            asset_id=token_id,
            status=status,
            total_requested=total_amount,
            total_paid=total_paid,
            payments=payments,
        )
