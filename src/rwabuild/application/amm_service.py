# src/rwabuild/application/amm_service.py
"""
AMM Service - Pool Creation, Liquidity and Swaps

Orchestrates the AMM lifecycle for token/XRP pools. Every operation checks
balances from the aggregator's balance view, computes expected amounts with
the AMM math library, submits one transaction and re-reads pool and balance
state to report what changed.

Slippage on exact-input swaps is enforced by the ledger through a partial
payment with DeliverMin; realized slippage is measured afterwards from the
delivered amount and reported as a warning when it exceeds the tolerance.

Files that USE this module:
- rwabuild.application.session (service wiring)
- rwabuild.adapters.tools.registry (AMM tools)

Files that this module USES:
- rwabuild.domain.amm_math (quotes, LP accounting, slippage bounds)
- rwabuild.application.portfolio_service (balance views)
- rwabuild.adapters.ledger.* (gateway and transaction builders)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from rwabuild.adapters.ledger.base import LedgerGateway
from rwabuild.adapters.ledger.signing import SigningContext
from rwabuild.adapters.ledger.transactions import (
    MEMO_TYPE_SWAP,
    TF_LP_TOKEN,
    TF_ONE_ASSET_LP_TOKEN,
    TF_SINGLE_ASSET,
    TF_TWO_ASSET,
    build_amm_create,
    build_amm_deposit,
    build_amm_withdraw,
    build_swap_payment,
    parse_ledger_amount,
    text_memo,
    to_drops,
)
from rwabuild.application.portfolio_service import PortfolioAggregator, parse_asset
from rwabuild.domain import amm_math
from rwabuild.domain.asset_id import AssetRef
from rwabuild.domain.errors import (
    InsufficientBalanceError,
    InvalidPairError,
    PoolNotFoundError,
    ValidationError,
)
from rwabuild.domain.models import AmmPool, BalanceView, LpPosition
from rwabuild.shared.validators import require_address, sanitize_memo

log = logging.getLogger(__name__)

XRP_OPERATING_RESERVE = Decimal(11)
POOL_CREATION_BUFFER = Decimal(10)
SINGLE_ASSET_SLACK = Decimal("1.1")
MIN_SLIPPAGE = Decimal("0.1")
MAX_SLIPPAGE = Decimal(50)
DEFAULT_SLIPPAGE = Decimal(2)

BASE = AssetRef.base()


class DepositMode(str, Enum):
    BALANCED = "balanced"
    SINGLE_ASSET_TOKEN = "single_asset_token"
    SINGLE_ASSET_XRP = "single_asset_xrp"


class WithdrawMode(str, Enum):
    BOTH_ASSETS = "both_assets"
    SINGLE_ASSET_TOKEN = "single_asset_token"
    SINGLE_ASSET_XRP = "single_asset_xrp"
    LP_TOKENS_AMOUNT = "lp_tokens_amount"


@dataclass(frozen=True)
class PoolInfo:
    asset_id: str
    pool: AmmPool
    token_price_xrp: Decimal
    position: Optional[LpPosition] = None


@dataclass(frozen=True)
class PoolCreationResult:
    tx_hash: str
    ledger_index: Optional[int]
    asset_id: str
    token_amount: Decimal
    xrp_amount: Decimal
    trading_fee: int
    creation_cost: Decimal
    initial_price_xrp: Decimal
    pool: Optional[AmmPool] = None


@dataclass(frozen=True)
class DepositResult:
    tx_hash: str
    ledger_index: Optional[int]
    mode: DepositMode
    expected_lp_tokens: Decimal
    lp_tokens_received: Decimal
    lp_balance: Decimal
    pool_share_percent: Decimal
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class WithdrawResult:
    tx_hash: str
    ledger_index: Optional[int]
    mode: WithdrawMode
    lp_tokens_redeemed: Decimal
    expected_token_out: Decimal
    expected_xrp_out: Decimal
    token_balance_change: Decimal
    xrp_balance_change: Decimal
    remaining_lp_balance: Decimal
    pool_remaining: bool
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SwapQuote:
    from_asset: str
    to_asset: str
    amount_in: Decimal
    expected_output: Decimal
    minimum_output: Decimal
    send_max: Decimal
    price_impact_percent: Decimal
    route: List[str]
    exact_output: bool = False


@dataclass(frozen=True)
class SwapResult:
    tx_hash: str
    ledger_index: Optional[int]
    quote: SwapQuote
    actual_output: Optional[Decimal]
    realized_slippage_percent: Optional[Decimal]
    within_tolerance: bool
    warnings: List[str] = field(default_factory=list)


def _require_amount(value: Optional[Decimal], name: str, mode: Optional[Enum] = None) -> Decimal:
    if value is None:
        suffix = f" for {mode.value} mode" if mode is not None else ""
        raise ValidationError(f"{name} is required{suffix}", field=name)
    value = Decimal(value)
    if value <= 0:
        raise ValidationError(f"{name} must be greater than 0", field=name)
    return value


def _check_slippage(slippage_percent: Decimal) -> Decimal:
    slippage = Decimal(slippage_percent)
    if not MIN_SLIPPAGE <= slippage <= MAX_SLIPPAGE:
        raise ValidationError(
            f"Slippage tolerance must be between {MIN_SLIPPAGE}% and {MAX_SLIPPAGE}%", field="max_slippage_percent"
        )
    return slippage


def _spendable_xrp(view: BalanceView) -> Decimal:
    return view.xrp_balance - XRP_OPERATING_RESERVE


class AmmService:
    """AMM operations for the operator account against token/XRP pools."""

    def __init__(self, gateway: LedgerGateway, aggregator: PortfolioAggregator, operator: SigningContext):
        self.gateway = gateway
        self.aggregator = aggregator
        self.operator = operator

    async def _pool_for(self, asset: AssetRef) -> AmmPool:
        pool = await self.gateway.get_amm_pool(asset, BASE)
        if pool is None:
            raise PoolNotFoundError(asset.asset_id, f"No AMM pool found for {asset.currency}/XRP")
        return pool

    async def _operator_view(self) -> BalanceView:
        return await self.aggregator.get_balance_view(self.operator.address)

    def _require_token(self, view: BalanceView, asset: AssetRef, amount: Decimal) -> None:
        available = view.balance_of(asset)
        if available < amount:
            raise InsufficientBalanceError(asset.currency, available, amount)

    def _require_xrp(self, view: BalanceView, amount: Decimal) -> None:
        spendable = _spendable_xrp(view)
        if spendable < amount:
            raise InsufficientBalanceError(
                "XRP", spendable, amount, note=f"keeping {XRP_OPERATING_RESERVE} XRP operating reserve"
            )

    async def get_pool_info(self, token_id: str) -> PoolInfo:
        asset = parse_asset(token_id)
        pool = await self._pool_for(asset)
        view = await self._operator_view()
        lp_balance = view.balance_of(pool.lp_token)
        return PoolInfo(
            asset_id=asset.asset_id,
            pool=pool,
            token_price_xrp=pool.spot_price(asset),
            position=LpPosition(pool, lp_balance) if lp_balance > 0 else None,
        )

    async def create_pool(
        self,
        token_id: str,
        token_amount: Decimal,
        xrp_amount: Decimal,
        trading_fee: int = amm_math.DEFAULT_TRADING_FEE,
    ) -> PoolCreationResult:
        """
        Create a token/XRP pool funded from the operator account.

        The creation cost is the live owner-reserve increment, paid as the
        transaction fee.

        Raises:
            ValidationError: If amounts or fee are out of range, or a pool exists
            InsufficientBalanceError: If token or XRP (amount + reserve + buffer) is short
        """
        asset = parse_asset(token_id)
        token_amount = _require_amount(token_amount, "token_amount")
        xrp_amount = _require_amount(xrp_amount, "xrp_amount")
        if not 0 <= trading_fee <= amm_math.MAX_TRADING_FEE:
            raise ValidationError(
                f"Trading fee must be between 0 and {amm_math.MAX_TRADING_FEE}", field="trading_fee"
            )
        amm_math.validate_asset_pair(asset, BASE)

        if await self.gateway.get_amm_pool(asset, BASE) is not None:
            raise ValidationError(f"An AMM pool for {asset.currency}/XRP already exists", field="token_id")

        view = await self._operator_view()
        self._require_token(view, asset, token_amount)
        creation_cost = await self.gateway.get_reserve_increment()
        required_xrp = xrp_amount + creation_cost + POOL_CREATION_BUFFER
        if view.xrp_balance < required_xrp:
            raise InsufficientBalanceError(
                "XRP", view.xrp_balance, required_xrp,
                note=f"includes {creation_cost} XRP creation reserve and {POOL_CREATION_BUFFER} XRP buffer",
            )

        tx = build_amm_create(
            self.operator.address, asset, token_amount, BASE, xrp_amount,
            trading_fee, fee_drops=int(to_drops(creation_cost)),
        )
        result = await self.gateway.submit(tx, self.operator)
        pool = await self.gateway.get_amm_pool(asset, BASE)
        log.info("Created %s/XRP pool (%s), fee=%d", asset.currency, result.tx_hash, trading_fee)
        return PoolCreationResult(
            tx_hash=result.tx_hash,
            ledger_index=result.ledger_index,
            asset_id=asset.asset_id,
            token_amount=token_amount,
            xrp_amount=xrp_amount,
            trading_fee=trading_fee,
            creation_cost=creation_cost,
            initial_price_xrp=xrp_amount / token_amount,
            pool=pool,
        )

    async def deposit(
        self,
        token_id: str,
        mode: DepositMode = DepositMode.BALANCED,
        token_amount: Optional[Decimal] = None,
        xrp_amount: Optional[Decimal] = None,
        lp_tokens_out: Optional[Decimal] = None,
        slippage_percent: Decimal = DEFAULT_SLIPPAGE,
    ) -> DepositResult:
        """
        Add liquidity to an existing pool.

        Raises:
            ValidationError: If the selected mode's amount is missing
            PoolNotFoundError: If no pool exists
            InsufficientBalanceError: If the operator cannot fund the deposit
        """
        asset = parse_asset(token_id)
        mode = DepositMode(mode)
        slippage = _check_slippage(slippage_percent)
        if mode is DepositMode.BALANCED:
            token_amount = _require_amount(token_amount, "token_amount", mode)
            xrp_amount = _require_amount(xrp_amount, "xrp_amount", mode)
        elif mode is DepositMode.SINGLE_ASSET_TOKEN:
            token_amount = _require_amount(token_amount, "token_amount", mode)
            xrp_amount = None
        else:
            xrp_amount = _require_amount(xrp_amount, "xrp_amount", mode)
            token_amount = None
        if lp_tokens_out is not None and Decimal(lp_tokens_out) <= 0:
            raise ValidationError("lp_tokens_out must be greater than 0", field="lp_tokens_out")

        pool = await self._pool_for(asset)
        view = await self._operator_view()
        if token_amount is not None:
            self._require_token(view, asset, token_amount)
        if xrp_amount is not None:
            self._require_xrp(view, xrp_amount)

        token_pool = pool.reserve_of(asset)
        xrp_pool = pool.reserve_of(BASE)
        lp_out = (pool.lp_token, Decimal(lp_tokens_out)) if lp_tokens_out is not None else None
        if mode is DepositMode.BALANCED:
            expected = amm_math.balanced_deposit_lp_tokens(
                token_amount, xrp_amount, token_pool, xrp_pool, pool.total_lp_tokens
            )
            amounts: Sequence[Tuple[AssetRef, Decimal]] = [(asset, token_amount), (BASE, xrp_amount)]
            flags = TF_LP_TOKEN if lp_out else TF_TWO_ASSET
        else:
            side, amount, side_pool = (
                (asset, token_amount, token_pool) if mode is DepositMode.SINGLE_ASSET_TOKEN
                else (BASE, xrp_amount, xrp_pool)
            )
            expected = amm_math.lp_tokens_from_deposit(
                amount, side_pool, pool.total_lp_tokens, balanced=False, fee_bps=pool.trading_fee
            )
            amounts = [(side, amount)]
            flags = TF_ONE_ASSET_LP_TOKEN if lp_out else TF_SINGLE_ASSET

        lp_before = view.balance_of(pool.lp_token)
        tx = build_amm_deposit(self.operator.address, (asset, BASE), flags, amounts, lp_token_out=lp_out)
        result = await self.gateway.submit(tx, self.operator)

        after = await self._operator_view()
        pool_after = await self.gateway.get_amm_pool(asset, BASE)
        lp_after = after.balance_of(pool.lp_token)
        received = lp_after - lp_before
        warnings: List[str] = []
        if received < amm_math.minimum_output(expected, slippage):
            warnings.append(
                f"Received {received} LP tokens, below the expected {expected} by more than {slippage}%"
            )
        total_after = pool_after.total_lp_tokens if pool_after else pool.total_lp_tokens
        log.info("Deposited into %s/XRP pool (%s, %s): +%s LP", asset.currency, mode.value, result.tx_hash, received)
        return DepositResult(
            tx_hash=result.tx_hash,
            ledger_index=result.ledger_index,
            mode=mode,
            expected_lp_tokens=expected,
            lp_tokens_received=received,
            lp_balance=lp_after,
            pool_share_percent=(lp_after / total_after * 100) if total_after else Decimal(0),
            warnings=warnings,
        )

    async def withdraw(
        self,
        token_id: str,
        mode: WithdrawMode = WithdrawMode.BOTH_ASSETS,
        lp_tokens: Optional[Decimal] = None,
        token_amount: Optional[Decimal] = None,
        xrp_amount: Optional[Decimal] = None,
        percentage: Optional[Decimal] = None,
    ) -> WithdrawResult:
        """
        Remove liquidity. Defaults to redeeming the whole LP balance.

        Single-asset requests are checked against the proportional output
        with 10% slack; this is a sanity guard only.

        Raises:
            ValidationError: On missing or out-of-range amounts
            PoolNotFoundError: If no pool exists
            InsufficientBalanceError: If the LP balance is zero or too small
        """
        asset = parse_asset(token_id)
        mode = WithdrawMode(mode)
        if mode is WithdrawMode.LP_TOKENS_AMOUNT:
            lp_tokens = _require_amount(lp_tokens, "lp_tokens", mode)
        elif lp_tokens is not None:
            lp_tokens = _require_amount(lp_tokens, "lp_tokens", mode)
        if percentage is not None and not 0 < Decimal(percentage) <= 100:
            raise ValidationError("percentage must be greater than 0 and at most 100", field="percentage")

        pool = await self._pool_for(asset)
        view = await self._operator_view()
        lp_balance = view.balance_of(pool.lp_token)
        label = f"{asset.currency}/XRP LP"
        if lp_balance <= 0:
            raise InsufficientBalanceError(label, Decimal(0), lp_tokens or Decimal(0), note="no liquidity position in this pool")

        if lp_tokens is not None:
            redeem = lp_tokens
        elif percentage is not None:
            redeem = lp_balance * Decimal(percentage) / 100
        else:
            redeem = lp_balance
        if redeem > lp_balance:
            raise InsufficientBalanceError(label, lp_balance, redeem)

        token_pool = pool.reserve_of(asset)
        xrp_pool = pool.reserve_of(BASE)
        expected_token, expected_xrp = amm_math.assets_from_lp_tokens(
            redeem, pool.total_lp_tokens, token_pool, xrp_pool
        )

        amounts: Sequence[Tuple[AssetRef, Decimal]] = ()
        lp_in: Optional[Tuple[AssetRef, Decimal]] = None
        if mode in (WithdrawMode.BOTH_ASSETS, WithdrawMode.LP_TOKENS_AMOUNT):
            flags = TF_LP_TOKEN
            lp_in = (pool.lp_token, redeem)
        else:
            side, requested, expected_side = (
                (asset, token_amount, expected_token) if mode is WithdrawMode.SINGLE_ASSET_TOKEN
                else (BASE, xrp_amount, expected_xrp)
            )
            requested = Decimal(requested) if requested is not None else expected_side
            if requested <= 0:
                raise ValidationError("Requested amount must be greater than 0", field="amount")
            ceiling = expected_side * SINGLE_ASSET_SLACK
            if requested > ceiling:
                raise ValidationError(
                    f"Requested {side.currency} amount {requested} exceeds the expected maximum {ceiling}",
                    field="amount",
                )
            flags = TF_SINGLE_ASSET
            amounts = [(side, requested)]

        tx = build_amm_withdraw(self.operator.address, (asset, BASE), flags, amounts, lp_token_in=lp_in)
        result = await self.gateway.submit(tx, self.operator)

        after = await self._operator_view()
        pool_after = await self.gateway.get_amm_pool(asset, BASE)
        log.info("Withdrew from %s/XRP pool (%s, %s)", asset.currency, mode.value, result.tx_hash)
        return WithdrawResult(
            tx_hash=result.tx_hash,
            ledger_index=result.ledger_index,
            mode=mode,
            lp_tokens_redeemed=lp_balance - after.balance_of(pool.lp_token),
            expected_token_out=expected_token,
            expected_xrp_out=expected_xrp,
            token_balance_change=after.balance_of(asset) - view.balance_of(asset),
            xrp_balance_change=after.xrp_balance - view.xrp_balance,
            remaining_lp_balance=after.balance_of(pool.lp_token),
            pool_remaining=pool_after is not None,
        )

    def _parse_swap_asset(self, text: str, name: str) -> AssetRef:
        asset = AssetRef.parse(text)
        if asset is None:
            raise ValidationError(f"{name} must be XRP or CURRENCY.ISSUER_ADDRESS", field=name)
        if not asset.is_base:
            require_address(asset.issuer)
        return asset

    async def quote_swap(
        self,
        from_asset: str,
        to_asset: str,
        amount: Optional[Decimal] = None,
        desired_output: Optional[Decimal] = None,
        slippage_percent: Decimal = DEFAULT_SLIPPAGE,
    ) -> SwapQuote:
        """
        Price a swap against current pool reserves without submitting.

        Token-to-token swaps are routed through XRP (two pools).

        Raises:
            ValidationError: On bad input, or an exact output the pools cannot supply
            InvalidPairError: If both sides are the same asset
            PoolNotFoundError: If a pool on the route is missing
        """
        src = self._parse_swap_asset(from_asset, "from_asset")
        dst = self._parse_swap_asset(to_asset, "to_asset")
        if src == dst:
            raise InvalidPairError("Cannot swap an asset for itself", field="to_asset")
        if (amount is None) == (desired_output is None):
            raise ValidationError("Provide exactly one of amount or desired_output", field="amount")
        slippage = _check_slippage(slippage_percent)

        route = [src, dst] if (src.is_base or dst.is_base) else [src, BASE, dst]
        hops = list(zip(route, route[1:]))
        pools = [await self._pool_for(b if a.is_base else a) for a, b in hops]

        if amount is not None:
            amount_in = Decimal(amount)
            if amount_in <= 0:
                raise ValidationError("amount must be greater than 0", field="amount")
            running = amount_in
            for (sell, _), pool in zip(hops, pools):
                pool_in, pool_out = pool.reserves(sell)
                running = amm_math.swap_in(running, pool_in, pool_out, pool.trading_fee)
            expected = running
            minimum = amm_math.minimum_output(expected, slippage)
            send_max = amount_in
        else:
            expected = Decimal(desired_output)
            if expected <= 0:
                raise ValidationError("desired_output must be greater than 0", field="desired_output")
            running = expected
            for (sell, _), pool in reversed(list(zip(hops, pools))):
                pool_in, pool_out = pool.reserves(sell)
                running = amm_math.swap_out(running, pool_in, pool_out, pool.trading_fee)
                if not amm_math.is_executable(running):
                    raise ValidationError(
                        "Requested output exceeds what the pool reserves can supply", field="desired_output"
                    )
            amount_in = running
            minimum = expected
            send_max = amount_in * (1 + slippage / 100)

        first_in, _ = pools[0].reserves(hops[0][0])
        return SwapQuote(
            from_asset=src.asset_id,
            to_asset=dst.asset_id,
            amount_in=amount_in,
            expected_output=expected,
            minimum_output=minimum,
            send_max=send_max,
            price_impact_percent=amm_math.price_impact(amount_in, first_in),
            route=[a.asset_id for a in route],
            exact_output=desired_output is not None,
        )

    async def swap(
        self,
        from_asset: str,
        to_asset: str,
        amount: Optional[Decimal] = None,
        desired_output: Optional[Decimal] = None,
        slippage_percent: Decimal = DEFAULT_SLIPPAGE,
        memo: Optional[str] = None,
    ) -> SwapResult:
        """
        Execute a swap through AMM pools.

        Raises:
            ValidationError / InvalidPairError / PoolNotFoundError: See quote_swap
            InsufficientBalanceError: If the operator cannot fund the input
            LedgerRejectionError: If the ledger cannot meet the minimum output
        """
        quote = await self.quote_swap(from_asset, to_asset, amount, desired_output, slippage_percent)
        slippage = Decimal(slippage_percent)
        src = AssetRef.parse(quote.from_asset)
        dst = AssetRef.parse(quote.to_asset)

        view = await self._operator_view()
        if src.is_base:
            self._require_xrp(view, quote.send_max)
        else:
            self._require_token(view, src, quote.send_max)

        tx = build_swap_payment(
            self.operator.address,
            send=src,
            send_max=quote.send_max,
            deliver=dst,
            deliver_amount=quote.expected_output,
            deliver_min=None if quote.exact_output else quote.minimum_output,
            memos=text_memo(sanitize_memo(memo), MEMO_TYPE_SWAP),
        )
        result = await self.gateway.submit(tx, self.operator)

        warnings: List[str] = []
        actual: Optional[Decimal] = None
        try:
            _, actual = parse_ledger_amount(result.delivered_amount)
        except (ValueError, TypeError):
            warnings.append("Delivered amount was not reported; realized slippage unknown")

        realized = amm_math.realized_slippage(quote.expected_output, actual) if actual is not None else None
        within = realized is None or realized <= slippage
        if not within:
            warnings.append(f"Realized slippage {realized:.4f}% exceeded tolerance {slippage}%")
        log.info(
            "Swapped %s %s for %s %s (%s)",
            quote.amount_in, quote.from_asset, actual, quote.to_asset, result.tx_hash,
        )
        return SwapResult(
            tx_hash=result.tx_hash,
            ledger_index=result.ledger_index,
            quote=quote,
            actual_output=actual,
            realized_slippage_percent=realized,
            within_tolerance=within,
            warnings=warnings,
        )
