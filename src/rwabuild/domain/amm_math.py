# src/rwabuild/domain/amm_math.py
"""
AMM Math - Constant-Product Pool Calculations

Pure, deterministic functions for swap quotes, LP token issuance and
redemption, price impact and auction bids. Fees are expressed in units of
1/100000 (500 = 0.5%), matching the ledger's ``TradingFee`` field.

All arithmetic is ``Decimal``; nothing here touches the network.

Files that USE this module:
- rwabuild.application.amm_service (expected amounts and slippage bounds)
- tests.test_amm_math (invariants and boundary cases)

Files that this module USES:
- rwabuild.domain.asset_id (AssetRef for pair validation)
- rwabuild.domain.errors (InvalidPairError)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Tuple

from rwabuild.domain.asset_id import AssetRef
from rwabuild.domain.errors import InvalidPairError

FEE_DENOMINATOR = Decimal(100000)

MIN_CREATION_FEE_XRP = Decimal("0.2")
MAX_TRADING_FEE = 1000
DEFAULT_TRADING_FEE = 500
MIN_BID_INCREMENT = 1000


def _fee_fraction(fee_bps: int) -> Decimal:
    return Decimal(fee_bps) / FEE_DENOMINATOR


def swap_out(desired_out: Decimal, pool_in: Decimal, pool_out: Decimal, fee_bps: int) -> Decimal:
    """
    Input required to take ``desired_out`` from the pool.

    Args:
        desired_out: Amount wanted from the output side
        pool_in: Reserve of the asset being sold
        pool_out: Reserve of the asset being bought
        fee_bps: Trading fee (1/100000 units)

    Returns:
        Required input. Infinite when ``desired_out == pool_out`` and negative
        above it; callers must check with ``is_executable`` before submitting.
    """
    remaining = pool_out - desired_out
    if remaining == 0:
        return Decimal("Infinity")
    return (desired_out * pool_in / remaining) * (1 + _fee_fraction(fee_bps))


def swap_in(amount_in: Decimal, pool_in: Decimal, pool_out: Decimal, fee_bps: int) -> Decimal:
    """
    Output received for selling ``amount_in`` into the pool.

    The fee is taken from the input before the constant-product step, so the
    result is monotonic in ``amount_in`` and always below ``pool_out``.
    """
    in_after_fee = amount_in * (1 - _fee_fraction(fee_bps))
    return in_after_fee * pool_out / (pool_in + in_after_fee)


def lp_tokens_from_deposit(
    deposit_amount: Decimal,
    pool_balance: Decimal,
    total_lp_tokens: Decimal,
    balanced: bool = True,
    fee_bps: int = 0,
) -> Decimal:
    """
    LP tokens minted for a deposit.

    The first deposit into an empty pool seeds ``sqrt(deposit_amount)``.
    Later deposits mint proportionally; single-asset deposits pay the
    trading fee because they move the pool ratio.
    """
    if total_lp_tokens == 0:
        return deposit_amount.sqrt()
    lp_out = deposit_amount / pool_balance * total_lp_tokens
    if not balanced:
        lp_out *= 1 - _fee_fraction(fee_bps)
    return lp_out


def balanced_deposit_lp_tokens(
    amount1: Decimal,
    amount2: Decimal,
    pool1: Decimal,
    pool2: Decimal,
    total_lp_tokens: Decimal,
) -> Decimal:
    """LP tokens for a two-sided deposit; the smaller share wins so LP tokens are never over-claimed."""
    share = min(amount1 / pool1, amount2 / pool2)
    return share * total_lp_tokens


def assets_from_lp_tokens(
    lp_in: Decimal, total_lp_tokens: Decimal, pool1: Decimal, pool2: Decimal
) -> Tuple[Decimal, Decimal]:
    """
    Proportional redemption of ``lp_in`` LP tokens.

    Raises:
        ValueError: If the pool has no LP tokens outstanding
    """
    if total_lp_tokens <= 0:
        raise ValueError("Pool has no LP tokens outstanding")
    share = lp_in / total_lp_tokens
    return pool1 * share, pool2 * share


def price_impact(trade_amount: Decimal, pool_balance: Decimal) -> Decimal:
    """Percent of the pool moved by a trade."""
    return trade_amount / (pool_balance + trade_amount) * 100


def minimum_auction_bid(current_bid: Decimal, increment_bps: int = MIN_BID_INCREMENT) -> Decimal:
    return current_bid + current_bid * Decimal(increment_bps) / FEE_DENOMINATOR


def minimum_output(expected: Decimal, slippage_percent: Decimal) -> Decimal:
    return expected * (1 - slippage_percent / 100)


def realized_slippage(expected: Decimal, actual: Decimal) -> Decimal:
    """Percent deviation of the settled amount from the quote."""
    if expected == 0:
        return Decimal(0)
    return abs(expected - actual) / expected * 100


def is_executable(amount: Decimal) -> bool:
    """True when a computed amount can be submitted (finite and positive)."""
    return amount.is_finite() and amount > 0


def validate_asset_pair(asset1: AssetRef, asset2: AssetRef) -> None:
    """
    Raises:
        InvalidPairError: If both sides are the base currency or the same asset
    """
    if asset1.is_base and asset2.is_base:
        raise InvalidPairError("Cannot create a pool of XRP against XRP")
    if asset1 == asset2:
        raise InvalidPairError("Pool assets must be different")
