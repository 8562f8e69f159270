# src/rwabuild/domain/calculations.py
"""
Investment Calculations - Yield, Pricing and Portfolio Math

Decimal helpers used by yield planning and portfolio reporting: per-period
yield schedules, token pricing, compound growth, annualized returns and
transaction fee estimates.

Files that USE this module:
- rwabuild.application.issuance_service (yield distribution planning)
- rwabuild.adapters.tools.registry (rwa_calculate_* tools)
- tests.test_calculations

Files that this module USES:
- None (pure functions)
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_DOWN, Decimal
from enum import Enum
from typing import Iterable, List, Optional

DROPS_PER_XRP = Decimal(1_000_000)
STANDARD_FEE_XRP = Decimal("0.000012")


class PayoutFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"

    @property
    def periods_per_year(self) -> int:
        return 12 if self is PayoutFrequency.MONTHLY else 4

    @property
    def months(self) -> int:
        return 12 // self.periods_per_year


@dataclass(frozen=True)
class YieldDistribution:
    """Per-period yield schedule. ``rate_per_period`` is a percentage."""
    periods_per_year: int
    rate_per_period: Decimal
    amount_per_period: Decimal
    total_annual_amount: Decimal


@dataclass(frozen=True)
class InvestmentYield:
    annual_yield: Decimal
    periodic_yield: Decimal
    periods_per_year: int


@dataclass(frozen=True)
class CompoundYield:
    final_amount: Decimal
    total_gain: Decimal
    effective_annual_rate: Decimal


@dataclass(frozen=True)
class TokenPurchase:
    """Whole tokens affordable for an investment and what they cost."""
    tokens: int
    cost: Decimal
    price_per_token: Decimal


@dataclass(frozen=True)
class Investment:
    amount: Decimal
    current_value: Decimal
    annual_yield: Decimal
    weight: Optional[Decimal] = None


@dataclass(frozen=True)
class PortfolioMetrics:
    total_investment: Decimal
    current_value: Decimal
    total_return: Decimal
    total_return_percentage: Decimal
    weighted_average_yield: Decimal
    positions: int
    largest_position_percentage: Decimal


@dataclass(frozen=True)
class TransactionFees:
    total_fees: Decimal
    fee_per_transaction: Decimal
    fees_in_drops: int


def calculate_yield_distribution(
    principal: Decimal, annual_rate: Decimal, frequency: PayoutFrequency
) -> YieldDistribution:
    """
    Split an annual yield into payout periods.

    Args:
        principal: Asset value the yield applies to
        annual_rate: Annual rate in percent
        frequency: Monthly or quarterly payouts

    Returns:
        YieldDistribution; e.g. (100000, 8, quarterly) -> 4 periods of 2% = 2000
    """
    frequency = PayoutFrequency(frequency)
    periods = frequency.periods_per_year
    rate_fraction = Decimal(annual_rate) / periods / 100
    amount_per_period = Decimal(principal) * rate_fraction
    return YieldDistribution(
        periods_per_year=periods,
        rate_per_period=rate_fraction * 100,
        amount_per_period=amount_per_period,
        total_annual_amount=amount_per_period * periods,
    )


def calculate_token_price(asset_value: Decimal, token_supply: int) -> Decimal:
    return Decimal(asset_value) / Decimal(token_supply)


def calculate_tokens_from_investment(
    investment: Decimal, asset_value: Decimal, token_supply: int
) -> TokenPurchase:
    price = calculate_token_price(asset_value, token_supply)
    tokens = int((Decimal(investment) / price).to_integral_value(rounding=ROUND_DOWN))
    return TokenPurchase(tokens=tokens, cost=price * tokens, price_per_token=price)


def calculate_investment_from_tokens(
    token_amount: Decimal, asset_value: Decimal, token_supply: int
) -> Decimal:
    return Decimal(token_amount) * calculate_token_price(asset_value, token_supply)


def calculate_yield_on_investment(
    investment: Decimal, annual_yield_rate: Decimal, frequency: PayoutFrequency
) -> InvestmentYield:
    frequency = PayoutFrequency(frequency)
    annual = Decimal(investment) * Decimal(annual_yield_rate) / 100
    return InvestmentYield(
        annual_yield=annual,
        periodic_yield=annual / frequency.periods_per_year,
        periods_per_year=frequency.periods_per_year,
    )


def calculate_compound_yield(
    principal: Decimal, annual_rate: Decimal, years: int, compounding_frequency: int = 1
) -> CompoundYield:
    """
    Compound growth of ``principal`` over ``years``.

    Raises:
        ValueError: If years or compounding frequency is not positive
    """
    if years <= 0 or compounding_frequency <= 0:
        raise ValueError("years and compounding_frequency must be positive")
    principal = Decimal(principal)
    rate = Decimal(annual_rate) / 100
    final = principal * (1 + rate / compounding_frequency) ** (compounding_frequency * years)
    effective = (final / principal) ** (Decimal(1) / years) - 1
    return CompoundYield(
        final_amount=final,
        total_gain=final - principal,
        effective_annual_rate=effective * 100,
    )


def calculate_break_even_time(annual_yield_rate: Decimal) -> Optional[Decimal]:
    """Years of yield needed to recover the principal; None for a zero rate."""
    rate = Decimal(annual_yield_rate)
    if rate <= 0:
        return None
    return Decimal(100) / rate


def calculate_break_even_price(
    initial_investment: Decimal, annual_yield: Decimal, holding_period_years: Decimal
) -> Decimal:
    """
    Exit price at which a position held for ``holding_period_years`` breaks
    even once its collected yield is counted. Floored at zero.
    """
    initial_investment = Decimal(initial_investment)
    collected = initial_investment * Decimal(annual_yield) / 100 * Decimal(holding_period_years)
    return max(Decimal(0), initial_investment - collected)


def calculate_annualized_return(
    initial_value: Decimal, final_value: Decimal, holding_period_years: Decimal
) -> Decimal:
    initial_value = Decimal(initial_value)
    years = Decimal(holding_period_years)
    if years <= 0 or initial_value <= 0:
        return Decimal(0)
    return ((Decimal(final_value) / initial_value) ** (1 / years) - 1) * 100


def calculate_portfolio_metrics(investments: Iterable[Investment]) -> PortfolioMetrics:
    items: List[Investment] = list(investments)
    total_investment = sum((i.amount for i in items), Decimal(0))
    current_value = sum((i.current_value for i in items), Decimal(0))
    total_return = current_value - total_investment

    weighted_yield = Decimal(0)
    for item in items:
        if item.weight is not None:
            weight = item.weight
        elif total_investment > 0:
            weight = item.amount / total_investment
        else:
            weight = Decimal(0)
        weighted_yield += item.annual_yield * weight

    largest = max((i.current_value for i in items), default=Decimal(0))
    return PortfolioMetrics(
        total_investment=total_investment,
        current_value=current_value,
        total_return=total_return,
        total_return_percentage=(total_return / total_investment * 100) if total_investment > 0 else Decimal(0),
        weighted_average_yield=weighted_yield,
        positions=len(items),
        largest_position_percentage=(largest / current_value * 100) if current_value > 0 else Decimal(0),
    )


def calculate_transaction_fees(
    number_of_transactions: int, fee_per_transaction: Decimal = STANDARD_FEE_XRP
) -> TransactionFees:
    total = Decimal(fee_per_transaction) * number_of_transactions
    return TransactionFees(
        total_fees=total,
        fee_per_transaction=Decimal(fee_per_transaction),
        fees_in_drops=int(total * DROPS_PER_XRP),
    )


def next_payment_date(start: date, frequency: PayoutFrequency) -> date:
    """One payout period after ``start``, clamped to the end of the target month."""
    months = PayoutFrequency(frequency).months
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
