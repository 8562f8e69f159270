# tests/test_amm_service.py
"""
AMM Service Tests - Unit Tests for Pool Lifecycle and Swaps

Covers pool creation preconditions, per-mode deposit and withdrawal
validation, the single-asset sanity ceiling, swap routing, ledger-enforced
minimum output and realized slippage warnings.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- rwabuild.application.amm_service (AmmService)
- rwabuild.adapters.ledger.transactions (flag constants)
- tests.conftest (FakeLedger and pool helpers)
- pytest (testing framework)
"""
import asyncio
from decimal import Decimal

import pytest  # Testing framework for writing and running tests

from conftest import AMM_ACCOUNT, BLD, ISSUER, LP_CURRENCY, OTHER_ISSUER, line, make_pool
from rwabuild.adapters.ledger.transactions import (
    TF_LP_TOKEN,
    TF_PARTIAL_PAYMENT,
    TF_SINGLE_ASSET,
    TF_TWO_ASSET,
)
from rwabuild.application.amm_service import AmmService, DepositMode, WithdrawMode
from rwabuild.application.portfolio_service import PortfolioAggregator
from rwabuild.domain.asset_id import AssetRef
from rwabuild.domain.errors import (
    InsufficientBalanceError,
    InvalidPairError,
    PoolNotFoundError,
    ValidationError,
)

TOKEN_ID = BLD.asset_id
GLD = AssetRef("GLD", OTHER_ISSUER)


def _setup(ledger, operator, xrp="1000", bld="1000", lp="100", pool=True):
    lines = [line(ISSUER, "BLD", bld)]
    if lp is not None:
        lines.append(line(AMM_ACCOUNT, LP_CURRENCY, lp))
    ledger.fund(operator.address, xrp, lines=lines)
    if pool:
        ledger.add_pool(make_pool())
    return AmmService(ledger, PortfolioAggregator(ledger), operator)


def _set_lp(ledger, operator, lp, bld="1000"):
    def update(tx):
        ledger.lines[operator.address] = [line(ISSUER, "BLD", bld), line(AMM_ACCOUNT, LP_CURRENCY, lp)]
    return update


class TestPoolInfo:
    def test_price_and_position(self, ledger, operator):
        service = _setup(ledger, operator)
        info = asyncio.run(service.get_pool_info(TOKEN_ID))
        assert info.token_price_xrp == Decimal("0.5")
        assert info.position.lp_balance == 100

    def test_missing_pool(self, ledger, operator):
        service = _setup(ledger, operator, pool=False)
        with pytest.raises(PoolNotFoundError):
            asyncio.run(service.get_pool_info(TOKEN_ID))


class TestCreatePool:
    def test_creation_pays_live_reserve_as_fee(self, ledger, operator):
        service = _setup(ledger, operator, pool=False, lp=None)
        result = asyncio.run(service.create_pool(TOKEN_ID, Decimal(500), Decimal(100), trading_fee=300))
        tx = ledger.submitted[0]
        assert tx.fee == "2000000"
        assert tx.trading_fee == 300
        assert result.creation_cost == 2
        assert result.initial_price_xrp == Decimal("0.2")

    def test_existing_pool_rejected(self, ledger, operator):
        service = _setup(ledger, operator)
        with pytest.raises(ValidationError):
            asyncio.run(service.create_pool(TOKEN_ID, Decimal(500), Decimal(100)))
        assert ledger.submitted == []

    def test_xrp_must_cover_reserve_and_buffer(self, ledger, operator):
        service = _setup(ledger, operator, xrp="100", pool=False)
        with pytest.raises(InsufficientBalanceError) as exc:
            asyncio.run(service.create_pool(TOKEN_ID, Decimal(500), Decimal(95)))
        assert exc.value.requested == 107
        assert ledger.submitted == []

    def test_trading_fee_bounds(self, ledger, operator):
        service = _setup(ledger, operator, pool=False)
        with pytest.raises(ValidationError):
            asyncio.run(service.create_pool(TOKEN_ID, Decimal(500), Decimal(100), trading_fee=1001))


class TestDeposit:
    def test_balanced_requires_both_amounts(self, ledger, operator):
        service = _setup(ledger, operator)
        with pytest.raises(ValidationError) as exc:
            asyncio.run(service.deposit(TOKEN_ID, DepositMode.BALANCED, token_amount=Decimal(100)))
        assert exc.value.field == "xrp_amount"
        assert ledger.submitted == []

    def test_balanced_deposit(self, ledger, operator):
        service = _setup(ledger, operator)
        ledger.on_submit = _set_lp(ledger, operator, "241.42")
        result = asyncio.run(service.deposit(TOKEN_ID, "balanced", token_amount=Decimal(200), xrp_amount=Decimal(100)))
        tx = ledger.submitted[0]
        assert tx.flags == TF_TWO_ASSET
        assert result.expected_lp_tokens == Decimal("0.02") * 7071
        assert result.lp_tokens_received == Decimal("141.42")
        assert result.warnings == []

    def test_single_asset_shortfall_in_lp_is_a_warning(self, ledger, operator):
        service = _setup(ledger, operator)
        ledger.on_submit = _set_lp(ledger, operator, "150")
        result = asyncio.run(service.deposit(TOKEN_ID, DepositMode.SINGLE_ASSET_TOKEN, token_amount=Decimal(100)))
        assert ledger.submitted[0].flags == TF_SINGLE_ASSET
        assert ledger.submitted[0].amount2 is None
        assert result.lp_tokens_received == 50
        assert len(result.warnings) == 1

    def test_single_xrp_keeps_operating_reserve(self, ledger, operator):
        service = _setup(ledger, operator, xrp="100")
        with pytest.raises(InsufficientBalanceError):
            asyncio.run(service.deposit(TOKEN_ID, DepositMode.SINGLE_ASSET_XRP, xrp_amount=Decimal(95)))
        assert ledger.submitted == []


class TestWithdraw:
    def test_no_position(self, ledger, operator):
        service = _setup(ledger, operator, lp=None)
        with pytest.raises(InsufficientBalanceError):
            asyncio.run(service.withdraw(TOKEN_ID))

    def test_percentage_of_position(self, ledger, operator):
        service = _setup(ledger, operator)
        ledger.on_submit = _set_lp(ledger, operator, "50")
        result = asyncio.run(service.withdraw(TOKEN_ID, WithdrawMode.BOTH_ASSETS, percentage=Decimal(50)))
        tx = ledger.submitted[0]
        assert tx.flags == TF_LP_TOKEN
        assert tx.lp_token_in.value == "50"
        assert result.lp_tokens_redeemed == 50
        assert result.remaining_lp_balance == 50

    def test_exact_lp_mode_requires_amount(self, ledger, operator):
        service = _setup(ledger, operator)
        with pytest.raises(ValidationError) as exc:
            asyncio.run(service.withdraw(TOKEN_ID, WithdrawMode.LP_TOKENS_AMOUNT))
        assert exc.value.field == "lp_tokens"

    def test_more_lp_than_held(self, ledger, operator):
        service = _setup(ledger, operator)
        with pytest.raises(InsufficientBalanceError):
            asyncio.run(service.withdraw(TOKEN_ID, WithdrawMode.LP_TOKENS_AMOUNT, lp_tokens=Decimal(101)))

    def test_single_asset_request_above_ceiling(self, ledger, operator):
        service = _setup(ledger, operator)
        # proportional share of 100 LP is about 141.4 BLD; 10% slack allows about 155.6
        with pytest.raises(ValidationError):
            asyncio.run(service.withdraw(TOKEN_ID, WithdrawMode.SINGLE_ASSET_TOKEN, token_amount=Decimal(200)))
        assert ledger.submitted == []

    def test_single_asset_within_ceiling(self, ledger, operator):
        service = _setup(ledger, operator)
        asyncio.run(service.withdraw(TOKEN_ID, WithdrawMode.SINGLE_ASSET_TOKEN, token_amount=Decimal(150)))
        tx = ledger.submitted[0]
        assert tx.flags == TF_SINGLE_ASSET
        assert tx.amount.value == "150"
        assert tx.lp_token_in is None


class TestSwap:
    def test_exact_input_sets_deliver_min(self, ledger, operator):
        service = _setup(ledger, operator)
        ledger.delivered = {"currency": "BLD", "issuer": ISSUER, "value": "195"}
        result = asyncio.run(service.swap("XRP", TOKEN_ID, amount=Decimal(100)))

        tx = ledger.submitted[0]
        assert tx.flags == TF_PARTIAL_PAYMENT
        assert tx.send_max == "100000000"
        assert tx.destination == operator.address
        assert Decimal(tx.deliver_min.value) == pytest.approx(Decimal("191.2148"), abs=Decimal("0.001"))
        assert result.actual_output == 195
        assert result.within_tolerance
        assert result.warnings == []

    def test_realized_slippage_beyond_tolerance_warns(self, ledger, operator):
        service = _setup(ledger, operator)
        ledger.delivered = {"currency": "BLD", "issuer": ISSUER, "value": "150"}
        result = asyncio.run(service.swap("XRP", TOKEN_ID, amount=Decimal(100), slippage_percent=Decimal(1)))
        assert not result.within_tolerance
        assert "exceeded tolerance" in result.warnings[0]

    def test_missing_delivered_amount(self, ledger, operator):
        service = _setup(ledger, operator)
        result = asyncio.run(service.swap(TOKEN_ID, "XRP", amount=Decimal(10)))
        assert result.actual_output is None
        assert len(result.warnings) == 1

    def test_token_to_token_routes_through_xrp(self, ledger, operator):
        service = _setup(ledger, operator)
        ledger.add_pool(make_pool(token=GLD, token_reserve="2000", xrp_reserve="4000"))
        quote = asyncio.run(service.quote_swap(TOKEN_ID, GLD.asset_id, amount=Decimal(100)))
        assert quote.route == [TOKEN_ID, "XRP", GLD.asset_id]
        assert 0 < quote.expected_output < 100

    def test_xrp_input_keeps_operating_reserve(self, ledger, operator):
        service = _setup(ledger, operator, xrp="50")
        with pytest.raises(InsufficientBalanceError):
            asyncio.run(service.swap("XRP", TOKEN_ID, amount=Decimal(45)))
        assert ledger.submitted == []

    def test_input_validation(self, ledger, operator):
        service = _setup(ledger, operator)
        with pytest.raises(InvalidPairError):
            asyncio.run(service.quote_swap(TOKEN_ID, TOKEN_ID, amount=Decimal(1)))
        with pytest.raises(ValidationError):
            asyncio.run(service.quote_swap("XRP", TOKEN_ID, amount=Decimal(1), slippage_percent=Decimal(60)))
        with pytest.raises(ValidationError):
            asyncio.run(service.quote_swap("XRP", TOKEN_ID))
