# tests/test_portfolio_service.py
"""
Portfolio Aggregator Tests - Unit Tests for Holdings Classification

Covers classification from issuer history, valuation, diversification
counts, per-holding lookup failures, idempotence and the token supply and
holder queries.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- rwabuild.application.portfolio_service (PortfolioAggregator)
- tests.conftest (FakeLedger and helpers)
- pytest (testing framework)
"""
import asyncio
from decimal import Decimal

import pytest  # Testing framework for writing and running tests

from conftest import HOLDER_A, HOLDER_B, ISSUER, OTHER_ISSUER, line, metadata_for, tokenization_tx
from rwabuild.application.portfolio_service import PortfolioAggregator
from rwabuild.domain.errors import (
    AccountNotFoundError,
    AssetNotFoundError,
    InvalidAddressError,
    LedgerUnavailableError,
    ValidationError,
)
from rwabuild.domain.models import AssetType


def _seed_portfolio(ledger):
    ledger.fund(HOLDER_A, "250", lines=[
        line(ISSUER, "BLD", "50"),
        line(ISSUER, "TBL", "-20"),
        line(OTHER_ISSUER, "FOO", "7"),
    ])
    ledger.history[ISSUER] = [
        tokenization_tx(metadata_for("BLD", total_value="1000000", total_supply=10000)),
        tokenization_tx(metadata_for("TBL", asset_type=AssetType.TREASURY, total_value="5000", total_supply=1000)),
    ]


class TestGetHoldings:
    def test_classifies_and_values_holdings(self, ledger):
        _seed_portfolio(ledger)
        snapshot = asyncio.run(PortfolioAggregator(ledger).get_holdings(HOLDER_A))

        assert snapshot.xrp_balance == 250
        assert snapshot.reserve_healthy
        by_currency = {h.currency: h for h in snapshot.holdings}
        assert by_currency["BLD"].is_rwa_token
        assert by_currency["BLD"].estimated_value == 5000
        # holder-side balance is reported as absolute value
        assert by_currency["TBL"].balance == 20
        assert by_currency["TBL"].estimated_value == 100
        assert not by_currency["FOO"].is_rwa_token
        assert by_currency["FOO"].estimated_value == 0
        assert snapshot.total_rwa_value == 5100
        assert snapshot.diversification == {
            "real_estate": 1, "treasury": 1, "commodity": 0, "bond": 0, "other_tokens": 1,
        }
        assert snapshot.failed_lookups == 0

    def test_lookup_failure_marks_only_that_holding_unclassified(self, ledger):
        _seed_portfolio(ledger)
        ledger.history_errors[OTHER_ISSUER] = LedgerUnavailableError("account_tx failed: timeout")
        snapshot = asyncio.run(PortfolioAggregator(ledger).get_holdings(HOLDER_A))
        assert snapshot.failed_lookups == 1
        assert len(snapshot.rwa_holdings) == 2
        assert snapshot.total_rwa_value == 5100

    def test_one_lookup_per_distinct_asset(self, ledger):
        _seed_portfolio(ledger)
        asyncio.run(PortfolioAggregator(ledger, lookup_concurrency=1).get_holdings(HOLDER_A))
        assert len(ledger.history_calls) == 3

    def test_repeated_calls_are_identical(self, ledger):
        _seed_portfolio(ledger)
        aggregator = PortfolioAggregator(ledger)
        first = asyncio.run(aggregator.get_holdings(HOLDER_A))
        second = asyncio.run(aggregator.get_holdings(HOLDER_A))
        assert first == second

    def test_low_reserve_flagged(self, ledger):
        ledger.fund(HOLDER_A, "9.5", lines=[])
        snapshot = asyncio.run(PortfolioAggregator(ledger).get_holdings(HOLDER_A))
        assert not snapshot.reserve_healthy
        assert snapshot.holdings == []

    def test_invalid_address_fails_before_ledger(self, ledger):
        with pytest.raises(InvalidAddressError):
            asyncio.run(PortfolioAggregator(ledger).get_holdings("bogus"))

    def test_unknown_account(self, ledger):
        with pytest.raises(AccountNotFoundError):
            asyncio.run(PortfolioAggregator(ledger).get_holdings(HOLDER_B))


class TestAssetQueries:
    def test_asset_info_missing_returns_none(self, ledger):
        assert asyncio.run(PortfolioAggregator(ledger).get_asset_info(f"BLD.{ISSUER}")) is None

    def test_require_asset_raises(self, ledger):
        with pytest.raises(AssetNotFoundError) as exc:
            asyncio.run(PortfolioAggregator(ledger).require_asset(f"BLD.{ISSUER}"))
        assert exc.value.details()["asset_id"] == f"BLD.{ISSUER}"

    def test_malformed_token_id(self, ledger):
        with pytest.raises(ValidationError) as exc:
            asyncio.run(PortfolioAggregator(ledger).get_asset_info("BLD"))
        assert exc.value.field == "token_id"

    def test_supply_and_holders_from_issuer_lines(self, ledger):
        ledger.lines[ISSUER] = [
            line(HOLDER_A, "BLD", "-75"),
            line(HOLDER_B, "BLD", "-25"),
            line(OTHER_ISSUER, "BLD", "0"),
            line(HOLDER_A, "TBL", "-5"),
        ]
        ledger.history[ISSUER] = [tokenization_tx(metadata_for("BLD"))]
        aggregator = PortfolioAggregator(ledger)

        supply = asyncio.run(aggregator.get_token_supply(f"BLD.{ISSUER}"))
        assert supply.outstanding == 100
        assert supply.holder_count == 2
        assert supply.declared_supply == 10000

        holders = asyncio.run(aggregator.get_token_holders(f"BLD.{ISSUER}", min_balance=Decimal(30)))
        assert [h.address for h in holders] == [HOLDER_A]
        assert holders[0].ownership_percent == 75
