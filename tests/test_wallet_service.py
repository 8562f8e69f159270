# tests/test_wallet_service.py
"""
Wallet Service Tests - Unit Tests for Account Utilities

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- rwabuild.application.wallet_service (WalletService, summarize_transaction)
- tests.conftest (FakeLedger and helpers)
- pytest (testing framework)
"""
import asyncio
from decimal import Decimal

import pytest  # Testing framework for writing and running tests

from conftest import HOLDER_A, HOLDER_B, ISSUER, line
from rwabuild.application.portfolio_service import PortfolioAggregator
from rwabuild.application.wallet_service import WalletService, summarize_transaction
from rwabuild.domain.errors import InsufficientBalanceError, ValidationError


def _service(ledger, operator):
    return WalletService(ledger, PortfolioAggregator(ledger), operator, network="devnet")


class TestQueries:
    def test_wallet_info(self, ledger, operator):
        ledger.fund(operator.address, "120", lines=[line(ISSUER, "BLD", "5")])
        info = asyncio.run(_service(ledger, operator).get_wallet_info())
        assert info.address == operator.address
        assert info.network == "devnet"
        assert info.trust_line_count == 1
        assert info.reserve_healthy

    def test_validate_address_checks_format_before_ledger(self, ledger, operator):
        service = _service(ledger, operator)
        bad = asyncio.run(service.validate_address("xyz"))
        assert not bad.format_valid and not bad.exists

        missing = asyncio.run(service.validate_address(HOLDER_B))
        assert missing.format_valid and not missing.exists

        ledger.fund(HOLDER_A, "30")
        found = asyncio.run(service.validate_address(HOLDER_A))
        assert found.exists
        assert found.xrp_balance == 30

    def test_balances_use_holder_sign(self, ledger, operator):
        ledger.fund(HOLDER_A, "30", lines=[line(ISSUER, "BLD", "-12")])
        balances = asyncio.run(_service(ledger, operator).get_account_balances(HOLDER_A))
        assert balances.tokens[0].balance == 12


class TestSendXrp:
    def test_fee_included_in_precheck(self, ledger, operator):
        ledger.fund(operator.address, "50")
        with pytest.raises(InsufficientBalanceError) as exc:
            asyncio.run(_service(ledger, operator).send_xrp(HOLDER_A, Decimal(50)))
        assert exc.value.requested == Decimal("50.000012")
        assert ledger.submitted == []

    def test_payment_in_drops(self, ledger, operator):
        ledger.fund(operator.address, "100")
        result = asyncio.run(_service(ledger, operator).send_xrp(HOLDER_A, Decimal("1.5"), destination_tag=7))
        payment = ledger.submitted[0]
        assert payment.amount == "1500000"
        assert payment.destination_tag == 7
        assert result.previous_balance == 100

    def test_self_payment_rejected(self, ledger, operator):
        with pytest.raises(ValidationError):
            asyncio.run(_service(ledger, operator).send_xrp(operator.address, Decimal(1)))


class TestTrustlines:
    def test_existing_line_is_not_resubmitted(self, ledger, operator):
        ledger.fund(operator.address, "100", lines=[line(ISSUER, "BLD", "0", limit="500")])
        result = asyncio.run(_service(ledger, operator).create_trustline("BLD", ISSUER))
        assert not result.created
        assert result.limit == 500
        assert ledger.submitted == []

    def test_new_line(self, ledger, operator):
        ledger.fund(operator.address, "100", lines=[])
        result = asyncio.run(_service(ledger, operator).create_trustline("BLD", ISSUER, Decimal(1000)))
        assert result.created
        assert ledger.submitted[0].limit_amount.value == "1000"

    def test_reserved_currency_code(self, ledger, operator):
        with pytest.raises(ValidationError):
            asyncio.run(_service(ledger, operator).create_trustline("XRP", ISSUER))


class TestHistory:
    def test_limit_bounds(self, ledger, operator):
        with pytest.raises(ValidationError) as exc:
            asyncio.run(_service(ledger, operator).get_transaction_history(limit=101))
        assert exc.value.field == "limit"

    def test_direction_and_amount(self, ledger, operator):
        ledger.history[HOLDER_A] = [
            {"hash": "H1", "ledger_index": 5,
             "tx": {"TransactionType": "Payment", "Account": HOLDER_B, "Destination": HOLDER_A, "Amount": "1000000"},
             "meta": {"TransactionResult": "tesSUCCESS"}},
            {"hash": "H2", "ledger_index": 6,
             "tx": {"TransactionType": "TrustSet", "Account": HOLDER_A},
             "meta": {"TransactionResult": "tesSUCCESS"}},
        ]
        summaries = asyncio.run(_service(ledger, operator).get_transaction_history(HOLDER_A, limit=5))
        assert [s.direction for s in summaries] == ["incoming", "outgoing"]
        assert summaries[0].amount == "1 XRP"

    def test_summary_prefers_delivered_amount(self):
        record = {
            "tx": {"TransactionType": "Payment", "Account": HOLDER_A, "Destination": HOLDER_A, "Amount": "5"},
            "meta": {"delivered_amount": {"currency": "BLD", "issuer": ISSUER, "value": "3"}},
        }
        summary = summarize_transaction(record, HOLDER_A)
        assert summary.direction == "self"
        assert summary.amount == "3 BLD"

    def test_drops_rendered_without_trailing_zeros(self):
        record = {"tx": {"TransactionType": "Payment", "Account": HOLDER_A, "Destination": HOLDER_B,
                         "Amount": "2500000"}}
        assert summarize_transaction(record, HOLDER_A).amount == "2.5 XRP"
        record["tx"]["Amount"] = "10000000"
        assert summarize_transaction(record, HOLDER_A).amount == "10 XRP"
