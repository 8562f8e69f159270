# tests/test_xrpl_gateway.py
"""
XRPL Gateway Tests - Unit Tests for Query Parsing and Submission Mapping

Uses a mocked xrpl-py client; no network access. Covers response parsing,
not-found mapping, pagination, rejection codes and transport failures.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- rwabuild.adapters.ledger.xrpl_gateway (XrplLedgerGateway)
- unittest.mock (mocked websocket client and submit_and_wait)
- pytest (testing framework)
"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, Mock, patch

import pytest  # Testing framework for writing and running tests

from xrpl.asyncio.transaction import XRPLReliableSubmissionException

from conftest import AMM_ACCOUNT, BLD, HOLDER_A, ISSUER, LP_CURRENCY, XRP, new_signer
from rwabuild.adapters.ledger.xrpl_gateway import XrplLedgerGateway, extract_result_code
from rwabuild.domain.errors import AccountNotFoundError, LedgerRejectionError, LedgerUnavailableError


def _gateway(*results):
    client = Mock()
    client.request = AsyncMock(side_effect=[Mock(result=r) for r in results])
    return XrplLedgerGateway(client), client


class TestQueries:
    def test_account_info_converts_drops(self):
        gateway, _ = _gateway({"account_data": {
            "Account": HOLDER_A, "Balance": "25500000", "Sequence": 7, "OwnerCount": 3,
        }})
        state = asyncio.run(gateway.get_account(HOLDER_A))
        assert state.balance == Decimal("25.5")
        assert state.sequence == 7
        assert state.owner_count == 3

    def test_unfunded_account(self):
        gateway, _ = _gateway({"error": "actNotFound"})
        with pytest.raises(AccountNotFoundError):
            asyncio.run(gateway.get_account(HOLDER_A))

    def test_other_query_errors_are_unavailability(self):
        gateway, _ = _gateway({"error": "tooBusy"})
        with pytest.raises(LedgerUnavailableError):
            asyncio.run(gateway.get_account(HOLDER_A))

    def test_trust_lines_follow_marker(self):
        gateway, client = _gateway(
            {"lines": [{"account": ISSUER, "currency": "BLD", "balance": "10", "limit": "100"}], "marker": "m1"},
            {"lines": [{"account": ISSUER, "currency": "TBL", "balance": "-5", "limit": "0", "freeze": True}]},
        )
        lines = asyncio.run(gateway.get_trust_lines(HOLDER_A))
        assert [l.currency for l in lines] == ["BLD", "TBL"]
        assert lines[1].frozen
        assert client.request.await_count == 2
        assert client.request.await_args_list[1].args[0].marker == "m1"

    def test_transactions_stop_at_max_pages(self):
        gateway, client = _gateway(
            {"transactions": [{"hash": "A"}], "marker": "m1"},
            {"transactions": [{"hash": "B"}], "marker": "m2"},
        )
        records = asyncio.run(gateway.get_transactions(ISSUER, limit=1, max_pages=2))
        assert [r["hash"] for r in records] == ["A", "B"]
        assert client.request.await_count == 2

    def test_amm_info(self):
        gateway, _ = _gateway({"amm": {
            "account": AMM_ACCOUNT,
            "amount": "5000000000",
            "amount2": {"currency": "BLD", "issuer": ISSUER, "value": "10000"},
            "lp_token": {"currency": LP_CURRENCY, "issuer": AMM_ACCOUNT, "value": "7071"},
            "trading_fee": 500,
        }})
        pool = asyncio.run(gateway.get_amm_pool(BLD, XRP))
        assert pool.reserve_of(XRP) == 5000
        assert pool.reserve_of(BLD) == 10000
        assert pool.total_lp_tokens == 7071
        assert pool.trading_fee == 500

    def test_missing_pool_is_none(self):
        gateway, _ = _gateway({"error": "ammNotFound"})
        assert asyncio.run(gateway.get_amm_pool(BLD, XRP)) is None

    def test_reserve_increment(self):
        gateway, _ = _gateway({"state": {"validated_ledger": {"reserve_inc": 2000000}}})
        assert asyncio.run(gateway.get_reserve_increment()) == 2

    def test_transport_error(self):
        client = Mock()
        client.request = AsyncMock(side_effect=OSError("connection reset"))
        with pytest.raises(LedgerUnavailableError):
            asyncio.run(XrplLedgerGateway(client).get_account(HOLDER_A))


class TestSubmit:
    PATCH = "rwabuild.adapters.ledger.xrpl_gateway.submit_and_wait"

    def test_validated_success(self):
        gateway, _ = _gateway()
        response = Mock(result={
            "hash": "ABC", "ledger_index": 55, "validated": True,
            "meta": {"TransactionResult": "tesSUCCESS", "delivered_amount": "1000"},
        })
        with patch(self.PATCH, new=AsyncMock(return_value=response)):
            result = asyncio.run(gateway.submit(Mock(), new_signer()))
        assert result.tx_hash == "ABC"
        assert result.ledger_index == 55
        assert result.delivered_amount == "1000"

    def test_reliable_submission_failure_maps_code(self):
        gateway, _ = _gateway()
        error = XRPLReliableSubmissionException("Transaction failed: tecNO_DST")
        with patch(self.PATCH, new=AsyncMock(side_effect=error)):
            with pytest.raises(LedgerRejectionError) as exc:
                asyncio.run(gateway.submit(Mock(), new_signer()))
        assert exc.value.code == "tecNO_DST"
        assert "fund it first" in exc.value.remediation

    def test_non_success_meta_is_rejection(self):
        gateway, _ = _gateway()
        response = Mock(result={"hash": "DEF", "meta": {"TransactionResult": "tecPATH_DRY"}})
        with patch(self.PATCH, new=AsyncMock(return_value=response)):
            with pytest.raises(LedgerRejectionError) as exc:
                asyncio.run(gateway.submit(Mock(), new_signer()))
        assert exc.value.code == "tecPATH_DRY"
        assert exc.value.tx_hash == "DEF"

    def test_submission_transport_error(self):
        gateway, _ = _gateway()
        with patch(self.PATCH, new=AsyncMock(side_effect=asyncio.TimeoutError())):
            with pytest.raises(LedgerUnavailableError):
                asyncio.run(gateway.submit(Mock(), new_signer()))

    def test_extract_result_code(self):
        assert extract_result_code("Transaction failed, temBAD_AMOUNT: bad") == "temBAD_AMOUNT"
        assert extract_result_code("something odd") == "submission_failed"


class TestConnect:
    PATCH = "rwabuild.adapters.ledger.xrpl_gateway.AsyncWebsocketClient"

    def test_connection_closed_on_error(self):
        client = Mock(open=AsyncMock(), close=AsyncMock())

        async def run():
            async with XrplLedgerGateway.connect("wss://example.invalid") as gateway:
                assert gateway.client is client
                raise AccountNotFoundError(HOLDER_A)

        with patch(self.PATCH, return_value=client):
            with pytest.raises(AccountNotFoundError):
                asyncio.run(run())
        client.close.assert_awaited_once()

    def test_unreachable_node(self):
        client = Mock(open=AsyncMock(side_effect=OSError("refused")), close=AsyncMock())

        async def run():
            async with XrplLedgerGateway.connect("wss://example.invalid"):
                pass

        with patch(self.PATCH, return_value=client):
            with pytest.raises(LedgerUnavailableError):
                asyncio.run(run())
