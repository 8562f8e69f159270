# src/rwabuild/adapters/ledger/xrpl_gateway.py
"""
XRPL Gateway - xrpl-py Implementation of the Ledger Gateway

Talks to an XRPL node over a websocket opened per invocation. ``connect``
is an async context manager: the connection is released on every exit path
(success, domain error, ledger error or cancellation). Query error codes
map to domain errors; submission failures map to LedgerRejectionError
through the settlement remediation table.

Files that USE this module:
- rwabuild.application.session (opens one gateway per tool invocation)
- tests.test_xrpl_gateway

Files that this module USES:
- xrpl.asyncio.clients (AsyncWebsocketClient)
- xrpl.asyncio.transaction (submit_and_wait)
- xrpl.models.requests (AccountInfo, AccountLines, AccountTx, AMMInfo, ServerState)
- rwabuild.adapters.ledger.settlement (rejection mapping)
- rwabuild.adapters.ledger.transactions (amount parsing, currency conversion)
"""

from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional

from xrpl.asyncio.clients import AsyncWebsocketClient
from xrpl.asyncio.transaction import XRPLReliableSubmissionException, submit_and_wait
from xrpl.constants import XRPLException
from xrpl.models.requests import AccountInfo, AccountLines, AccountTx, AMMInfo, ServerState
from xrpl.utils import drops_to_xrp

from rwabuild.adapters.ledger.base import LedgerGateway
from rwabuild.adapters.ledger.settlement import SUCCESS_CODE, rejection_for
from rwabuild.adapters.ledger.signing import SigningContext
from rwabuild.adapters.ledger.transactions import parse_ledger_amount, to_currency
from rwabuild.domain.asset_id import AssetRef
from rwabuild.domain.errors import AccountNotFoundError, LedgerUnavailableError
from rwabuild.domain.models import AccountState, AmmPool, SubmissionResult, TrustLine

log = logging.getLogger(__name__)

_RESULT_CODE_RE = re.compile(r"\b(te[a-z][A-Z_]+)\b")
_NOT_FOUND_CODES = {"actNotFound", "ammNotFound"}
_TRANSPORT_ERRORS = (XRPLException, OSError, asyncio.TimeoutError)


def _parse_trust_line(raw: Dict[str, Any]) -> TrustLine:
    return TrustLine(
        account=raw["account"],
        currency=raw["currency"],
        balance=Decimal(str(raw.get("balance", "0"))),
        limit=Decimal(str(raw.get("limit", "0"))),
        quality_in=int(raw.get("quality_in", 0) or 0),
        quality_out=int(raw.get("quality_out", 0) or 0),
        frozen=bool(raw.get("freeze") or raw.get("freeze_peer")),
    )


def _parse_amm(raw: Dict[str, Any]) -> AmmPool:
    asset1, amount1 = parse_ledger_amount(raw["amount"])
    asset2, amount2 = parse_ledger_amount(raw["amount2"])
    lp_token = raw["lp_token"]
    return AmmPool(
        account=raw["account"],
        asset1=asset1,
        asset2=asset2,
        amount1=amount1,
        amount2=amount2,
        lp_currency=lp_token["currency"],
        total_lp_tokens=Decimal(str(lp_token["value"])),
        trading_fee=int(raw.get("trading_fee", 0)),
    )


def extract_result_code(message: str) -> str:
    """Pull a ledger result code out of an xrpl-py submission error message."""
    match = _RESULT_CODE_RE.search(message)
    return match.group(1) if match else "submission_failed"


class XrplLedgerGateway(LedgerGateway):
    """Ledger gateway bound to one open xrpl-py websocket client."""

    def __init__(self, client: AsyncWebsocketClient):
        self.client = client

    @classmethod
    @asynccontextmanager
    async def connect(cls, url: str) -> AsyncIterator["XrplLedgerGateway"]:
        """
        Open a websocket to ``url`` for the duration of the block.

        Raises:
            LedgerUnavailableError: If the node cannot be reached
        """
        client = AsyncWebsocketClient(url)
        try:
            await client.open()
        except _TRANSPORT_ERRORS as e:
            log.error("Cannot connect to XRPL node %s: %s", url, e)
            raise LedgerUnavailableError(f"Cannot connect to XRPL node {url}") from e
        log.debug("Connected to %s", url)
        try:
            yield cls(client)
        finally:
            await client.close()
            log.debug("Disconnected from %s", url)

    async def _request(self, request: Any) -> Dict[str, Any]:
        """Send a request; returns the result dict (which may carry an ``error``)."""
        try:
            response = await self.client.request(request)
        except _TRANSPORT_ERRORS as e:
            log.error("Ledger request %s failed: %s", type(request).__name__, e)
            raise LedgerUnavailableError(f"Ledger request {type(request).__name__} failed: {e}") from e
        return response.result

    @staticmethod
    def _raise_for_error(result: Dict[str, Any], address: str, request_name: str) -> None:
        error = result.get("error")
        if not error:
            return
        if error in _NOT_FOUND_CODES:
            raise AccountNotFoundError(address)
        log.error("%s for %s returned %s", request_name, address, error)
        raise LedgerUnavailableError(f"{request_name} failed: {error}")

    async def get_account(self, address: str) -> AccountState:
        result = await self._request(AccountInfo(account=address, ledger_index="validated"))
        self._raise_for_error(result, address, "account_info")
        data = result["account_data"]
        return AccountState(
            address=data["Account"],
            balance=drops_to_xrp(str(data["Balance"])),
            sequence=int(data["Sequence"]),
            owner_count=int(data.get("OwnerCount", 0)),
            flags=int(data.get("Flags", 0)),
        )

    async def get_trust_lines(self, address: str) -> List[TrustLine]:
        lines: List[TrustLine] = []
        marker = None
        while True:
            result = await self._request(
                AccountLines(account=address, ledger_index="validated", marker=marker)
            )
            self._raise_for_error(result, address, "account_lines")
            lines.extend(_parse_trust_line(raw) for raw in result.get("lines", []))
            marker = result.get("marker")
            if not marker:
                return lines

    async def get_transactions(
        self, address: str, limit: int = 100, max_pages: int = 1
    ) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        marker = None
        for _ in range(max_pages):
            result = await self._request(AccountTx(account=address, limit=limit, marker=marker))
            self._raise_for_error(result, address, "account_tx")
            records.extend(result.get("transactions", []))
            marker = result.get("marker")
            if not marker:
                break
        return records

    async def get_amm_pool(self, asset: AssetRef, asset2: AssetRef) -> Optional[AmmPool]:
        result = await self._request(AMMInfo(asset=to_currency(asset), asset2=to_currency(asset2)))
        error = result.get("error")
        if error in _NOT_FOUND_CODES:
            return None
        if error:
            log.error("amm_info for %s/%s returned %s", asset, asset2, error)
            raise LedgerUnavailableError(f"amm_info failed: {error}")
        return _parse_amm(result["amm"])

    async def get_reserve_increment(self) -> Decimal:
        result = await self._request(ServerState())
        try:
            reserve_drops = result["state"]["validated_ledger"]["reserve_inc"]
        except KeyError as e:
            raise LedgerUnavailableError("server_state did not report a validated ledger") from e
        return drops_to_xrp(str(reserve_drops))

    async def submit(self, transaction: Any, signer: SigningContext) -> SubmissionResult:
        tx_type = getattr(transaction, "transaction_type", type(transaction).__name__)
        tx_name = getattr(tx_type, "value", tx_type)
        try:
            response = await submit_and_wait(transaction, self.client, signer.wallet())
        except XRPLReliableSubmissionException as e:
            code = extract_result_code(str(e))
            log.error("%s from %s rejected: %s", tx_name, signer.address, code)
            raise rejection_for(code) from e
        except _TRANSPORT_ERRORS as e:
            log.error("%s from %s could not be submitted: %s", tx_name, signer.address, e)
            raise LedgerUnavailableError(f"Submission of {tx_name} failed: {e}") from e

        result = response.result
        meta = result.get("meta") or {}
        code = meta.get("TransactionResult", SUCCESS_CODE if result.get("validated") else "unvalidated")
        tx_hash = result.get("hash") or (result.get("tx_json") or {}).get("hash", "")
        ledger_index = result.get("ledger_index")
        if code != SUCCESS_CODE:
            log.error("%s %s settled with %s", tx_name, tx_hash, code)
            raise rejection_for(code, tx_hash)
        log.info("%s validated: hash=%s ledger=%s code=%s", tx_name, tx_hash, ledger_index, code)
        return SubmissionResult(tx_hash=tx_hash, ledger_index=ledger_index, code=code, meta=meta)
