# tests/conftest.py
"""
Shared Test Fixtures - In-Memory Ledger and Signing Contexts

Provides FakeLedger, an in-memory LedgerGateway that records every
submission, plus helpers for building accounts, trust lines, pools and
tokenization history records.

Files that USE this module:
- tests/test_*.py (fixtures and helpers)

Files that this module USES:
- rwabuild.adapters.ledger (LedgerGateway, SigningContext, encode_memo)
- rwabuild.domain.* (models, metadata, errors)
- xrpl.wallet (throwaway seeds for signing contexts)
"""
import asyncio
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import pytest  # Testing framework for fixtures

from pydantic import SecretStr
from xrpl.wallet import Wallet

from rwabuild.adapters.ledger import LedgerGateway, SigningContext, encode_memo
from rwabuild.domain.asset_id import AssetRef
from rwabuild.domain.errors import AccountNotFoundError, DomainError
from rwabuild.domain.metadata import AssetMetadata
from rwabuild.domain.models import AccountState, AmmPool, AssetType, SubmissionResult, TrustLine

ISSUER = "rN7n7otQDd6FczFgLdSqtcsAUxDkw6fzRH"
OTHER_ISSUER = "rLHzPsX6oXkzU2qL12kHCH8G8cnZv1rBJh"
HOLDER_A = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
HOLDER_B = "rPT1Sjq2YGrBMTttX4GZHjKu9dyfzbpAYe"
AMM_ACCOUNT = "rGHt6LT5v9DVaEAmFzj5ciuxuj41ZjLofs"
LP_CURRENCY = "03930D02208264E2E40EC1B0C09E4DB96EE197B1"

BLD = AssetRef("BLD", ISSUER)
XRP = AssetRef.base()


def new_signer(label: str = "operator") -> SigningContext:
    return SigningContext(SecretStr(Wallet.create().seed), label=label)


def line(peer: str, currency: str, balance: str, limit: str = "1000000") -> TrustLine:
    return TrustLine(account=peer, currency=currency, balance=Decimal(balance), limit=Decimal(limit))


def metadata_for(
    symbol: str = "BLD",
    issuer: str = ISSUER,
    asset_type: AssetType = AssetType.REAL_ESTATE,
    total_value: str = "1000000",
    total_supply: int = 10000,
) -> AssetMetadata:
    return AssetMetadata.build(
        name=f"{symbol} Asset",
        asset_type=asset_type,
        total_value=Decimal(total_value),
        token_symbol=symbol,
        total_supply=total_supply,
        issuer_address=issuer,
        network="testnet",
        yield_rate=Decimal(5),
    )


def tokenization_tx(metadata: AssetMetadata, tx_hash: str = "A" * 64, ledger_index: int = 1000) -> Dict[str, Any]:
    """account_tx entry in the ledger's PascalCase memo shape."""
    memo = encode_memo(metadata)
    return {
        "hash": tx_hash,
        "ledger_index": ledger_index,
        "tx": {
            "TransactionType": "AccountSet",
            "Account": metadata.issuer.address,
            "Memos": [{"Memo": {
                "MemoType": memo.memo_type,
                "MemoFormat": memo.memo_format,
                "MemoData": memo.memo_data,
            }}],
        },
    }


def make_pool(
    token: AssetRef = BLD, token_reserve: str = "10000", xrp_reserve: str = "5000",
    total_lp: str = "7071", fee: int = 500,
) -> AmmPool:
    return AmmPool(
        account=AMM_ACCOUNT,
        asset1=XRP,
        asset2=token,
        amount1=Decimal(xrp_reserve),
        amount2=Decimal(token_reserve),
        lp_currency=LP_CURRENCY,
        total_lp_tokens=Decimal(total_lp),
        trading_fee=fee,
    )


class FakeLedger(LedgerGateway):
    """In-memory ledger. Submissions are recorded and succeed unless a failure is queued."""

    def __init__(self) -> None:
        self.accounts: Dict[str, AccountState] = {}
        self.lines: Dict[str, List[TrustLine]] = {}
        self.history: Dict[str, List[Dict[str, Any]]] = {}
        self.history_errors: Dict[str, DomainError] = {}
        self.pools: Dict[str, AmmPool] = {}
        self.reserve_increment = Decimal(2)
        self.submitted: List[Any] = []
        self.signers: List[str] = []
        self.fail_at: Dict[int, Exception] = {}
        self.stall_at: Optional[int] = None
        self.fail_destinations: Dict[str, DomainError] = {}
        self.delivered: Optional[Any] = None
        self.on_submit: Optional[Callable[[Any], None]] = None
        self.history_calls: List[str] = []

    def fund(self, address: str, balance: str, lines: Optional[List[TrustLine]] = None) -> None:
        self.accounts[address] = AccountState(address=address, balance=Decimal(balance), sequence=1)
        if lines is not None:
            self.lines[address] = lines

    def add_pool(self, pool: AmmPool) -> None:
        token = pool.asset2 if pool.asset1.is_base else pool.asset1
        self.pools[token.asset_id] = pool

    async def get_account(self, address: str) -> AccountState:
        if address not in self.accounts:
            raise AccountNotFoundError(address)
        return self.accounts[address]

    async def get_trust_lines(self, address: str) -> List[TrustLine]:
        return list(self.lines.get(address, []))

    async def get_transactions(self, address: str, limit: int = 100, max_pages: int = 1) -> List[Dict[str, Any]]:
        self.history_calls.append(address)
        if address in self.history_errors:
            raise self.history_errors[address]
        return list(self.history.get(address, []))[: limit * max_pages]

    async def get_amm_pool(self, asset: AssetRef, asset2: AssetRef) -> Optional[AmmPool]:
        token = asset2 if asset.is_base else asset
        return self.pools.get(token.asset_id)

    async def get_reserve_increment(self) -> Decimal:
        return self.reserve_increment

    async def submit(self, transaction: Any, signer: Any) -> SubmissionResult:
        index = len(self.submitted)
        self.submitted.append(transaction)
        self.signers.append(signer.address)
        if self.stall_at is not None and index >= self.stall_at:
            await asyncio.sleep(5)
        if index in self.fail_at:
            raise self.fail_at[index]
        destination = getattr(transaction, "destination", None)
        if destination in self.fail_destinations:
            raise self.fail_destinations[destination]
        if self.on_submit is not None:
            self.on_submit(transaction)
        meta: Dict[str, Any] = {"TransactionResult": "tesSUCCESS"}
        if self.delivered is not None:
            meta["delivered_amount"] = self.delivered
        return SubmissionResult(tx_hash=f"HASH{index}", ledger_index=100 + index, code="tesSUCCESS", meta=meta)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def operator() -> SigningContext:
    return new_signer()
