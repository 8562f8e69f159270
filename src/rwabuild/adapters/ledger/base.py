# src/rwabuild/adapters/ledger/base.py
"""
Ledger Gateway Base - Abstract Interface for Ledger Access

Defines the contract every ledger gateway implements. Services depend only
on this interface, so tests can substitute an in-memory ledger.

Files that USE this module:
- rwabuild.adapters.ledger.xrpl_gateway (concrete implementation)
- rwabuild.application.* (type of the injected gateway)
- tests.conftest (FakeLedger test double)

Files that this module USES:
- rwabuild.domain.models (AccountState, TrustLine, AmmPool, SubmissionResult)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional

from rwabuild.domain.asset_id import AssetRef
from rwabuild.domain.models import AccountState, AmmPool, SubmissionResult, TrustLine


class LedgerGateway(ABC):
    """Queries and submit-and-wait against one ledger connection."""

    @abstractmethod
    async def get_account(self, address: str) -> AccountState:
        """
        Raises:
            AccountNotFoundError: If the account does not exist
        """

    @abstractmethod
    async def get_trust_lines(self, address: str) -> List[TrustLine]:
        """All trust lines of ``address`` (every page)."""

    @abstractmethod
    async def get_transactions(
        self, address: str, limit: int = 100, max_pages: int = 1
    ) -> List[Dict[str, Any]]:
        """Newest-first history records, ``limit`` per page, at most ``max_pages`` pages."""

    @abstractmethod
    async def get_amm_pool(self, asset: AssetRef, asset2: AssetRef) -> Optional[AmmPool]:
        """Pool state for the pair, or None if no pool exists."""

    @abstractmethod
    async def get_reserve_increment(self) -> Decimal:
        """Current owner-reserve increment in XRP."""

    @abstractmethod
    async def submit(self, transaction: Any, signer: Any) -> SubmissionResult:
        """
        Sign, submit and wait for validation.

        Raises:
            LedgerRejectionError: If the transaction settles with a failure code
        """
