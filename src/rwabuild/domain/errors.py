# src/rwabuild/domain/errors.py
"""
Domain Errors - Business Logic Exceptions

This module defines domain-specific exceptions that represent business rule
violations, ledger-side rejections and multi-step orchestration failures.
Every error carries a ``kind`` and a ``details()`` mapping so the tool
boundary can render it as a structured error result.

Files that USE this module:
- rwabuild.shared.validators (ValidationResult.raise_for_error)
- rwabuild.adapters.ledger.* (query and submission error mapping)
- rwabuild.application.* (precondition checks in every service)
- rwabuild.adapters.tools.registry (Failure rendering)

Files that this module USES:
- None (pure domain layer)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence


class DomainError(Exception):
    """Base exception for domain errors."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def details(self) -> Dict[str, Any]:
        return {}


class ConfigurationError(DomainError):
    """Raised when a required setting or credential is missing or malformed."""
    pass


class ValidationError(DomainError):
    """Raised when input violates a field constraint. Detected before any network call."""

    def __init__(self, constraint: str, field: Optional[str] = None):
        super().__init__(constraint)
        self.constraint = constraint
        self.field = field

    def details(self) -> Dict[str, Any]:
        return {"field": self.field} if self.field else {}


class InvalidAddressError(ValidationError):
    """Raised when an account address fails the format check."""

    def __init__(self, address: str, constraint: str = "Invalid XRPL address format"):
        super().__init__(constraint, field="address")
        self.address = address

    def details(self) -> Dict[str, Any]:
        return {"address": self.address}


class InvalidPairError(ValidationError):
    """Raised when two assets cannot form a pool (identical, or base against base)."""
    pass


class InsufficientBalanceError(DomainError):
    """Raised by pre-submission balance checks."""

    def __init__(self, asset: str, available: Decimal, requested: Decimal, note: str = ""):
        self.asset = asset
        self.available = available
        self.requested = requested
        message = f"Insufficient {asset} balance. Available: {available}, requested: {requested}"
        if note:
            message = f"{message} ({note})"
        super().__init__(message)

    @property
    def shortfall(self) -> Decimal:
        return self.requested - self.available

    def details(self) -> Dict[str, Any]:
        return {
            "asset": self.asset,
            "available": self.available,
            "requested": self.requested,
            "shortfall": self.shortfall,
        }


class AccountNotFoundError(DomainError):
    """Raised when a ledger query reports that an account does not exist."""

    remediation = "Fund the account with the base reserve to activate it"

    def __init__(self, address: str):
        super().__init__(f"Account {address} not found on ledger")
        self.address = address

    def details(self) -> Dict[str, Any]:
        return {"address": self.address, "remediation": self.remediation}


class DestinationNotFoundError(AccountNotFoundError):
    """Raised when a transfer destination does not exist."""

    remediation = "Verify the destination address; it must be funded before receiving tokens"


class AssetNotFoundError(DomainError):
    """Raised when an asset id cannot be resolved to a tokenization record."""

    remediation = "Verify the asset id (format CUR.issuer) and that it was tokenized by this issuer"

    def __init__(self, asset_id: str, message: Optional[str] = None):
        super().__init__(message or f"Asset {asset_id} not found")
        self.asset_id = asset_id

    def details(self) -> Dict[str, Any]:
        return {"asset_id": self.asset_id, "remediation": self.remediation}


class PoolNotFoundError(AssetNotFoundError):
    """Raised when no AMM pool exists for a pair."""

    remediation = "Create the pool first with rwa_create_amm_pool"


class LedgerRejectionError(DomainError):
    """Raised when a submitted transaction settles with a non-success code."""

    def __init__(self, code: str, remediation: str, tx_hash: Optional[str] = None):
        super().__init__(f"Ledger rejected transaction with {code}: {remediation}")
        self.code = code
        self.remediation = remediation
        self.tx_hash = tx_hash

    def details(self) -> Dict[str, Any]:
        return {"code": self.code, "remediation": self.remediation, "hash": self.tx_hash}


class LedgerUnavailableError(DomainError):
    """Raised when the ledger cannot be reached or returns an unusable response."""
    pass


class PartialCompletionError(DomainError):
    """
    Raised when a multi-step orchestration fails after some steps settled.

    Completed steps are never rolled back; the caller decides on remediation.
    """

    def __init__(self, operation: str, steps: Sequence[Any], cause: DomainError):
        super().__init__(
            f"{operation} stopped after {len(steps)} completed step(s): {cause}"
        )
        self.operation = operation
        self.steps: List[Any] = list(steps)
        self.cause = cause

    def details(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "completed_steps": self.steps,
            "cause": {"kind": self.cause.kind, "message": str(self.cause), **self.cause.details()},
        }
