# src/rwabuild/domain/__init__.py
"""
Domain Layer - Pure Business Objects

This package contains domain models, AMM math, metadata schema and the
error taxonomy. No dependencies on network or ledger client code.
"""

from rwabuild.domain.asset_id import AssetRef, generate_asset_id, parse_asset_id
from rwabuild.domain.errors import (
    AccountNotFoundError,
    AssetNotFoundError,
    ConfigurationError,
    DestinationNotFoundError,
    DomainError,
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidPairError,
    LedgerRejectionError,
    LedgerUnavailableError,
    PartialCompletionError,
    PoolNotFoundError,
    ValidationError,
)
from rwabuild.domain.models import (
    BASE_CURRENCY,
    AccountState,
    AmmPool,
    AssetType,
    BalanceView,
    HoldingView,
    LpPosition,
    PortfolioSnapshot,
    StepRecord,
    SubmissionResult,
    TrustLine,
)
from rwabuild.domain.results import Failure, OperationResult, Success

__all__ = [
    "AssetRef",
    "generate_asset_id",
    "parse_asset_id",
    "BASE_CURRENCY",
    "AccountState",
    "AmmPool",
    "AssetType",
    "BalanceView",
    "HoldingView",
    "LpPosition",
    "PortfolioSnapshot",
    "StepRecord",
    "SubmissionResult",
    "TrustLine",
    "Success",
    "Failure",
    "OperationResult",
    "DomainError",
    "ConfigurationError",
    "ValidationError",
    "InvalidAddressError",
    "InvalidPairError",
    "InsufficientBalanceError",
    "AccountNotFoundError",
    "DestinationNotFoundError",
    "AssetNotFoundError",
    "PoolNotFoundError",
    "LedgerRejectionError",
    "LedgerUnavailableError",
    "PartialCompletionError",
]
