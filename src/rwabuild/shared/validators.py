# src/rwabuild/shared/validators.py
"""
Input Validation Utilities - Asset and Ledger Input Checks

This module validates tokenization inputs (symbol, value, supply, yield,
compliance), ledger addresses and seeds, and free-text memos. All checks run
before any network round trip so malformed input never costs a ledger call.

Files that USE this module:
- rwabuild.config.settings (seed format in Settings field validators)
- rwabuild.application.* (precondition checks)
- rwabuild.adapters.tools.schemas (address field validators)

Files that this module USES:
- rwabuild.domain.errors (ValidationError, InvalidAddressError)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from rwabuild.domain.errors import InvalidAddressError, ValidationError

RESERVED_SYMBOLS = frozenset({"XRP", "USD", "EUR", "BTC", "ETH"})

MIN_ASSET_VALUE = Decimal(1_000)
MAX_ASSET_VALUE = Decimal(1_000_000_000)
MIN_TOKEN_SUPPLY = 100
MAX_TOKEN_SUPPLY = 100_000_000
MIN_PRICE_PER_TOKEN = Decimal("0.01")
MAX_YIELD_RATE = Decimal(50)
MAX_NON_ACCREDITED_INVESTORS = 99
MAX_DISTRIBUTION_AMOUNT = Decimal(1_000_000)
MIN_DISTRIBUTION_PER_TOKEN = Decimal("0.000001")
MAX_MEMO_LENGTH = 256

_ADDRESS_RE = re.compile(r"^r[1-9A-HJ-NP-Za-km-z]{25,34}$")
_SEED_RE = re.compile(r"^s[1-9A-HJ-NP-Za-km-z]{25,34}$")
_SYMBOL_RE = re.compile(r"^[A-Z0-9]{3}$")

Number = Union[Decimal, int, str]


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid

    def raise_for_error(self, field: Optional[str] = None) -> None:
        """
        Raises:
            ValidationError: If this result is invalid
        """
        if not self.valid:
            raise ValidationError(self.error or "Invalid input", field=field)


_OK = ValidationResult(True)


def _fail(message: str) -> ValidationResult:
    return ValidationResult(False, message)


def _as_decimal(value: Number) -> Optional[Decimal]:
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return result if result.is_finite() else None


def validate_token_symbol(symbol: str) -> ValidationResult:
    """
    Check a 3-character token symbol.

    Args:
        symbol: Candidate symbol, e.g. "BLD"

    Returns:
        ValidationResult with the first violated rule, if any
    """
    if not symbol:
        return _fail("Token symbol is required")
    if len(symbol) != 3:
        return _fail("Token symbol must be exactly 3 characters")
    if not _SYMBOL_RE.match(symbol):
        return _fail("Token symbol must contain only uppercase letters and numbers")
    if symbol in RESERVED_SYMBOLS:
        return _fail(f"Token symbol '{symbol}' is reserved")
    return _OK


def validate_currency_code(currency: str) -> ValidationResult:
    """Standard 3-character issued currency code (XRP itself is not issuable)."""
    if not currency:
        return _fail("Currency code is required")
    if not _SYMBOL_RE.match(currency):
        return _fail("Currency code must be exactly 3 uppercase letters or numbers")
    if currency == "XRP":
        return _fail("XRP is the native currency and cannot be issued")
    return _OK


def validate_asset_value(value: Number) -> ValidationResult:
    amount = _as_decimal(value)
    if amount is None or amount <= 0:
        return _fail("Asset value must be a positive number")
    if amount < MIN_ASSET_VALUE:
        return _fail("Asset value must be at least $1,000")
    if amount > MAX_ASSET_VALUE:
        return _fail("Asset value cannot exceed $1,000,000,000")
    return _OK


def validate_token_supply(supply: Number, asset_value: Number) -> ValidationResult:
    """Check supply bounds and the minimum price-per-token floor."""
    amount = _as_decimal(supply)
    if amount is None or amount <= 0 or amount != amount.to_integral_value():
        return _fail("Token supply must be a positive integer")
    if amount < MIN_TOKEN_SUPPLY:
        return _fail(f"Token supply must be at least {MIN_TOKEN_SUPPLY}")
    if amount > MAX_TOKEN_SUPPLY:
        return _fail(f"Token supply cannot exceed {MAX_TOKEN_SUPPLY:,}")
    value = _as_decimal(asset_value)
    if value is None or value / amount < MIN_PRICE_PER_TOKEN:
        return _fail("Price per token would be too low (minimum $0.01)")
    return _OK


def validate_yield_rate(rate: Optional[Number]) -> ValidationResult:
    if rate is None:
        return _OK
    amount = _as_decimal(rate)
    if amount is None:
        return _fail("Yield rate must be a number")
    if amount < 0:
        return _fail("Yield rate cannot be negative")
    if amount > MAX_YIELD_RATE:
        return _fail("Yield rate cannot exceed 50%")
    return _OK


def validate_asset_name(name: str) -> ValidationResult:
    if not name or not name.strip():
        return _fail("Asset name is required")
    if len(name) > 50:
        return _fail("Asset name cannot exceed 50 characters")
    return _OK


def validate_xrpl_address(address: str) -> ValidationResult:
    if not address:
        return _fail("Address is required")
    if not _ADDRESS_RE.match(address):
        return _fail("Invalid XRPL address format")
    return _OK


def require_address(address: str) -> str:
    """
    Raises:
        InvalidAddressError: If the address fails the format check
    """
    result = validate_xrpl_address(address)
    if not result:
        raise InvalidAddressError(address, result.error)
    return address


def validate_seed(seed: str) -> bool:
    """True if ``seed`` has the shape of a family seed."""
    return bool(seed) and bool(_SEED_RE.match(seed))


def validate_compliance_settings(accredited_only: bool, max_investors: Optional[int] = None) -> ValidationResult:
    if max_investors is None:
        return _OK
    if max_investors < 1:
        return _fail("Maximum investors must be at least 1")
    if not accredited_only and max_investors > MAX_NON_ACCREDITED_INVESTORS:
        return _fail("Non-accredited offerings are limited to 99 investors")
    return _OK


def validate_distribution_amount(amount: Number, total_supply: Number) -> ValidationResult:
    value = _as_decimal(amount)
    if value is None or value <= 0:
        return _fail("Distribution amount must be positive")
    if value > MAX_DISTRIBUTION_AMOUNT:
        return _fail("Distribution amount cannot exceed 1,000,000 XRP")
    supply = _as_decimal(total_supply)
    if supply and value / supply < MIN_DISTRIBUTION_PER_TOKEN:
        return _fail("Distribution amount per token is too small")
    return _OK


def validate_positive_amount(amount: Number, label: str = "Amount") -> ValidationResult:
    value = _as_decimal(amount)
    if value is None or value <= 0:
        return _fail(f"{label} must be greater than 0")
    return _OK


def sanitize_memo(text: Optional[str], max_length: int = MAX_MEMO_LENGTH) -> Optional[str]:
    """
    Strip control characters from a memo and bound its length.

    Returns:
        Cleaned memo, or None if nothing printable remains
    """
    if not text:
        return None
    cleaned = "".join(ch for ch in text if ch.isprintable()).strip()
    return cleaned[:max_length] or None
