# src/rwabuild/adapters/ledger/signing.py
"""
Signing Context - Scoped Access to Seed Material

Wraps a seed held as ``SecretStr``. Only the public address is kept in
plain form; the xrpl ``Wallet`` is derived at signing time and dropped by
the caller right after use. The repr never shows the seed.

Files that USE this module:
- rwabuild.adapters.ledger.xrpl_gateway (wallet for submit_and_wait)
- rwabuild.application.session (builds operator and issuer contexts)
- rwabuild.application.health (credential check)

Files that this module USES:
- xrpl.wallet (Wallet derivation from seed)
"""

from __future__ import annotations

from pydantic import SecretStr
from xrpl.wallet import Wallet

from rwabuild.domain.errors import ConfigurationError


class SigningContext:
    """Signing credential for one account."""

    def __init__(self, seed: SecretStr, label: str = "operator"):
        self._seed = seed
        self.label = label
        try:
            self.address: str = Wallet.from_seed(seed.get_secret_value()).classic_address
        except Exception:  # xrpl-py raises several types for bad seeds
            raise ConfigurationError(f"Malformed {label} seed") from None

    def wallet(self) -> Wallet:
        """Derive the signing wallet. Callers must not retain it."""
        return Wallet.from_seed(self._seed.get_secret_value())

    def __repr__(self) -> str:
        return f"SigningContext(label={self.label!r}, address={self.address!r})"
