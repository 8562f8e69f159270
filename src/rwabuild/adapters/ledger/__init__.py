# src/rwabuild/adapters/ledger/__init__.py
"""
Ledger Adapters - XRPL Access, Transactions and Metadata Codec

Files that USE this module:
- rwabuild.application.* (gateway interface, builders, codec)
"""

from rwabuild.adapters.ledger.base import LedgerGateway
from rwabuild.adapters.ledger.codec import (
    TokenizationRecord,
    decode_memo,
    encode_memo,
    find_tokenization_record,
)
from rwabuild.adapters.ledger.signing import SigningContext

__all__ = [
    "LedgerGateway",
    "SigningContext",
    "TokenizationRecord",
    "decode_memo",
    "encode_memo",
    "find_tokenization_record",
]
