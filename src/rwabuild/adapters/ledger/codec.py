# src/rwabuild/adapters/ledger/codec.py
"""
Metadata Codec - Tokenization Records in Ledger Memos

Encodes ``AssetMetadata`` into a hex memo (type marker RWA_TOKENIZATION,
format marker application/json) and recovers it from an issuer's
transaction history. Other systems write to the same memo channel, so
decoding never raises: anything foreign or malformed decodes to None.

Files that USE this module:
- rwabuild.application.issuance_service (memo on the issuer AccountSet)
- rwabuild.application.portfolio_service (asset lookup from history)
- tests.test_codec

Files that this module USES:
- rwabuild.domain.metadata (AssetMetadata schema)
- xrpl.models.transactions (Memo)
- xrpl.utils (str_to_hex, hex_to_str)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError as SchemaError
from xrpl.models.transactions import Memo
from xrpl.utils import hex_to_str, str_to_hex

from rwabuild.domain.metadata import AssetMetadata

log = logging.getLogger(__name__)

MEMO_TYPE = "RWA_TOKENIZATION"
MEMO_FORMAT = "application/json"
TOKENIZATION_TX_TYPE = "AccountSet"

_MEMO_KEYS = {
    "type": ("MemoType", "memo_type"),
    "format": ("MemoFormat", "memo_format"),
    "data": ("MemoData", "memo_data"),
}


@dataclass(frozen=True)
class TokenizationRecord:
    """Decoded metadata plus where it was found on the ledger."""
    metadata: AssetMetadata
    tx_hash: Optional[str]
    ledger_index: Optional[int]


def _hex(text: str) -> str:
    return str_to_hex(text).upper()


def encode_memo(metadata: AssetMetadata) -> Memo:
    """
    Wrap metadata in the tokenization envelope and hex-encode it.

    Args:
        metadata: Record to attach

    Returns:
        Memo ready to attach to a transaction
    """
    envelope = {
        "type": MEMO_TYPE,
        "format": MEMO_FORMAT,
        "data": metadata.model_dump(mode="json", by_alias=True),
    }
    payload = json.dumps(envelope, separators=(",", ":"))
    return Memo(
        memo_type=_hex(MEMO_TYPE),
        memo_format=_hex(MEMO_FORMAT),
        memo_data=_hex(payload),
    )


def _memo_field(memo: Mapping[str, Any], name: str) -> Optional[str]:
    for key in _MEMO_KEYS[name]:
        value = memo.get(key)
        if value:
            return value
    return None


def _unhex(value: Optional[str]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    try:
        return hex_to_str(value)
    except (ValueError, TypeError):
        return None


def decode_memo(memo: Any) -> Optional[AssetMetadata]:
    """
    Recover metadata from one memo.

    Accepts the ledger's ``{"Memo": {...}}`` wrapper, a bare PascalCase
    memo, a snake_case dict or an xrpl ``Memo`` model.

    Returns:
        AssetMetadata, or None if the memo is not a valid tokenization record
    """
    if isinstance(memo, Memo):
        # {"Memo": {"MemoType": ...}}
        memo = memo.to_xrpl()
    if not isinstance(memo, Mapping):
        return None
    for wrapper in ("Memo", "memo"):
        if isinstance(memo.get(wrapper), Mapping):
            memo = memo[wrapper]
            break

    if _unhex(_memo_field(memo, "type")) != MEMO_TYPE:
        return None
    payload = _unhex(_memo_field(memo, "data"))
    if payload is None:
        return None
    try:
        envelope = json.loads(payload)
    except ValueError:
        return None
    if not isinstance(envelope, dict) or envelope.get("type") != MEMO_TYPE:
        return None
    try:
        return AssetMetadata.model_validate(envelope.get("data"))
    except SchemaError:
        return None


def _transaction_of(record: Mapping[str, Any]) -> Mapping[str, Any]:
    tx = record.get("tx_json") or record.get("tx")
    return tx if isinstance(tx, Mapping) else record


def find_tokenization_record(
    records: Iterable[Mapping[str, Any]], currency: str
) -> Optional[TokenizationRecord]:
    """
    Scan history records (in the order given) for a tokenization of ``currency``.

    Only AccountSet transactions carrying memos are considered. The first
    record whose token symbol matches wins.

    Args:
        records: account_tx entries (API v1 ``tx`` or v2 ``tx_json`` shape)
        currency: Currency code to look for

    Returns:
        TokenizationRecord, or None if no record matches
    """
    for record in records:
        tx = _transaction_of(record)
        if tx.get("TransactionType") != TOKENIZATION_TX_TYPE:
            continue
        for memo in tx.get("Memos") or ():
            metadata = decode_memo(memo)
            if metadata is None or metadata.token_symbol != currency:
                continue
            log.debug("Tokenization record for %s found in %s", currency, tx.get("hash"))
            return TokenizationRecord(
                metadata=metadata,
                tx_hash=record.get("hash") or tx.get("hash"),
                ledger_index=record.get("ledger_index") or tx.get("ledger_index"),
            )
    return None
