# src/rwabuild/adapters/ledger/settlement.py
"""
Settlement Codes - Ledger Result Code Remediation

Maps ledger settlement codes returned after submission (or query error
codes) to remediation messages and builds the matching domain error.
Unrecognized codes produce a generic message carrying the raw code.

Files that USE this module:
- rwabuild.adapters.ledger.xrpl_gateway (submission failures)
- tests (queuing ledger rejections on the in-memory gateway)

Files that this module USES:
- rwabuild.domain.errors (LedgerRejectionError)
"""

from __future__ import annotations

from typing import Dict, Optional

from rwabuild.domain.errors import LedgerRejectionError

SUCCESS_CODE = "tesSUCCESS"

REMEDIATIONS: Dict[str, str] = {
    "tecNO_AUTH": "Authorization required: the issuer must authorize this trustline before tokens can be held",
    "tecNO_LINE_INSUF_RESERVE": "Reserve insufficient: the account needs more XRP to create a new trustline",
    "tecINSUF_RESERVE_LINE": "Reserve insufficient: the account needs more XRP to hold another trustline",
    "tecNO_DST": "Destination missing: the destination account does not exist; fund it first",
    "tecNO_DST_INSUF_XRP": "Destination underfunded: send at least the base reserve to activate the account",
    "tecNO_LINE": "No trustline: the destination must create a trustline for this token",
    "tecUNFUNDED_PAYMENT": "Unfunded: the sending account does not hold enough to cover this payment",
    "tecUNFUNDED_AMM": "Unfunded: the account does not hold enough of the pool assets for this deposit",
    "tecAMM_BALANCE": "Pool balance: the requested amount would drain or unbalance the pool",
    "tecPATH_PARTIAL": "Slippage: the ledger could not deliver the minimum amount; retry with a wider tolerance",
    "tecPATH_DRY": "No liquidity: no path or pool could deliver this trade",
    "tecDUPLICATE": "Duplicate: an AMM pool for this pair already exists",
    "terNO_ACCOUNT": "Account not found: the sending account is not funded",
    "tefPAST_SEQ": "Sequence already used: another submission from this account raced this one",
    "temBAD_AMOUNT": "Bad amount: amounts must be positive and within ledger precision",
    "temMALFORMED": "Malformed transaction: the request fields are inconsistent",
    "actNotFound": "Account not found: fund the account with the base reserve to activate it",
}


def remediation_for(code: str) -> str:
    return REMEDIATIONS.get(code, f"Ledger failure: {code}")


def rejection_for(code: str, tx_hash: Optional[str] = None) -> LedgerRejectionError:
    return LedgerRejectionError(code, remediation_for(code), tx_hash=tx_hash)
