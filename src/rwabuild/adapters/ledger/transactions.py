# src/rwabuild/adapters/ledger/transactions.py
"""
Transaction Builders - xrpl-py Models from Domain Values

Converts Decimal amounts and AssetRefs into ledger amount types and builds
the transactions used by the services: issuer setup, trust lines, payments,
cross-currency swaps and AMM create/deposit/withdraw.

Files that USE this module:
- rwabuild.application.* (every service that submits)
- rwabuild.adapters.ledger.xrpl_gateway (amount parsing)

Files that this module USES:
- xrpl.models (transactions, amounts, currencies, path steps)
- xrpl.utils (drops conversion, hex encoding)
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Context, Decimal
from typing import Any, List, Optional, Sequence, Tuple, Union

from xrpl.models.amounts import IssuedCurrencyAmount
from xrpl.models.currencies import XRP, IssuedCurrency
from xrpl.models.path import PathStep
from xrpl.models.transactions import (
    AccountSet,
    AccountSetAsfFlag,
    AMMCreate,
    AMMDeposit,
    AMMWithdraw,
    Memo,
    Payment,
    TrustSet,
)
from xrpl.utils import drops_to_xrp, str_to_hex, xrp_to_drops

from rwabuild.domain.asset_id import AssetRef

# AccountSet transaction flags
TF_REQUIRE_DEST_TAG = 0x00010000
TF_DISALLOW_XRP = 0x00100000

# Payment flags
TF_PARTIAL_PAYMENT = 0x00020000

# AMMDeposit / AMMWithdraw flags
TF_LP_TOKEN = 0x00010000
TF_WITHDRAW_ALL = 0x00020000
TF_SINGLE_ASSET = 0x00080000
TF_TWO_ASSET = 0x00100000
TF_ONE_ASSET_LP_TOKEN = 0x00200000

MEMO_TYPE_TRANSFER = "rwa_transfer"
MEMO_TYPE_SWAP = "amm_swap"
MEMO_TYPE_YIELD = "rwa_yield_distribution"
MEMO_TYPE_PAYMENT = "xrp_payment"

_DROP = Decimal("0.000001")
_IOU_CONTEXT = Context(prec=15, rounding=ROUND_DOWN)

LedgerAmount = Union[str, IssuedCurrencyAmount]


def to_drops(amount: Decimal) -> str:
    """XRP amount to a drops string, rounding down to whole drops."""
    return xrp_to_drops(Decimal(amount).quantize(_DROP, rounding=ROUND_DOWN))


def to_iou_value(amount: Decimal) -> str:
    """Issued-currency value string with at most 15 significant digits."""
    value = _IOU_CONTEXT.create_decimal(Decimal(amount)).normalize()
    return format(value, "f")


def to_currency(asset: AssetRef) -> Union[XRP, IssuedCurrency]:
    if asset.is_base:
        return XRP()
    return IssuedCurrency(currency=asset.currency, issuer=asset.issuer)


def to_ledger_amount(asset: AssetRef, amount: Decimal) -> LedgerAmount:
    if asset.is_base:
        return to_drops(amount)
    return IssuedCurrencyAmount(
        currency=asset.currency, issuer=asset.issuer, value=to_iou_value(amount)
    )


def parse_ledger_amount(raw: Any) -> Tuple[AssetRef, Decimal]:
    """
    Ledger amount (drops string or currency object) to (asset, Decimal).

    Raises:
        ValueError: If the value is neither form
    """
    if isinstance(raw, (str, int)):
        return AssetRef.base(), drops_to_xrp(str(raw))
    if isinstance(raw, dict) and "currency" in raw:
        if raw["currency"] == "XRP" and "issuer" not in raw:
            return AssetRef.base(), Decimal(str(raw.get("value", "0")))
        return AssetRef(raw["currency"], raw.get("issuer")), Decimal(str(raw["value"]))
    raise ValueError(f"Unrecognized ledger amount: {raw!r}")


def text_memo(text: Optional[str], memo_type: str) -> Optional[List[Memo]]:
    if not text:
        return None
    return [Memo(memo_type=str_to_hex(memo_type).upper(), memo_data=str_to_hex(text).upper())]


def build_issuer_setup(issuer: str, memo: Memo) -> AccountSet:
    """Enable rippling, refuse direct XRP and require tags on the issuing account."""
    return AccountSet(
        account=issuer,
        set_flag=AccountSetAsfFlag.ASF_DEFAULT_RIPPLE,
        flags=TF_DISALLOW_XRP | TF_REQUIRE_DEST_TAG,
        memos=[memo],
    )


def build_trust_set(account: str, asset: AssetRef, limit: Decimal) -> TrustSet:
    return TrustSet(
        account=account,
        limit_amount=IssuedCurrencyAmount(
            currency=asset.currency, issuer=asset.issuer, value=to_iou_value(limit)
        ),
    )


def build_payment(
    account: str,
    destination: str,
    asset: AssetRef,
    amount: Decimal,
    destination_tag: Optional[int] = None,
    memos: Optional[List[Memo]] = None,
) -> Payment:
    return Payment(
        account=account,
        destination=destination,
        amount=to_ledger_amount(asset, amount),
        destination_tag=destination_tag,
        memos=memos,
    )


def swap_paths(send: AssetRef, deliver: AssetRef) -> List[List[PathStep]]:
    """Explicit path through the base currency (one hop, or two for token to token)."""
    if send.is_base:
        return [[PathStep(currency=deliver.currency, issuer=deliver.issuer)]]
    if deliver.is_base:
        return [[PathStep(currency="XRP")]]
    return [[PathStep(currency="XRP"), PathStep(currency=deliver.currency, issuer=deliver.issuer)]]


def build_swap_payment(
    account: str,
    send: AssetRef,
    send_max: Decimal,
    deliver: AssetRef,
    deliver_amount: Decimal,
    deliver_min: Optional[Decimal] = None,
    memos: Optional[List[Memo]] = None,
) -> Payment:
    """
    Self-payment that converts ``send`` into ``deliver`` through AMM pools.

    With ``deliver_min`` set, the payment is partial: the ledger delivers as
    much as ``send_max`` buys, up to ``deliver_amount``, and fails below
    ``deliver_min``.
    """
    return Payment(
        account=account,
        destination=account,
        amount=to_ledger_amount(deliver, deliver_amount),
        send_max=to_ledger_amount(send, send_max),
        deliver_min=to_ledger_amount(deliver, deliver_min) if deliver_min is not None else None,
        flags=TF_PARTIAL_PAYMENT if deliver_min is not None else 0,
        paths=swap_paths(send, deliver),
        memos=memos,
    )


def build_amm_create(
    account: str,
    asset1: AssetRef,
    amount1: Decimal,
    asset2: AssetRef,
    amount2: Decimal,
    trading_fee: int,
    fee_drops: int,
) -> AMMCreate:
    """AMMCreate paying the owner-reserve increment as its fee."""
    return AMMCreate(
        account=account,
        amount=to_ledger_amount(asset1, amount1),
        amount2=to_ledger_amount(asset2, amount2),
        trading_fee=trading_fee,
        fee=str(fee_drops),
    )


def build_amm_deposit(
    account: str,
    pool_assets: Sequence[AssetRef],
    flags: int,
    amounts: Sequence[Tuple[AssetRef, Decimal]] = (),
    lp_token_out: Optional[Tuple[AssetRef, Decimal]] = None,
) -> AMMDeposit:
    ledger_amounts = [to_ledger_amount(asset, value) for asset, value in amounts]
    return AMMDeposit(
        account=account,
        asset=to_currency(pool_assets[0]),
        asset2=to_currency(pool_assets[1]),
        amount=ledger_amounts[0] if ledger_amounts else None,
        amount2=ledger_amounts[1] if len(ledger_amounts) > 1 else None,
        lp_token_out=to_ledger_amount(*lp_token_out) if lp_token_out else None,
        flags=flags,
    )


def build_amm_withdraw(
    account: str,
    pool_assets: Sequence[AssetRef],
    flags: int,
    amounts: Sequence[Tuple[AssetRef, Decimal]] = (),
    lp_token_in: Optional[Tuple[AssetRef, Decimal]] = None,
) -> AMMWithdraw:
    ledger_amounts = [to_ledger_amount(asset, value) for asset, value in amounts]
    return AMMWithdraw(
        account=account,
        asset=to_currency(pool_assets[0]),
        asset2=to_currency(pool_assets[1]),
        amount=ledger_amounts[0] if ledger_amounts else None,
        amount2=ledger_amounts[1] if len(ledger_amounts) > 1 else None,
        lp_token_in=to_ledger_amount(*lp_token_in) if lp_token_in else None,
        flags=flags,
    )
