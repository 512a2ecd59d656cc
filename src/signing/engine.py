"""
Co-signing pipeline shared by every provider adapter.

    REQUESTED -> NORMALIZED -> ELIGIBILITY_RESOLVED -> PROVIDER_CALLED -> MERGED -> RETURNED
                                                            |
                                                            +-> FAILED

The session store is only read (for the wallet's connected addresses). A
provider failure propagates unchanged and leaves the store untouched.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Collection, List, Optional

from state.models import WalletId
from state.store import SessionStore

from .eligibility import resolve_eligibility
from .merger import ResponseLayout, merge_signed_txns
from .normalizer import TxnGroup, normalize_txn_group
from .requests import build_sign_request

if TYPE_CHECKING:
    from wallets.base import ProviderAdapter


logger = logging.getLogger(__name__)


class SigningStage(str, Enum):
    REQUESTED = "requested"
    NORMALIZED = "normalized"
    ELIGIBILITY_RESOLVED = "eligibility_resolved"
    PROVIDER_CALLED = "provider_called"
    MERGED = "merged"
    RETURNED = "returned"
    FAILED = "failed"


def _stage(wallet_id: WalletId, stage: SigningStage, **details) -> None:
    logger.debug("[%s] sign_transactions: %s %s", wallet_id.value, stage.value, details or "")


async def sign_transactions(
    store: SessionStore,
    wallet_id: WalletId,
    provider: "ProviderAdapter",
    txn_group: TxnGroup,
    indexes_to_sign: Optional[Collection[int]] = None,
    return_group: bool = True,
    *,
    layout: Optional[ResponseLayout] = None,
    timeout: Optional[float] = None,
) -> List[Optional[bytes]]:
    """
    Ask `provider` to sign the slots of `txn_group` that `wallet_id` can sign.

    Returns one entry per transaction. With `return_group=True` the result is
    a complete group: unsigned or skipped slots keep their original encoding.
    With `return_group=False` those slots are None.

    `timeout` is passed through to the provider; the pipeline itself never
    times out or retries.
    """
    wallet_id = WalletId(wallet_id)
    _stage(wallet_id, SigningStage.REQUESTED, indexes_to_sign=indexes_to_sign)

    slots = normalize_txn_group(txn_group)
    _stage(wallet_id, SigningStage.NORMALIZED, count=len(slots))

    eligibility = resolve_eligibility(slots, store.connected_addresses(wallet_id), indexes_to_sign)
    _stage(
        wallet_id,
        SigningStage.ELIGIBILITY_RESOLVED,
        to_sign=[e.index for e in eligibility if e.should_sign],
    )

    request = build_sign_request(slots, eligibility)
    _stage(wallet_id, SigningStage.PROVIDER_CALLED, items=len(request))
    try:
        response = await provider.sign_txns(request, timeout=timeout)
    except Exception as exc:
        logger.error("[%s] Error signing transactions: %s", wallet_id.value, exc)
        _stage(wallet_id, SigningStage.FAILED)
        raise

    merged = merge_signed_txns(
        slots,
        eligibility,
        response,
        return_group=return_group,
        layout=layout if layout is not None else provider.response_layout,
    )
    _stage(wallet_id, SigningStage.MERGED)
    _stage(wallet_id, SigningStage.RETURNED, count=len(merged))
    return merged


async def transaction_signer(
    store: SessionStore,
    wallet_id: WalletId,
    provider: "ProviderAdapter",
    txn_group: TxnGroup,
    indexes_to_sign: Collection[int],
) -> List[bytes]:
    """Signed transactions only, in group order (the shape composers expect from a signer)."""
    results = await sign_transactions(
        store, wallet_id, provider, txn_group, indexes_to_sign, return_group=False
    )
    return [signed for signed in results if signed is not None]
