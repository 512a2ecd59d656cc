from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from common.encoding import b64encode

from .eligibility import Eligibility
from .normalizer import TransactionSlot


class WalletTransaction(BaseModel):
    """
    One provider-facing request item (ARC-0001 `WalletTransaction`).

    Fields
    - txn: base64 of the unsigned transaction's msgpack encoding.
    - signers: None to ask the provider to sign; `[]` to tell it not to.
    - stxn: base64 of an already-signed wrapper, sent along for pre-signed slots.
    - auth_addr: optional authorizing address for rekeyed accounts.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    txn: str
    signers: Optional[List[str]] = None
    stxn: Optional[str] = None
    auth_addr: Optional[str] = Field(default=None, alias="authAddr")

    @property
    def should_sign(self) -> bool:
        return self.signers is None or len(self.signers) > 0

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict; absent fields are omitted so a signable item is just {"txn": ...}."""
        return self.model_dump(by_alias=True, exclude_none=True)


def build_sign_request(
    slots: Sequence[TransactionSlot], eligibility: Sequence[Eligibility]
) -> List[WalletTransaction]:
    if len(slots) != len(eligibility):
        raise ValueError("slots and eligibility must have the same length")

    items: List[WalletTransaction] = []
    for slot, decision in zip(slots, eligibility):
        txn = b64encode(slot.unsigned)
        if decision.should_sign:
            items.append(WalletTransaction(txn=txn))
        else:
            items.append(
                WalletTransaction(
                    txn=txn,
                    signers=[],
                    stxn=b64encode(slot.encoded) if slot.is_pre_signed else None,
                )
            )
    return items
