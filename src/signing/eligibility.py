from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Iterable, List, Optional

from .normalizer import TransactionSlot


@dataclass(frozen=True)
class Eligibility:
    index: int
    signer_address: str
    should_sign: bool


def resolve_eligibility(
    slots: Iterable[TransactionSlot],
    connected_addresses: Collection[str],
    indexes_to_sign: Optional[Collection[int]] = None,
) -> List[Eligibility]:
    """
    Decide per slot whether this call should ask the provider to sign it.

    A slot is signed only when it is selected by `indexes_to_sign` (or no
    filter is given), its sender is one of `connected_addresses`, and it is
    not already signed. An index listed explicitly is still skipped when its
    sender is not connected, which lets groups spanning several wallets be
    split across separate calls.
    """
    connected = set(connected_addresses)
    selected = set(indexes_to_sign) if indexes_to_sign is not None else None

    out: List[Eligibility] = []
    for slot in slots:
        is_index_match = selected is None or slot.index in selected
        can_sign = slot.signer_address in connected and not slot.is_pre_signed
        out.append(
            Eligibility(
                index=slot.index,
                signer_address=slot.signer_address,
                should_sign=is_index_match and can_sign,
            )
        )
    return out
