from __future__ import annotations

import base64
import binascii
from enum import Enum
from typing import Any, List, Optional, Sequence

from .eligibility import Eligibility
from .errors import SignedResultFormatError
from .normalizer import TransactionSlot


class ResponseLayout(str, Enum):
    """How a provider lines up its signed results with the request.

    - FULL: one entry per request item, `None` where nothing was signed.
    - SPARSE: one entry per signable item, in order.
    - AUTO: FULL when the response length equals the slot count, else SPARSE.
    """

    AUTO = "auto"
    FULL = "full"
    SPARSE = "sparse"


def to_signed_bytes(value: Any) -> Optional[bytes]:
    """Normalize one provider entry (None, base64 str, list of ints or a byte buffer) to bytes."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return base64.b64decode(value.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise SignedResultFormatError("Signed entry is not valid base64") from exc
    if isinstance(value, (list, tuple)):
        if not all(isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255 for b in value):
            raise SignedResultFormatError("Signed entry array must hold integers in 0..255")
        return bytes(value)
    if isinstance(value, dict) and all(isinstance(k, str) and k.isdigit() for k in value):
        # Typed arrays that went through JSON arrive as {"0": 130, "1": 163, ...}
        ordered = [value[k] for k in sorted(value, key=int)]
        return to_signed_bytes(ordered)
    raise SignedResultFormatError(f"Unsupported signed entry type: {type(value).__name__}")


def _align(
    eligibility: Sequence[Eligibility], response: Sequence[Optional[bytes]], layout: ResponseLayout
) -> List[Optional[bytes]]:
    """Return one signed entry (or None) per slot."""
    if layout is ResponseLayout.AUTO:
        layout = ResponseLayout.FULL if len(response) == len(eligibility) else ResponseLayout.SPARSE

    if layout is ResponseLayout.FULL:
        return [response[i] if i < len(response) else None for i in range(len(eligibility))]

    # SPARSE: consume entries in order for signable slots; a short response
    # leaves the remaining signable slots unsigned.
    entries = iter(response)
    return [next(entries, None) if decision.should_sign else None for decision in eligibility]


def merge_signed_txns(
    slots: Sequence[TransactionSlot],
    eligibility: Sequence[Eligibility],
    response: Sequence[Any],
    *,
    return_group: bool = True,
    layout: ResponseLayout = ResponseLayout.AUTO,
) -> List[Optional[bytes]]:
    """
    Reassemble the provider response into one entry per slot.

    - Signable slot with a signed entry: the signed bytes.
    - Anything else: the slot's original encoding when `return_group` is True,
      otherwise None.

    The result always has `len(slots)` entries.
    """
    if len(slots) != len(eligibility):
        raise ValueError("slots and eligibility must have the same length")

    normalized = [to_signed_bytes(v) for v in response]
    aligned = _align(eligibility, normalized, ResponseLayout(layout))

    out: List[Optional[bytes]] = []
    for slot, decision, signed in zip(slots, eligibility, aligned):
        if decision.should_sign and signed is not None:
            out.append(signed)
        elif return_group:
            out.append(slot.encoded)
        else:
            out.append(None)
    return out
