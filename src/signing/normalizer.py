"""
Transaction group normalization.

Accepted input shapes:
- a single unsigned `algosdk.transaction.Transaction`
- a single encoded transaction (`bytes`, `bytearray` or `memoryview`)
- a flat list of either
- a list of lists of either (several atomic groups submitted in one call)

Nesting is an input convenience only: group membership is carried by the
group id inside each encoding, so every shape flattens to one ordered list.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, List, Sequence, Union

import msgpack
from algosdk import encoding
from algosdk.transaction import Transaction

from .errors import InvalidTransactionGroupError


EncodedTxn = Union[bytes, bytearray, memoryview]
TxnItem = Union[Transaction, EncodedTxn]
TxnGroup = Union[TxnItem, Sequence[TxnItem], Sequence[Sequence[TxnItem]]]

_SIGNATURE_KEYS = ("sig", "msig", "lsig")


@dataclass(frozen=True)
class TransactionSlot:
    """One position of a normalized group.

    - encoded: bytes exactly as supplied (signed wrapper or bare transaction).
    - unsigned: msgpack encoding of the bare transaction.
    - is_pre_signed: True when `encoded` already carries a signature.
    - signer_address: sender address of the transaction.
    """

    index: int
    encoded: bytes
    unsigned: bytes
    is_pre_signed: bool
    signer_address: str


def _is_encoded(item: Any) -> bool:
    return isinstance(item, (bytes, bytearray, memoryview))


def _is_item(item: Any) -> bool:
    return isinstance(item, Transaction) or _is_encoded(item)


def _encode_item(item: TxnItem) -> bytes:
    if isinstance(item, Transaction):
        return base64.b64decode(encoding.msgpack_encode(item))
    return bytes(item)


def flatten_txn_group(group: TxnGroup) -> List[bytes]:
    """Flatten any accepted shape into an ordered list of encoded transactions."""
    if _is_item(group):
        return [_encode_item(group)]

    if not isinstance(group, (list, tuple)):
        raise InvalidTransactionGroupError(
            f"Unsupported transaction group type: {type(group).__name__}"
        )

    out: List[bytes] = []
    for position, element in enumerate(group):
        if _is_item(element):
            out.append(_encode_item(element))
        elif isinstance(element, (list, tuple)):
            for inner_position, inner in enumerate(element):
                if not _is_item(inner):
                    raise InvalidTransactionGroupError(
                        f"Unsupported transaction at [{position}][{inner_position}]: "
                        f"{type(inner).__name__}"
                    )
                out.append(_encode_item(inner))
        else:
            raise InvalidTransactionGroupError(
                f"Unsupported transaction at [{position}]: {type(element).__name__}"
            )
    return out


def _unpack(encoded: bytes) -> Any:
    try:
        return msgpack.unpackb(encoded, raw=False, strict_map_key=False)
    except (ValueError, TypeError) as exc:
        raise InvalidTransactionGroupError(f"Could not decode transaction: {exc}") from exc


def decode_slot(index: int, encoded: bytes) -> TransactionSlot:
    """Partially decode the msgpack envelope of one encoded transaction."""
    obj = _unpack(encoded)
    if not isinstance(obj, dict):
        raise InvalidTransactionGroupError(f"Transaction at index {index} is not a msgpack map")

    is_signed = isinstance(obj.get("txn"), dict) and any(k in obj for k in _SIGNATURE_KEYS)
    txn = obj["txn"] if is_signed else obj

    if "type" not in txn or not isinstance(txn.get("snd"), (bytes, bytearray)):
        raise InvalidTransactionGroupError(
            f"Transaction at index {index} has no type or sender field"
        )

    # Unpacking keeps the canonical key order, so repacking the inner map
    # reproduces the original unsigned encoding.
    unsigned = msgpack.packb(txn, use_bin_type=True) if is_signed else encoded
    return TransactionSlot(
        index=index,
        encoded=encoded,
        unsigned=unsigned,
        is_pre_signed=is_signed,
        signer_address=encoding.encode_address(bytes(txn["snd"])),
    )


def normalize_txn_group(group: TxnGroup) -> List[TransactionSlot]:
    return [decode_slot(i, encoded) for i, encoded in enumerate(flatten_txn_group(group))]


__all__ = [
    "TransactionSlot",
    "TxnGroup",
    "TxnItem",
    "flatten_txn_group",
    "decode_slot",
    "normalize_txn_group",
]
