"""
Transaction co-signing engine.

Modules:
- normalizer: flatten accepted group shapes and decode each slot's envelope
- eligibility: decide which slots this call should sign
- requests: build ARC-0001 request items for the provider
- merger: normalize provider results and reassemble the group
- engine: the async pipeline tying the steps together
"""

from .eligibility import Eligibility, resolve_eligibility
from .engine import SigningStage, sign_transactions, transaction_signer
from .errors import (
    InvalidTransactionGroupError,
    SignedResultFormatError,
    SigningError,
    SigningTimeoutError,
    SignTxnsError,
)
from .merger import ResponseLayout, merge_signed_txns, to_signed_bytes
from .normalizer import TransactionSlot, decode_slot, flatten_txn_group, normalize_txn_group
from .requests import WalletTransaction, build_sign_request

__all__ = [
    "Eligibility",
    "InvalidTransactionGroupError",
    "ResponseLayout",
    "SignedResultFormatError",
    "SigningError",
    "SigningStage",
    "SigningTimeoutError",
    "SignTxnsError",
    "TransactionSlot",
    "WalletTransaction",
    "build_sign_request",
    "decode_slot",
    "flatten_txn_group",
    "merge_signed_txns",
    "normalize_txn_group",
    "resolve_eligibility",
    "sign_transactions",
    "to_signed_bytes",
    "transaction_signer",
]
