"""
Wallet provider adapters.

Each adapter implements `ProviderAdapter` (connect, disconnect,
resume_session, sign_txns) and declares the response layout it returns.
"""

from .base import ProviderAdapter, SignedEntry, WalletMetadata, accounts_from_addresses, await_with_timeout
from .custom import CustomProvider
from .errors import KmdError, NoActiveWalletError, WalletConnectError, WalletError, WalletNotFoundError
from .kmd import KmdProvider
from .mnemonic import MnemonicProvider

__all__ = [
    "CustomProvider",
    "KmdError",
    "KmdProvider",
    "MnemonicProvider",
    "NoActiveWalletError",
    "ProviderAdapter",
    "SignedEntry",
    "WalletConnectError",
    "WalletError",
    "WalletMetadata",
    "WalletNotFoundError",
    "accounts_from_addresses",
    "await_with_timeout",
]
