"""
Wallet session state: models, the session store and persistence adapters.

The store keeps one immutable `SessionState`, replaces it on every mutation,
and writes the durable subset (wallets, active wallet, active network) as JSON
through a storage adapter.
"""

from .models import NetworkId, SessionState, WalletAccount, WalletId, WalletState
from .storage import FileStorage, MemoryStorage, StorageAdapter
from .store import LOCAL_STORAGE_KEY, SessionStore, dump_persisted_state, load_persisted_state

__all__ = [
    "LOCAL_STORAGE_KEY",
    "FileStorage",
    "MemoryStorage",
    "NetworkId",
    "SessionState",
    "SessionStore",
    "StorageAdapter",
    "WalletAccount",
    "WalletId",
    "WalletState",
    "dump_persisted_state",
    "load_persisted_state",
]
