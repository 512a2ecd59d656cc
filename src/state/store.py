from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

from .models import DEFAULT_NETWORK, SessionState, WalletAccount, WalletId, WalletState
from .storage import StorageAdapter


LOCAL_STORAGE_KEY = "@txnlab/use-wallet:v4"

logger = logging.getLogger(__name__)

Listener = Callable[[SessionState], None]


# -------- Pure mutations (previous state -> next state) --------
def _lookup(wallet_id: object) -> Optional[WalletId]:
    """Return the key for `wallet_id` if it is a known id, else None."""
    try:
        return WalletId(wallet_id)
    except ValueError:
        return None


def add_wallet(state: SessionState, wallet_id: WalletId, wallet: WalletState) -> SessionState:
    """Insert or overwrite a wallet entry and make it the active wallet."""
    wallets = dict(state.wallets)
    wallets[WalletId(wallet_id)] = wallet.copy_deep()
    return state.model_copy(update={"wallets": wallets, "active_wallet": WalletId(wallet_id)})


def remove_wallet(state: SessionState, wallet_id: WalletId) -> SessionState:
    key = _lookup(wallet_id)
    if key is None or key not in state.wallets:
        return state
    wallets = {k: v for k, v in state.wallets.items() if k != key}
    active = None if state.active_wallet == key else state.active_wallet
    return state.model_copy(update={"wallets": wallets, "active_wallet": active})


def set_active_wallet(state: SessionState, wallet_id: Optional[WalletId]) -> SessionState:
    """Select the active wallet (None clears it); a wallet that is not connected is a no-op."""
    if wallet_id is None:
        return state.model_copy(update={"active_wallet": None})
    key = _lookup(wallet_id)
    if key is None or key not in state.wallets:
        logger.warning('Wallet with id "%s" not found', getattr(wallet_id, "value", wallet_id))
        return state
    return state.model_copy(update={"active_wallet": key})


def set_active_account(state: SessionState, wallet_id: WalletId, address: str) -> SessionState:
    """Select `address` as the wallet's active account; unknown wallet or address is a no-op."""
    key = _lookup(wallet_id)
    wallet = state.wallets.get(key) if key is not None else None
    if wallet is None:
        logger.warning('Wallet with id "%s" not found', getattr(wallet_id, "value", wallet_id))
        return state

    account = next((a for a in wallet.accounts if a.address == address), None)
    if account is None:
        logger.warning('Account with address %s not found in wallet "%s"', address, key.value)
        return state

    updated = wallet.model_copy(update={"active_account": account.model_copy()})
    wallets = dict(state.wallets)
    wallets[key] = updated
    return state.model_copy(update={"wallets": wallets})


def set_accounts(
    state: SessionState, wallet_id: WalletId, accounts: Sequence[WalletAccount]
) -> SessionState:
    """
    Replace a wallet's accounts.

    The active account survives when its address is still present; otherwise
    it falls back to the first new account, or None for an empty list.
    """
    key = _lookup(wallet_id)
    wallet = state.wallets.get(key) if key is not None else None
    if wallet is None:
        logger.warning('Wallet with id "%s" not found', getattr(wallet_id, "value", wallet_id))
        return state

    new_accounts: List[WalletAccount] = []
    seen = set()
    for a in accounts:
        if a.address in seen:
            logger.warning('Duplicate account %s dropped from wallet "%s"', a.address, key.value)
            continue
        seen.add(a.address)
        new_accounts.append(a.model_copy())
    current = wallet.active_account
    if current is not None and any(a.address == current.address for a in new_accounts):
        active = current.model_copy()
    else:
        active = new_accounts[0] if new_accounts else None

    wallets = dict(state.wallets)
    wallets[key] = WalletState(accounts=new_accounts, active_account=active)
    return state.model_copy(update={"wallets": wallets})


def set_active_network(state: SessionState, network_id: str) -> SessionState:
    return state.model_copy(update={"active_network": str(network_id)})


# -------- Persistence --------
def dump_persisted_state(state: SessionState) -> str:
    return json.dumps(state.to_persisted(), separators=(",", ":"))


def load_persisted_state(storage: StorageAdapter, key: str = LOCAL_STORAGE_KEY) -> Optional[SessionState]:
    """Read and validate persisted state.

    Returns None when nothing is stored or the stored value is invalid.
    Invalid values are logged (warning with the parsed value, error with the
    reason) and discarded as a whole. Never raises.
    """
    parsed: Any = None
    try:
        serialized = storage.get_item(key)
        if serialized is None:
            return None
        parsed = json.loads(serialized)
        return SessionState.from_persisted(parsed)
    except Exception as exc:
        logger.warning("Parsed state: %r", parsed)
        logger.error("Could not load state from storage: %s", exc)
        return None


# -------- Store --------
class SessionStore:
    """
    Holder of the canonical `SessionState`.

    - Every mutation replaces the whole state object under a lock, so readers
      only ever see a complete snapshot.
    - After each commit, listeners are notified and the durable subset is
      written to the storage adapter. Write failures are logged and ignored.
    - The algod client for the active network is held alongside the state and
      is never persisted.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        *,
        initial_state: Optional[SessionState] = None,
        key: str = LOCAL_STORAGE_KEY,
        algod_client: Any = None,
    ) -> None:
        self._storage = storage
        self._key = key
        self._state = initial_state if initial_state is not None else SessionState.empty()
        self._algod_client = algod_client
        self._lock = threading.Lock()
        self._listeners: Dict[int, Listener] = {}
        self._next_listener_id = 0

    # -------- Construction helpers --------
    @classmethod
    def from_storage(
        cls,
        storage: StorageAdapter,
        *,
        key: str = LOCAL_STORAGE_KEY,
        network: str = DEFAULT_NETWORK,
        algod_client: Any = None,
    ) -> "SessionStore":
        """Build a store from persisted state, falling back to an empty state on `network`."""
        loaded = load_persisted_state(storage, key)
        initial = loaded if loaded is not None else SessionState.empty(network)
        store = cls(storage, initial_state=initial, key=key, algod_client=algod_client)
        store._persist(initial)
        return store

    # -------- Snapshot access --------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def algod_client(self) -> Any:
        return self._algod_client

    def get_wallet(self, wallet_id: WalletId) -> Optional[WalletState]:
        key = _lookup(wallet_id)
        return self._state.wallets.get(key) if key is not None else None

    def connected_addresses(self, wallet_id: WalletId) -> List[str]:
        wallet = self.get_wallet(wallet_id)
        return wallet.addresses if wallet is not None else []

    @property
    def active_wallet_state(self) -> Optional[WalletState]:
        state = self._state
        if state.active_wallet is None:
            return None
        return state.wallets.get(state.active_wallet)

    @property
    def active_account(self) -> Optional[WalletAccount]:
        wallet = self.active_wallet_state
        return wallet.active_account if wallet is not None else None

    # -------- Mutations --------
    def add_wallet(self, wallet_id: WalletId, wallet: WalletState) -> SessionState:
        return self._commit(lambda s: add_wallet(s, wallet_id, wallet))

    def remove_wallet(self, wallet_id: WalletId) -> SessionState:
        return self._commit(lambda s: remove_wallet(s, wallet_id))

    def set_active_wallet(self, wallet_id: Optional[WalletId]) -> SessionState:
        return self._commit(lambda s: set_active_wallet(s, wallet_id))

    def set_active_account(self, wallet_id: WalletId, address: str) -> SessionState:
        return self._commit(lambda s: set_active_account(s, wallet_id, address))

    def set_accounts(self, wallet_id: WalletId, accounts: Sequence[WalletAccount]) -> SessionState:
        return self._commit(lambda s: set_accounts(s, wallet_id, accounts))

    def set_active_network(self, network_id: str, algod_client: Any) -> SessionState:
        def _apply(s: SessionState) -> SessionState:
            self._algod_client = algod_client
            return set_active_network(s, network_id)

        return self._commit(_apply)

    # -------- Subscriptions --------
    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register `callback(state)` for every committed replacement; returns an unsubscribe function."""
        with self._lock:
            listener_id = self._next_listener_id
            self._next_listener_id += 1
            self._listeners[listener_id] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(listener_id, None)

        return unsubscribe

    # -------- Internal --------
    def _commit(self, mutate: Callable[[SessionState], SessionState]) -> SessionState:
        with self._lock:
            next_state = mutate(self._state)
            self._state = next_state
            listeners = list(self._listeners.values())

        for listener in listeners:
            try:
                listener(next_state)
            except Exception:
                logger.exception("State listener raised; continuing")

        self._persist(next_state)
        return next_state

    def _persist(self, state: SessionState) -> None:
        try:
            self._storage.set_item(self._key, dump_persisted_state(state))
        except Exception as exc:
            logger.error("Could not save state to storage: %s", exc)
