from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Collection, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from common.encoding import compare_accounts
from common.logging_config import setup_logging
from signing.engine import sign_transactions as _sign_transactions
from signing.engine import transaction_signer as _transaction_signer
from signing.merger import ResponseLayout
from signing.normalizer import TxnGroup
from state.models import (
    DEFAULT_NETWORK,
    NetworkId,
    SessionState,
    WalletAccount,
    WalletId,
    WalletState,
    is_valid_network_id,
)
from state.storage import MemoryStorage, StorageAdapter
from state.store import LOCAL_STORAGE_KEY, SessionStore
from wallets.base import ProviderAdapter
from wallets.errors import NoActiveWalletError, WalletConnectError, WalletNotFoundError

from .network import (
    NetworkConfig,
    create_algod_client,
    create_default_network_config,
    merge_network_config,
)

if TYPE_CHECKING:
    from common.config import Settings


logger = logging.getLogger(__name__)


class WalletManager:
    """
    Session manager for a set of wallet providers.

    Responsibilities
    - Build the `SessionStore` from persisted state and drop persisted
      wallets that have no configured provider.
    - Route connect/disconnect/resume to providers and record the outcome.
    - Hold the network config and swap the algod client on network changes.
    - Sign with the active wallet through the shared signing pipeline.
    """

    def __init__(
        self,
        providers: Iterable[ProviderAdapter] = (),
        *,
        storage: Optional[StorageAdapter] = None,
        network: str = DEFAULT_NETWORK,
        algod_config: Optional[Mapping[str, Any]] = None,
        storage_key: str = LOCAL_STORAGE_KEY,
    ) -> None:
        network = NetworkId(network).value
        self._providers: Dict[WalletId, ProviderAdapter] = {}
        for provider in providers:
            wallet_id = WalletId(provider.wallet_id)
            self._providers[wallet_id] = provider
            logger.info("[Manager] Initialized %s", wallet_id.value)

        self.network_config: NetworkConfig = merge_network_config(
            create_default_network_config(), algod_config, network
        )
        self.store = SessionStore.from_storage(
            storage if storage is not None else MemoryStorage(),
            key=storage_key,
            network=network,
        )
        active = self.store.state.active_network
        if not is_valid_network_id(active):
            logger.warning("[Manager] Unknown persisted network %s, using %s", active, network)
            active = network
        self.store.set_active_network(active, create_algod_client(self.network_config.for_network(active)))
        self._drop_unknown_wallets()

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        providers: Iterable[ProviderAdapter] = (),
        *,
        algod_config: Optional[Mapping[str, Any]] = None,
    ) -> "WalletManager":
        """Configure logging, then build a manager whose network, storage backend and key come from `settings`."""
        setup_logging(settings.log_level)
        return cls(
            providers,
            storage=settings.create_storage(),
            network=settings.network,
            algod_config=algod_config,
            storage_key=settings.storage_key,
        )

    def _drop_unknown_wallets(self) -> None:
        state = self.store.state
        for wallet_id in list(state.wallets):
            if wallet_id not in self._providers:
                logger.warning("[Manager] Connected wallet not found: %s", wallet_id.value)
                self.store.remove_wallet(wallet_id)

        state = self.store.state
        if state.active_wallet is not None and state.active_wallet not in self._providers:
            logger.warning("[Manager] Active wallet not found: %s", state.active_wallet.value)
            self.store.set_active_wallet(None)

    # -------- Providers --------
    @property
    def providers(self) -> List[ProviderAdapter]:
        return list(self._providers.values())

    def get_provider(self, wallet_id: WalletId) -> ProviderAdapter:
        try:
            return self._providers[WalletId(wallet_id)]
        except (KeyError, ValueError) as exc:
            raise WalletNotFoundError(f"[Manager] Wallet not found: {wallet_id}") from exc

    def subscribe(self, callback):
        return self.store.subscribe(callback)

    @property
    def state(self) -> SessionState:
        return self.store.state

    # -------- Sessions --------
    async def connect(self, wallet_id: WalletId) -> List[WalletAccount]:
        provider = self.get_provider(wallet_id)
        wallet_id = WalletId(provider.wallet_id)
        try:
            accounts = await provider.connect()
        except WalletConnectError:
            raise
        except Exception as exc:
            logger.error("[%s] Error connecting: %s", wallet_id.value, exc)
            raise WalletConnectError(f"[{wallet_id.value}] {exc}") from exc

        if not accounts:
            raise WalletConnectError(f"[{wallet_id.value}] No accounts found!")

        try:
            wallet = WalletState(accounts=list(accounts), active_account=accounts[0])
        except ValidationError as exc:
            logger.error("[%s] Invalid accounts from provider: %s", wallet_id.value, exc)
            raise WalletConnectError(f"[{wallet_id.value}] Invalid accounts returned: {exc}") from exc
        self.store.add_wallet(wallet_id, wallet)
        logger.info("[%s] Connected with %d account(s)", wallet_id.value, len(accounts))
        return list(accounts)

    async def disconnect(self, wallet_id: WalletId) -> None:
        provider = self.get_provider(wallet_id)
        wallet_id = WalletId(provider.wallet_id)
        try:
            await provider.disconnect()
        finally:
            self.store.remove_wallet(wallet_id)
        logger.info("[%s] Disconnected", wallet_id.value)

    async def disconnect_all(self) -> None:
        for wallet_id in list(self.store.state.wallets):
            if wallet_id in self._providers:
                await self.disconnect(wallet_id)

    async def resume_sessions(self) -> None:
        for wallet_id, provider in list(self._providers.items()):
            persisted = self.store.get_wallet(wallet_id)
            if persisted is None:
                continue
            try:
                accounts = await provider.resume_session(persisted)
            except Exception as exc:
                logger.error("[%s] Error resuming session: %s", wallet_id.value, exc)
                self.store.remove_wallet(wallet_id)
                raise
            if accounts is None:
                continue
            if not accounts:
                logger.warning("[%s] Resumed session has no accounts; disconnecting", wallet_id.value)
                self.store.remove_wallet(wallet_id)
                continue
            if not compare_accounts(accounts, persisted.accounts):
                logger.warning("[%s] Session accounts mismatch, updating accounts", wallet_id.value)
                self.store.set_accounts(wallet_id, accounts)

    # -------- Active wallet / account --------
    def set_active_wallet(self, wallet_id: Optional[WalletId]) -> None:
        if wallet_id is not None:
            wallet_id = WalletId(self.get_provider(wallet_id).wallet_id)
            if self.store.get_wallet(wallet_id) is None:
                logger.warning("[Manager] Wallet %s is not connected", wallet_id.value)
                return
        self.store.set_active_wallet(wallet_id)

    def set_active_account(self, address: str, wallet_id: Optional[WalletId] = None) -> None:
        target = wallet_id if wallet_id is not None else self.store.state.active_wallet
        if target is None:
            raise NoActiveWalletError("[Manager] No active wallet found!")
        self.store.set_active_account(WalletId(target), address)

    # -------- Network --------
    @property
    def active_network(self) -> str:
        return self.store.state.active_network

    @property
    def algod_client(self) -> Any:
        return self.store.algod_client

    def set_active_network(self, network_id: str) -> None:
        network_id = NetworkId(network_id).value
        if self.store.state.active_network == network_id:
            return
        client = create_algod_client(self.network_config.for_network(network_id))
        self.store.set_active_network(network_id, client)
        logger.info("[Manager] Active network set to %s", network_id)

    # -------- Active wallet views --------
    @property
    def active_wallet_id(self) -> Optional[WalletId]:
        return self.store.state.active_wallet

    @property
    def active_provider(self) -> Optional[ProviderAdapter]:
        wallet_id = self.active_wallet_id
        return self._providers.get(wallet_id) if wallet_id is not None else None

    @property
    def active_wallet_accounts(self) -> Optional[List[WalletAccount]]:
        wallet = self.store.active_wallet_state
        return list(wallet.accounts) if wallet is not None else None

    @property
    def active_wallet_addresses(self) -> Optional[List[str]]:
        wallet = self.store.active_wallet_state
        return wallet.addresses if wallet is not None else None

    @property
    def active_account(self) -> Optional[WalletAccount]:
        return self.store.active_account

    @property
    def active_address(self) -> Optional[str]:
        account = self.active_account
        return account.address if account is not None else None

    # -------- Signing --------
    def _require_active(self) -> ProviderAdapter:
        provider = self.active_provider
        if provider is None:
            raise NoActiveWalletError("[Manager] No active wallet found!")
        return provider

    async def sign_transactions(
        self,
        txn_group: TxnGroup,
        indexes_to_sign: Optional[Collection[int]] = None,
        return_group: bool = True,
        *,
        layout: Optional[ResponseLayout] = None,
        timeout: Optional[float] = None,
    ) -> List[Optional[bytes]]:
        provider = self._require_active()
        return await _sign_transactions(
            self.store,
            provider.wallet_id,
            provider,
            txn_group,
            indexes_to_sign,
            return_group,
            layout=layout,
            timeout=timeout,
        )

    async def transaction_signer(self, txn_group: TxnGroup, indexes_to_sign: Collection[int]) -> List[bytes]:
        provider = self._require_active()
        return await _transaction_signer(self.store, provider.wallet_id, provider, txn_group, indexes_to_sign)


__all__ = ["WalletManager"]
