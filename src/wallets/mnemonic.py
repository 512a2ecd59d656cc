from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from algosdk import account, encoding, mnemonic
from algosdk.error import WrongMnemonicLengthError, WrongChecksumError

from signing.errors import FAILURE, SignTxnsError
from signing.merger import ResponseLayout
from signing.requests import WalletTransaction
from state.models import NetworkId, WalletAccount, WalletId, WalletState

from .base import SignedEntry, WalletMetadata, await_with_timeout
from .errors import WalletConnectError


logger = logging.getLogger(__name__)

MnemonicPrompt = Callable[[], Union[str, Awaitable[str]]]


class MnemonicProvider:
    """
    Test-only provider holding a single account derived from a 25-word mnemonic.

    Refuses to connect or sign while the active network is MainNet. Returns
    one entry per request item (FULL layout): the signed transaction for
    items it signed, None for the rest.
    """

    wallet_id = WalletId.MNEMONIC
    response_layout = ResponseLayout.FULL

    def __init__(
        self,
        *,
        mnemonic_prompt: MnemonicPrompt,
        network_getter: Optional[Callable[[], str]] = None,
        metadata: Optional[WalletMetadata] = None,
    ) -> None:
        self.metadata = metadata or WalletMetadata(name="Mnemonic")
        self._mnemonic_prompt = mnemonic_prompt
        self._network_getter = network_getter
        self._private_key: Optional[str] = None
        self._address: Optional[str] = None

    @property
    def address(self) -> Optional[str]:
        return self._address

    def _check_network(self) -> None:
        network = self._network_getter() if self._network_getter else None
        if network == NetworkId.MAINNET.value:
            logger.warning("[mnemonic] The Mnemonic wallet provider is insecure and intended for testing only")
            raise WalletConnectError("[mnemonic] MainNet is not supported by the Mnemonic wallet")

    async def _load_key(self) -> str:
        if self._private_key is not None:
            return self._private_key
        phrase = self._mnemonic_prompt()
        if inspect.isawaitable(phrase):
            phrase = await phrase
        if not phrase:
            raise WalletConnectError("[mnemonic] No mnemonic provided")
        try:
            key = mnemonic.to_private_key(str(phrase).strip())
        except (WrongMnemonicLengthError, WrongChecksumError, KeyError, ValueError) as exc:
            raise WalletConnectError(f"[mnemonic] Invalid mnemonic: {exc}") from exc
        self._private_key = key
        self._address = account.address_from_private_key(key)
        return key

    async def connect(self) -> List[WalletAccount]:
        self._check_network()
        await self._load_key()
        logger.info("[mnemonic] Connected")
        return [WalletAccount(name=f"{self.metadata.name} Account", address=self._address)]

    async def disconnect(self) -> None:
        self._private_key = None
        self._address = None
        logger.info("[mnemonic] Disconnected")

    async def resume_session(self, state: Optional[WalletState]) -> Optional[List[WalletAccount]]:
        # The key is never persisted, so there is nothing to resume from.
        if state is not None:
            logger.info("[mnemonic] Session needs a fresh connect; key is not persisted")
        return None

    async def sign_txns(
        self, txns: Sequence[WalletTransaction], *, timeout: Optional[float] = None
    ) -> List[SignedEntry]:
        return await await_with_timeout(self._sign(txns), timeout, wallet_id=self.wallet_id)

    async def _sign(self, txns: Sequence[WalletTransaction]) -> List[SignedEntry]:
        try:
            self._check_network()
        except WalletConnectError as exc:
            raise SignTxnsError(FAILURE, str(exc), {"wallet": self.wallet_id.value}) from exc
        key = await self._load_key()

        signed: List[SignedEntry] = []
        for item in txns:
            if not item.should_sign:
                signed.append(None)
                continue
            txn = encoding.msgpack_decode(item.txn)
            if txn.sender != self._address:
                signed.append(None)
                continue
            signed.append(encoding.msgpack_encode(txn.sign(key)))
        return signed


__all__ = ["MnemonicProvider"]
