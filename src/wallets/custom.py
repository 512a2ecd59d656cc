from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, List, Optional, Sequence

from signing.merger import ResponseLayout
from signing.requests import WalletTransaction
from state.models import WalletAccount, WalletId, WalletState

from .base import SignedEntry, WalletMetadata, await_with_timeout
from .errors import WalletConnectError


logger = logging.getLogger(__name__)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class CustomProvider:
    """
    Adapter around caller-supplied callables, for wallets not built in.

    `connect` and `sign_txns` are required. `disconnect` and `resume_session`
    are optional; every callable may be sync or async.
    """

    wallet_id = WalletId.CUSTOM

    def __init__(
        self,
        *,
        connect: Callable[[], Any],
        sign_txns: Callable[[List[WalletTransaction]], Any],
        disconnect: Optional[Callable[[], Any]] = None,
        resume_session: Optional[Callable[[Optional[WalletState]], Any]] = None,
        metadata: Optional[WalletMetadata] = None,
        response_layout: ResponseLayout = ResponseLayout.AUTO,
    ) -> None:
        self.metadata = metadata or WalletMetadata(name="Custom Wallet")
        self.response_layout = ResponseLayout(response_layout)
        self._connect = connect
        self._sign_txns = sign_txns
        self._disconnect = disconnect
        self._resume_session = resume_session

    async def connect(self) -> List[WalletAccount]:
        accounts = await _maybe_await(self._connect())
        if not isinstance(accounts, (list, tuple)):
            raise WalletConnectError("[custom] connect() must return a list of accounts")
        return [
            a if isinstance(a, WalletAccount) else WalletAccount.model_validate(a)
            for a in accounts
        ]

    async def disconnect(self) -> None:
        if self._disconnect is not None:
            await _maybe_await(self._disconnect())
        logger.info("[custom] Disconnected")

    async def resume_session(self, state: Optional[WalletState]) -> Optional[List[WalletAccount]]:
        if self._resume_session is None:
            return None
        accounts = await _maybe_await(self._resume_session(state))
        if accounts is None:
            return None
        return [
            a if isinstance(a, WalletAccount) else WalletAccount.model_validate(a)
            for a in accounts
        ]

    async def sign_txns(
        self, txns: Sequence[WalletTransaction], *, timeout: Optional[float] = None
    ) -> Sequence[SignedEntry]:
        return await await_with_timeout(
            _maybe_await(self._sign_txns(list(txns))), timeout, wallet_id=self.wallet_id
        )


__all__ = ["CustomProvider"]
