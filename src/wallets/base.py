from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, List, Optional, Protocol, Sequence, TypeVar, Union, runtime_checkable

from signing.errors import SigningTimeoutError
from signing.merger import ResponseLayout
from signing.requests import WalletTransaction
from state.models import WalletAccount, WalletId, WalletState


T = TypeVar("T")

# What providers may hand back for one slot before the merger normalizes it
SignedEntry = Union[bytes, bytearray, memoryview, str, List[int], None]


@dataclass(frozen=True)
class WalletMetadata:
    name: str
    icon: str = ""


@runtime_checkable
class ProviderAdapter(Protocol):
    """
    Capability interface implemented once per wallet backend.

    - connect(): run the backend handshake and return the authorized accounts.
    - disconnect(): end the backend session.
    - resume_session(state): restore a persisted session; return a fresh
      account list when the backend reports one, else None.
    - sign_txns(txns, timeout=None): sign the request items that carry no
      `signers: []` marker. Entries may be bytes, base64 strings or lists
      of ints, laid out as declared by `response_layout`.
    """

    wallet_id: WalletId
    metadata: WalletMetadata
    response_layout: ResponseLayout

    async def connect(self) -> List[WalletAccount]:
        ...

    async def disconnect(self) -> None:
        ...

    async def resume_session(self, state: Optional[WalletState]) -> Optional[List[WalletAccount]]:
        ...

    async def sign_txns(
        self, txns: Sequence[WalletTransaction], *, timeout: Optional[float] = None
    ) -> Sequence[SignedEntry]:
        ...


async def await_with_timeout(
    awaitable: Awaitable[T], timeout: Optional[float], *, wallet_id: WalletId
) -> T:
    """Await `awaitable`, raising `SigningTimeoutError` after `timeout` seconds (None waits forever)."""
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        raise SigningTimeoutError(
            f"[{WalletId(wallet_id).value}] Timed out after {timeout:g}s waiting for the wallet",
            {"wallet": WalletId(wallet_id).value, "timeout": timeout},
        ) from exc


def accounts_from_addresses(name: str, addresses: Sequence[str]) -> List[WalletAccount]:
    """Name accounts "<wallet name> Account <n>" in address order."""
    return [
        WalletAccount(name=f"{name} Account {idx + 1}", address=address)
        for idx, address in enumerate(addresses)
    ]


__all__ = [
    "ProviderAdapter",
    "SignedEntry",
    "WalletMetadata",
    "accounts_from_addresses",
    "await_with_timeout",
]
