from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import httpx

from signing.errors import FAILURE, SignTxnsError
from signing.merger import ResponseLayout
from signing.requests import WalletTransaction
from state.models import WalletAccount, WalletId, WalletState

from .base import SignedEntry, WalletMetadata, accounts_from_addresses, await_with_timeout
from .errors import KmdError, WalletConnectError


DEFAULT_KMD_TOKEN = "a" * 64
DEFAULT_KMD_SERVER = "http://127.0.0.1"
DEFAULT_KMD_PORT = 4002
DEFAULT_KMD_WALLET = "unencrypted-default-wallet"

_RETRY_STATUSES = (502, 503, 504)

logger = logging.getLogger(__name__)

PasswordPrompt = Callable[[], Union[str, Awaitable[str]]]


def _empty_password() -> str:
    return ""


class KmdProvider:
    """
    Provider adapter for a local Key Management Daemon (KMD) over its REST API.

    Notes
    - Every operation opens a wallet handle with `POST /v1/wallet/init` and
      releases it afterwards.
    - The wallet password comes from `password_prompt` (sync or async) and is
      cached after the first call.
    - Transport errors and 502/503/504 are retried with exponential backoff;
      other non-200 responses raise `KmdError`.
    - Signing returns one base64 entry per signable item (SPARSE layout).
    """

    wallet_id = WalletId.KMD
    response_layout = ResponseLayout.SPARSE

    def __init__(
        self,
        *,
        token: str = DEFAULT_KMD_TOKEN,
        base_server: str = DEFAULT_KMD_SERVER,
        port: Union[int, str, None] = DEFAULT_KMD_PORT,
        wallet: str = DEFAULT_KMD_WALLET,
        password_prompt: Optional[PasswordPrompt] = None,
        metadata: Optional[WalletMetadata] = None,
        timeout: float = 15.0,
        max_attempts: int = 3,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        base = base_server.rstrip("/")
        base_url = f"{base}:{port}" if port not in (None, "") else base
        self.metadata = metadata or WalletMetadata(name="KMD")
        self._wallet_name = wallet
        self._wallet_id_cache: Optional[str] = None
        self._password_prompt = password_prompt or _empty_password
        self._password: Optional[str] = None
        self._max_attempts = max(1, max_attempts)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"X-KMD-API-Token": token},
        )

    @classmethod
    def from_settings(cls, settings, *, password_prompt: Optional[PasswordPrompt] = None) -> "KmdProvider":
        return cls(
            token=settings.kmd_token,
            base_server=settings.kmd_server,
            port=settings.kmd_port,
            wallet=settings.kmd_wallet,
            password_prompt=password_prompt,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "KmdProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --------------- Provider adapter ---------------
    async def connect(self) -> List[WalletAccount]:
        logger.info("[kmd] Connecting...")
        try:
            token = await self._init_handle()
            try:
                addresses = await self._list_keys(token)
            finally:
                await self._release_handle(token)
        except KmdError as exc:
            logger.error("[kmd] Error connecting: %s", exc)
            raise WalletConnectError(f"[kmd] {exc}") from exc

        accounts = accounts_from_addresses(self.metadata.name, addresses)
        logger.info("[kmd] Connected with %d account(s)", len(accounts))
        return accounts

    async def disconnect(self) -> None:
        logger.info("[kmd] Disconnected")
        self._password = None

    async def resume_session(self, state: Optional[WalletState]) -> Optional[List[WalletAccount]]:
        if state is None:
            logger.info("[kmd] No session to resume")
            return None
        # KMD keeps no session; the persisted accounts stay as they are.
        logger.info("[kmd] Session resumed")
        return None

    async def sign_txns(
        self, txns: Sequence[WalletTransaction], *, timeout: Optional[float] = None
    ) -> List[SignedEntry]:
        return await await_with_timeout(self._sign(txns), timeout, wallet_id=self.wallet_id)

    # --------------- Internal ---------------
    async def _sign(self, txns: Sequence[WalletTransaction]) -> List[SignedEntry]:
        to_sign = [item for item in txns if item.should_sign]
        if not to_sign:
            return []
        try:
            token = await self._init_handle()
            try:
                password = await self._get_password()
                signed: List[SignedEntry] = []
                for item in to_sign:
                    data = await self._request(
                        "POST",
                        "/v1/transaction/sign",
                        {
                            "wallet_handle_token": token,
                            "wallet_password": password,
                            "transaction": item.txn,
                        },
                    )
                    signed_txn = data.get("signed_transaction")
                    if not isinstance(signed_txn, str):
                        raise KmdError("KMD did not return signed_transaction")
                    signed.append(signed_txn)
            finally:
                await self._release_handle(token)
        except KmdError as exc:
            raise SignTxnsError(FAILURE, f"[kmd] {exc}", {"wallet": self.wallet_id.value}) from exc
        return signed

    async def _get_password(self) -> str:
        if self._password is not None:
            return self._password
        value = self._password_prompt()
        if inspect.isawaitable(value):
            value = await value
        self._password = str(value or "")
        return self._password

    async def _fetch_wallet_id(self) -> str:
        if self._wallet_id_cache:
            return self._wallet_id_cache
        data = await self._request("GET", "/v1/wallets", None)
        wallets = data.get("wallets") or []
        for record in wallets:
            if isinstance(record, dict) and record.get("name") == self._wallet_name:
                self._wallet_id_cache = str(record.get("id"))
                return self._wallet_id_cache
        raise KmdError(f'Wallet "{self._wallet_name}" not found')

    async def _init_handle(self) -> str:
        wallet_id = await self._fetch_wallet_id()
        password = await self._get_password()
        data = await self._request(
            "POST", "/v1/wallet/init", {"wallet_id": wallet_id, "wallet_password": password}
        )
        token = data.get("wallet_handle_token")
        if not isinstance(token, str) or not token:
            raise KmdError("KMD did not return a wallet handle token")
        return token

    async def _release_handle(self, token: str) -> None:
        try:
            await self._request("POST", "/v1/wallet/release", {"wallet_handle_token": token})
        except KmdError as exc:
            logger.warning("[kmd] Could not release wallet handle: %s", exc)

    async def _list_keys(self, token: str) -> List[str]:
        data = await self._request("POST", "/v1/key/list", {"wallet_handle_token": token})
        addresses = data.get("addresses") or []
        return [str(a) for a in addresses]

    async def _request(self, method: str, path: str, body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        attempt = 0
        backoff = 0.25
        last_exc: Optional[Exception] = None
        while attempt < self._max_attempts:
            try:
                resp = await self._client.request(method, path, json=body)
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                last_exc = exc
            else:
                if resp.status_code in _RETRY_STATUSES:
                    last_exc = KmdError(f"HTTP {resp.status_code} from KMD")
                else:
                    return self._parse(resp)

            attempt += 1
            if attempt < self._max_attempts:
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, 4.0)

        raise KmdError(f"KMD request {method} {path} failed after retries: {last_exc}") from last_exc

    @staticmethod
    def _parse(resp: httpx.Response) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            raise KmdError(f"Failed to parse JSON from KMD (HTTP {resp.status_code})") from exc
        if not isinstance(data, dict):
            raise KmdError("Malformed response from KMD")
        if resp.status_code != 200 or data.get("error"):
            message = data.get("message") or "KMD API error"
            raise KmdError(f"{message} (HTTP {resp.status_code})")
        return data
