from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, model_validator


class WalletId(str, Enum):
    """Closed set of wallet backends a session can be stored under."""

    BIATEC = "biatec"
    CUSTOM = "custom"
    DEFLY = "defly"
    DEFLY_WEB = "defly-web"
    EXODUS = "exodus"
    KIBISIS = "kibisis"
    KMD = "kmd"
    LUTE = "lute"
    MAGIC = "magic"
    MNEMONIC = "mnemonic"
    PERA = "pera"
    WALLETCONNECT = "walletconnect"


class NetworkId(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    BETANET = "betanet"
    FNET = "fnet"
    LOCALNET = "localnet"
    VOIMAIN = "voimain"
    ARAMIDMAIN = "aramidmain"


DEFAULT_NETWORK = NetworkId.TESTNET.value

PERSISTED_KEYS = ("wallets", "activeWallet", "activeNetwork")
PERSISTED_WALLET_KEYS = ("accounts", "activeAccount")


def is_valid_wallet_id(value: object) -> bool:
    return isinstance(value, str) and value in {w.value for w in WalletId}


def is_valid_network_id(value: object) -> bool:
    return isinstance(value, str) and value in {n.value for n in NetworkId}


class WalletAccount(BaseModel):
    """A named address belonging to a connected wallet."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: StrictStr
    address: StrictStr


class WalletState(BaseModel):
    """
    Accounts and active-account selection for one connected wallet.

    Serialized as ``{"accounts": [...], "activeAccount": {...} | null}``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    accounts: List[WalletAccount] = Field(default_factory=list)
    active_account: Optional[WalletAccount] = Field(default=None, alias="activeAccount")

    @model_validator(mode="after")
    def _check_accounts(self) -> "WalletState":
        addresses = [a.address for a in self.accounts]
        if len(set(addresses)) != len(addresses):
            raise ValueError("account addresses must be unique within a wallet")
        if self.active_account is not None and self.active_account.address not in addresses:
            raise ValueError(
                f"active account {self.active_account.address} is not one of the wallet accounts"
            )
        return self

    @property
    def addresses(self) -> List[str]:
        return [a.address for a in self.accounts]

    def copy_deep(self) -> "WalletState":
        """Return a copy that shares no account objects with this one."""
        return WalletState(
            accounts=[a.model_copy() for a in self.accounts],
            active_account=self.active_account.model_copy() if self.active_account else None,
        )


class SessionState(BaseModel):
    """
    Durable session state: connected wallets, active wallet and active network.

    Fields
    - wallets: connected wallets keyed by `WalletId`. Unknown keys fail validation.
    - active_wallet: wallet receiving signing calls, or None.
    - active_network: network id (e.g., "testnet").

    Notes
    - Instances are never mutated. Store mutations build a new instance.
    - The JSON encoding (by alias) is the persisted shape:
        {"wallets": {...}, "activeWallet": ..., "activeNetwork": ...}
    - The live algod client is kept by the store, not here.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    wallets: Dict[WalletId, WalletState] = Field(default_factory=dict)
    active_wallet: Optional[WalletId] = Field(default=None, alias="activeWallet")
    active_network: StrictStr = Field(default=DEFAULT_NETWORK, alias="activeNetwork")

    @model_validator(mode="after")
    def _check_active_wallet(self) -> "SessionState":
        if self.active_wallet is not None and self.active_wallet not in self.wallets:
            raise ValueError(f"active wallet {self.active_wallet.value} is not connected")
        return self

    @classmethod
    def empty(cls, network: str = DEFAULT_NETWORK) -> "SessionState":
        """Convenience constructor for a fresh state with no wallets."""
        return cls(active_network=network)

    @classmethod
    def from_persisted(cls, raw: object) -> "SessionState":
        """Validate a parsed JSON value against the exact persisted shape."""
        if not isinstance(raw, dict):
            raise ValueError(f"persisted state must be an object, got {type(raw).__name__}")
        missing = [k for k in PERSISTED_KEYS if k not in raw]
        if missing:
            raise ValueError(f"persisted state is missing keys: {', '.join(missing)}")
        wallets = raw.get("wallets")
        if isinstance(wallets, dict):
            for wallet_id, entry in wallets.items():
                if not isinstance(entry, dict):
                    continue
                missing = [k for k in PERSISTED_WALLET_KEYS if k not in entry]
                if missing:
                    raise ValueError(
                        f"persisted wallet {wallet_id} is missing keys: {', '.join(missing)}"
                    )
        return cls.model_validate(raw)

    def to_persisted(self) -> Dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)
