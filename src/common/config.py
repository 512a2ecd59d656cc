from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from state.models import DEFAULT_NETWORK, is_valid_network_id
from state.storage import FileStorage, MemoryStorage, StorageAdapter
from state.store import LOCAL_STORAGE_KEY


# Environment variable names
ENV_NETWORK = "USE_WALLET_NETWORK"
ENV_STORAGE = "USE_WALLET_STORAGE"  # memory | file | s3
ENV_STORAGE_KEY = "USE_WALLET_STORAGE_KEY"
ENV_STORAGE_PATH = "USE_WALLET_STORAGE_PATH"
ENV_LOG_LEVEL = "USE_WALLET_LOG_LEVEL"
ENV_KMD_TOKEN = "KMD_TOKEN"
ENV_KMD_SERVER = "KMD_SERVER"
ENV_KMD_PORT = "KMD_PORT"
ENV_KMD_WALLET = "KMD_WALLET"

STORAGE_BACKENDS = ("memory", "file", "s3")


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


class Settings(BaseModel):
    """
    Runtime settings for a wallet session.

    Empty environment variables count as unset. KMD defaults match a stock
    sandbox (`http://127.0.0.1:4002`, 64 x "a" token).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    network: str = DEFAULT_NETWORK
    storage: str = "file"
    storage_key: str = LOCAL_STORAGE_KEY
    storage_path: Optional[str] = None
    log_level: str = "WARNING"
    kmd_token: str = Field(default="a" * 64)
    kmd_server: str = "http://127.0.0.1"
    kmd_port: str = "4002"
    kmd_wallet: str = "unencrypted-default-wallet"

    @field_validator("network")
    @classmethod
    def _known_network(cls, v: str) -> str:
        if not is_valid_network_id(v):
            raise ValueError(f"Unknown network id: {v}")
        return v

    @field_validator("storage")
    @classmethod
    def _known_storage(cls, v: str) -> str:
        v = v.lower()
        if v not in STORAGE_BACKENDS:
            raise ValueError(f"Unknown storage backend: {v} (expected one of {', '.join(STORAGE_BACKENDS)})")
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            network=_getenv(ENV_NETWORK, defaults.network),
            storage=_getenv(ENV_STORAGE, defaults.storage),
            storage_key=_getenv(ENV_STORAGE_KEY, defaults.storage_key),
            storage_path=_getenv(ENV_STORAGE_PATH),
            log_level=_getenv(ENV_LOG_LEVEL, defaults.log_level),
            kmd_token=_getenv(ENV_KMD_TOKEN, defaults.kmd_token),
            kmd_server=_getenv(ENV_KMD_SERVER, defaults.kmd_server),
            kmd_port=_getenv(ENV_KMD_PORT, defaults.kmd_port),
            kmd_wallet=_getenv(ENV_KMD_WALLET, defaults.kmd_wallet),
        )

    def create_storage(self) -> StorageAdapter:
        if self.storage == "memory":
            return MemoryStorage()
        if self.storage == "s3":
            from state.s3_storage import S3Storage

            return S3Storage.from_env()
        return FileStorage(self.storage_path)


__all__ = ["Settings", "STORAGE_BACKENDS"]
