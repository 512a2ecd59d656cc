from __future__ import annotations


class WalletError(RuntimeError):
    """Base error for wallet providers and the manager."""


class WalletConnectError(WalletError):
    """Connecting failed or returned no accounts; nothing was stored."""


class WalletNotFoundError(WalletError):
    """No provider is configured for the requested wallet id."""


class NoActiveWalletError(WalletError):
    """A signing call was made while no wallet is active."""


class KmdError(WalletError):
    """KMD returned an error payload or an unexpected response."""


__all__ = [
    "WalletError",
    "WalletConnectError",
    "WalletNotFoundError",
    "NoActiveWalletError",
    "KmdError",
]
