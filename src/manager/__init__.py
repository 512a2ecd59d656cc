"""
Wallet manager: provider registry, session lifecycle and network switching.
"""

from .manager import WalletManager
from .network import (
    CAIP_CHAIN_ID,
    AlgodConfig,
    NetworkConfig,
    caip_chain_id,
    create_algod_client,
    create_default_network_config,
    merge_network_config,
)

__all__ = [
    "AlgodConfig",
    "CAIP_CHAIN_ID",
    "NetworkConfig",
    "WalletManager",
    "caip_chain_id",
    "create_algod_client",
    "create_default_network_config",
    "merge_network_config",
]
