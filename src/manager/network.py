from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Union

from algosdk.v2client.algod import AlgodClient
from pydantic import BaseModel, ConfigDict, Field

from state.models import NetworkId


logger = logging.getLogger(__name__)


NODE_SERVER_MAP: Dict[NetworkId, str] = {
    NetworkId.MAINNET: "https://mainnet-api.4160.nodely.dev",
    NetworkId.TESTNET: "https://testnet-api.4160.nodely.dev",
    NetworkId.BETANET: "https://betanet-api.4160.nodely.dev",
    NetworkId.FNET: "https://fnet-api.4160.nodely.dev",
    NetworkId.VOIMAIN: "https://mainnet-api.voi.nodely.dev",
    NetworkId.ARAMIDMAIN: "https://algod.aramidmain.a-wallet.net",
}

# CAIP-2 chain ids (genesis hash prefix); localnet has none.
CAIP_CHAIN_ID: Dict[NetworkId, str] = {
    NetworkId.MAINNET: "algorand:wGHE2Pwdvd7S12BL5FaOP20EGYesN73k",
    NetworkId.TESTNET: "algorand:SGO1GKSzyE7IEPItTxCByw9x8FmnrCDe",
    NetworkId.BETANET: "algorand:mFgazF-2uRS1tMiL9dsj01hJGySEmPN2",
    NetworkId.FNET: "algorand:kUt08LxeVAAGHnh4JoAoAMM9ql_hBwSo",
    NetworkId.VOIMAIN: "algorand:r20fSQI8gWe_kFZziNonSPCXLwcQmH_n",
    NetworkId.ARAMIDMAIN: "algorand:PgeQVJJgx_LYKJfIEz7dbfNPuXmDyJ-O",
}

LOCALNET_TOKEN = "a" * 64


class AlgodConfig(BaseModel):
    """Connection settings for one algod node."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    token: str = ""
    base_server: str = Field(alias="baseServer")
    port: Union[int, str] = ""
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def address(self) -> str:
        base = self.base_server.rstrip("/")
        return f"{base}:{self.port}" if self.port not in ("", None) else base


class NetworkConfig(BaseModel):
    """Algod settings for every known network."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    networks: Dict[NetworkId, AlgodConfig]

    def for_network(self, network_id: Union[NetworkId, str]) -> AlgodConfig:
        try:
            return self.networks[NetworkId(network_id)]
        except (KeyError, ValueError) as exc:
            raise ValueError(f"No algod config for network: {network_id}") from exc


def caip_chain_id(network_id: Union[NetworkId, str]) -> Optional[str]:
    return CAIP_CHAIN_ID.get(NetworkId(network_id))


def create_default_network_config() -> NetworkConfig:
    networks: Dict[NetworkId, AlgodConfig] = {}
    for network in NetworkId:
        if network is NetworkId.LOCALNET:
            networks[network] = AlgodConfig(
                token=LOCALNET_TOKEN, base_server="http://localhost", port=4001
            )
        else:
            networks[network] = AlgodConfig(base_server=NODE_SERVER_MAP[network])
    return NetworkConfig(networks=networks)


def _is_network_map(override: Mapping[str, Any]) -> bool:
    keys = {n.value for n in NetworkId}
    return any(str(k.value if isinstance(k, NetworkId) else k) in keys for k in override)


def _merge_one(base: AlgodConfig, override: Mapping[str, Any]) -> AlgodConfig:
    data = base.model_dump(by_alias=True)
    for key, value in override.items():
        if key == "base_server":
            key = "baseServer"
        if key == "headers" and isinstance(value, Mapping):
            data["headers"] = {**data["headers"], **value}
        else:
            data[key] = value
    return AlgodConfig.model_validate(data)


def merge_network_config(
    base: NetworkConfig,
    override: Optional[Mapping[str, Any]],
    active_network: Union[NetworkId, str],
) -> NetworkConfig:
    """
    Overlay user settings on `base`.

    `override` is either a map of network id -> partial algod settings, or a
    single partial algod settings object applied to `active_network` only.
    """
    if not override:
        return base
    networks = dict(base.networks)
    if _is_network_map(override):
        for key, partial in override.items():
            network = NetworkId(key)
            networks[network] = _merge_one(networks[network], partial or {})
    else:
        network = NetworkId(active_network)
        networks[network] = _merge_one(networks[network], override)
    return NetworkConfig(networks=networks)


def create_algod_client(config: AlgodConfig) -> AlgodClient:
    logger.info("Creating algod client for %s", config.address)
    return AlgodClient(config.token, config.address, headers=dict(config.headers) or None)


__all__ = [
    "AlgodConfig",
    "CAIP_CHAIN_ID",
    "LOCALNET_TOKEN",
    "NODE_SERVER_MAP",
    "NetworkConfig",
    "caip_chain_id",
    "create_algod_client",
    "create_default_network_config",
    "merge_network_config",
]
