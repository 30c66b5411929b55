"""Network configurations and the static table of Infura-hosted networks."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .errors import ConfigurationError

_HEX_CHAIN_ID = re.compile(r"^0x[0-9a-fA-F]+$")


class NetworkType(str, Enum):
    """Supported network selections."""
    MAINNET = "mainnet"
    ROPSTEN = "ropsten"
    RINKEBY = "rinkeby"
    GOERLI = "goerli"
    KOVAN = "kovan"
    RPC = "rpc"


# Chain ids and gateway hosts for networks served by Infura. These are never
# taken from user input.
INFURA_NETWORKS: Dict[NetworkType, Dict[str, str]] = {
    NetworkType.MAINNET: {"chain_id": "0x1", "host": "mainnet.infura.io"},
    NetworkType.ROPSTEN: {"chain_id": "0x4", "host": "ropsten.infura.io"},
    NetworkType.RINKEBY: {"chain_id": "0x4", "host": "rinkeby.infura.io"},
    NetworkType.GOERLI: {"chain_id": "0x5", "host": "goerli.infura.io"},
    NetworkType.KOVAN: {"chain_id": "0x2a", "host": "kovan.infura.io"},
}


@dataclass(frozen=True)
class NetworkConfiguration:
    """The network a controller is pointed at.

    For a known network only ``type`` is needed; the chain id and gateway
    host come from ``INFURA_NETWORKS``. A custom ``rpc`` configuration must
    name its endpoint and chain id explicitly.

    Raises:
        ConfigurationError: If the combination of fields is invalid
    """
    type: NetworkType
    rpc_url: Optional[str] = None
    chain_id: Optional[str] = None
    nickname: Optional[str] = None

    def __post_init__(self):
        try:
            network_type = NetworkType(self.type)
        except ValueError:
            raise ConfigurationError(f"Unknown network type: {self.type!r}")
        object.__setattr__(self, "type", network_type)

        if network_type == NetworkType.RPC:
            if not isinstance(self.rpc_url, str) or not self.rpc_url.startswith(("http://", "https://")):
                raise ConfigurationError(f"Custom RPC network needs an http(s) URL, got {self.rpc_url!r}")
            if not isinstance(self.chain_id, str) or not _HEX_CHAIN_ID.match(self.chain_id):
                raise ConfigurationError(f"Custom RPC network needs a hex chain id, got {self.chain_id!r}")
            object.__setattr__(self, "chain_id", self.chain_id.lower())
            return

        if self.rpc_url is not None:
            raise ConfigurationError(f"{network_type.value} does not accept a custom RPC URL")
        known_chain_id = INFURA_NETWORKS[network_type]["chain_id"]
        if self.chain_id is not None and not isinstance(self.chain_id, str):
            raise ConfigurationError(f"{network_type.value} needs a hex string chain id, got {self.chain_id!r}")
        if self.chain_id is not None and self.chain_id.lower() != known_chain_id:
            raise ConfigurationError(
                f"Chain id {self.chain_id} does not match {network_type.value} ({known_chain_id})"
            )
        object.__setattr__(self, "chain_id", known_chain_id)

    @classmethod
    def for_network(cls, name: str) -> "NetworkConfiguration":
        return cls(type=name)

    @classmethod
    def for_rpc(cls, rpc_url: str, chain_id: str, nickname: Optional[str] = None) -> "NetworkConfiguration":
        return cls(type=NetworkType.RPC, rpc_url=rpc_url, chain_id=chain_id, nickname=nickname)

    @property
    def is_infura(self) -> bool:
        return self.type != NetworkType.RPC

    @property
    def network_id(self) -> Optional[str]:
        """Identifier answered for ``net_version`` without a gateway call."""
        return self.type.value if self.is_infura else None

    @property
    def gateway_host(self) -> Optional[str]:
        if self.is_infura:
            return INFURA_NETWORKS[self.type]["host"]
        return None

    @property
    def provider_name(self) -> str:
        return "InfuraProvider" if self.is_infura else "RpcProvider"

    def endpoint_url(self, project_id: Optional[str] = None) -> str:
        """Full gateway URL for this network.

        Args:
            project_id: Infura project id, required for known networks

        Raises:
            ConfigurationError: If a known network is used without a project id
        """
        if not self.is_infura:
            return self.rpc_url
        if not project_id:
            raise ConfigurationError(f"An Infura project id is required for {self.type.value}")
        return f"https://{self.gateway_host}/v3/{project_id}"
