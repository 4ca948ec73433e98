"""
EVM network configuration for Fusion swaps.
One network is selected per run; the table only lists what is known.
"""

from dataclasses import dataclass
from typing import Dict


# 1inch Aggregation Router v6 - also the limit order protocol / Fusion settlement
AGGREGATION_ROUTER_V6 = "0x111111125421cA6dc452d289314280a0f8842A65"

# Native currency has no contract address: the script accepts the zero
# address, the 1inch ecosystem uses the 0xEeee... placeholder.
NATIVE_SENTINEL = "0x0000000000000000000000000000000000000000"
NATIVE_PLACEHOLDER = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"
ZERO_ADDRESS = NATIVE_SENTINEL


@dataclass
class NetworkConfig:
    """Configuration for an EVM network."""
    chain_id: int
    name: str
    symbol: str
    rpc_url: str
    explorer_url: str
    wrapped_native: str
    settlement_address: str = AGGREGATION_ROUTER_V6
    is_poa: bool = False

    @property
    def wrapped_symbol(self) -> str:
        return f"W{self.symbol}"


NETWORKS: Dict[str, NetworkConfig] = {
    # Ethereum Mainnet
    "ethereum": NetworkConfig(
        chain_id=1,
        name="Ethereum Mainnet",
        symbol="ETH",
        rpc_url="https://eth.llamarpc.com",
        explorer_url="https://etherscan.io",
        wrapped_native="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    ),

    # Binance Smart Chain
    "bsc": NetworkConfig(
        chain_id=56,
        name="BNB Smart Chain",
        symbol="BNB",
        rpc_url="https://bsc-dataseed.binance.org",
        explorer_url="https://bscscan.com",
        wrapped_native="0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c",
        is_poa=True,
    ),

    # Polygon PoS
    "polygon": NetworkConfig(
        chain_id=137,
        name="Polygon",
        symbol="MATIC",
        rpc_url="https://polygon-rpc.com",
        explorer_url="https://polygonscan.com",
        wrapped_native="0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270",
        is_poa=True,
    ),

    # Arbitrum One
    "arbitrum": NetworkConfig(
        chain_id=42161,
        name="Arbitrum One",
        symbol="ETH",
        rpc_url="https://arb1.arbitrum.io/rpc",
        explorer_url="https://arbiscan.io",
        wrapped_native="0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
    ),

    # Optimism
    "optimism": NetworkConfig(
        chain_id=10,
        name="Optimism",
        symbol="ETH",
        rpc_url="https://mainnet.optimism.io",
        explorer_url="https://optimistic.etherscan.io",
        wrapped_native="0x4200000000000000000000000000000000000006",
    ),

    # Base (Coinbase L2)
    "base": NetworkConfig(
        chain_id=8453,
        name="Base",
        symbol="ETH",
        rpc_url="https://mainnet.base.org",
        explorer_url="https://basescan.org",
        wrapped_native="0x4200000000000000000000000000000000000006",
    ),
}

ALIASES = {
    "eth": "ethereum",
    "mainnet": "ethereum",
    "bnb": "bsc",
    "binance": "bsc",
    "matic": "polygon",
    "arb": "arbitrum",
    "op": "optimism",
}


def get_network(network_name: str) -> NetworkConfig:
    """
    Get network configuration by name.

    Args:
        network_name: Name or alias of the network (e.g., 'bsc', 'bnb', 'base')

    Returns:
        NetworkConfig for the requested network

    Raises:
        ValueError: If network is not supported
    """
    name = network_name.lower()
    name = ALIASES.get(name, name)
    if name not in NETWORKS:
        supported = ", ".join(NETWORKS.keys())
        raise ValueError(f"Unknown network: {network_name}. Supported: {supported}")
    return NETWORKS[name]

