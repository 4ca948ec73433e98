"""
Swap context - everything a run needs, built once and passed explicitly
"""
from dataclasses import dataclass, field

from .cancellation import CancelToken
from .chain import ChainClient
from .config import SwapConfig
from .relay import FusionApiClient


@dataclass
class SwapContext:
    """Config + collaborators of one run (no module-level state)"""
    config: SwapConfig
    chain: ChainClient
    api: FusionApiClient
    cancel_token: CancelToken = field(default_factory=CancelToken)

    @property
    def wallet_address(self) -> str:
        return self.chain.address

    @classmethod
    def from_config(cls, config: SwapConfig) -> "SwapContext":
        """Wire the default web3 chain client and httpx relay client"""
        cancel_token = CancelToken()
        return cls(
            config=config,
            chain=ChainClient(config, cancel_token=cancel_token),
            api=FusionApiClient(config, cancel_token=cancel_token),
            cancel_token=cancel_token,
        )

    async def close(self):
        await self.api.close()
