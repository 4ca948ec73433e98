"""
Allowance management - the settlement contract must be allowed to move the
swap amount before an order is submitted
"""
import logging
from typing import Optional

from web3 import Web3

from .chain import ERC20_ABI, ChainClient
from .config import SwapConfig
from .models import TransactionReceipt
from .relay import FusionApiClient


class AllowanceManager:
    """
    Guarantees allowance(wallet, settlement) >= amount

    The allowance is read from the token contract ("onchain") or from the
    1inch approve API ("relay"); it is never cached.
    """

    def __init__(
        self,
        config: SwapConfig,
        chain: ChainClient,
        api: Optional[FusionApiClient] = None,
    ):
        self.config = config
        self.chain = chain
        self.api = api
        self.logger = logging.getLogger("fusion_swap.allowance")

        if config.allowance_source == "relay" and api is None:
            raise ValueError("Relay allowance source needs a FusionApiClient")

    @property
    def spender(self) -> str:
        return Web3.to_checksum_address(self.config.settlement_address)

    async def get_allowance(self, token: str) -> int:
        """Current allowance of the settlement contract for `token`"""
        if self.config.allowance_source == "relay":
            return await self.api.get_allowance(token, self.chain.address)

        return self.chain.read_contract_value(
            token,
            ERC20_ABI,
            "allowance",
            Web3.to_checksum_address(self.chain.address),
            self.spender,
        )

    async def approve(self, token: str, amount: int) -> TransactionReceipt:
        """Send one approve(settlement, amount) and wait for it"""
        if self.config.allowance_source == "relay":
            tx = await self.api.get_approval_transaction(token, amount)
            return await self.chain.send_transaction(tx["to"], tx["data"], tx["value"])

        return await self.chain.send_contract_transaction(
            token, ERC20_ABI, "approve", self.spender, amount
        )

    async def ensure_allowance(self, token: str, amount: int) -> int:
        """
        Close the gap between the current allowance and `amount`

        Args:
            token: ERC20 token address
            amount: Required allowance (smallest unit)

        Returns:
            Number of approval transactions sent (0, 1 or 2)

        Raises:
            TransactionError: an approval failed (never retried)
        """
        current = await self.get_allowance(token)

        if current >= amount:
            self.logger.info(f"Sufficient allowance already set for token: {token}")
            return 0

        sent = 0
        if current > 0 and self.config.requires_zero_reset(token):
            self.logger.info("Existing allowance is less than required, resetting to zero...")
            await self.approve(token, 0)
            sent += 1
            self.logger.info(f"Allowance reset to zero for token: {token}")

        await self.approve(token, amount)
        sent += 1
        self.logger.info(f"Approved {amount} of {token} to settlement contract {self.spender}")
        return sent
