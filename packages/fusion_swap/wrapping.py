"""
Wrap / unwrap native currency (BNB <-> WBNB, ETH <-> WETH...)
"""
import logging
from typing import Optional

from web3 import Web3

from .chain import WRAPPED_NATIVE_ABI, ChainClient
from .config import SwapConfig
from .models import TransactionReceipt


class WrapManager:
    """deposit()/withdraw() on the wrapped native token of the configured chain"""

    def __init__(self, config: SwapConfig, chain: ChainClient):
        self.config = config
        self.chain = chain
        self.logger = logging.getLogger("fusion_swap.wrapping")

    @property
    def token(self) -> str:
        return self.config.wrapped_native

    def wrapped_balance(self) -> int:
        return self.chain.read_contract_value(
            self.token,
            WRAPPED_NATIVE_ABI,
            "balanceOf",
            Web3.to_checksum_address(self.chain.address),
        )

    async def wrap(self, amount: int) -> TransactionReceipt:
        """Deposit `amount` wei of native currency into the wrapped token"""
        receipt = await self.chain.send_contract_transaction(
            self.token, WRAPPED_NATIVE_ABI, "deposit", value=amount
        )
        self.logger.info(
            f"Wrapped {Web3.from_wei(amount, 'ether')} {self.config.network.symbol} "
            f"into {self.config.network.wrapped_symbol}"
        )
        return receipt

    async def unwrap(self, amount: Optional[int] = None) -> int:
        """
        Withdraw wrapped tokens back to native currency

        Args:
            amount: Amount to unwrap, None for the whole wrapped balance

        Returns:
            Amount unwrapped, 0 when there was nothing to unwrap
        """
        if amount is None:
            amount = self.wrapped_balance()

        if amount <= 0:
            self.logger.info(f"No {self.config.network.wrapped_symbol} to unwrap")
            return 0

        await self.chain.send_contract_transaction(
            self.token, WRAPPED_NATIVE_ABI, "withdraw", amount
        )
        self.logger.info(
            f"Unwrapped {Web3.from_wei(amount, 'ether')} {self.config.network.wrapped_symbol} "
            f"into {self.config.network.symbol}"
        )
        return amount
