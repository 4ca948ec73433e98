"""
Chain client - signs and broadcasts transactions, reads contract state
"""
import logging
import time
from typing import Any, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TransactionNotFound
from web3.middleware import ExtraDataToPOAMiddleware

from .cancellation import CancelToken
from .config import SwapConfig
from .errors import TransactionError
from .models import TransactionReceipt


ERC20_ABI = [
    {
        "constant": True,
        "inputs": [
            {"name": "_owner", "type": "address"},
            {"name": "_spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_spender", "type": "address"},
            {"name": "_value", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function"
    },
]

# WETH9-style wrapper (WETH, WBNB, WMATIC...)
WRAPPED_NATIVE_ABI = ERC20_ABI + [
    {
        "constant": False,
        "inputs": [],
        "name": "deposit",
        "outputs": [],
        "payable": True,
        "stateMutability": "payable",
        "type": "function"
    },
    {
        "constant": False,
        "inputs": [{"name": "wad", "type": "uint256"}],
        "name": "withdraw",
        "outputs": [],
        "type": "function"
    },
]


class ChainClient:
    """
    web3 client bound to one chain and one wallet

    Every transaction is signed locally, broadcast, then awaited until its
    receipt is available, so the wallet nonce sequence stays serial.
    """

    def __init__(
        self,
        config: SwapConfig,
        cancel_token: Optional[CancelToken] = None,
        w3: Optional[Web3] = None,
    ):
        self.config = config
        self.cancel_token = cancel_token or CancelToken()
        self.logger = logging.getLogger("fusion_swap.chain")
        self._account: LocalAccount = Account.from_key(config.private_key)
        self._w3 = w3

    @property
    def w3(self) -> Web3:
        """Web3 instance, created on first use"""
        if self._w3 is None:
            w3 = Web3(Web3.HTTPProvider(self.config.rpc_url))

            # POA middleware (BSC, Polygon)
            if self.config.network.is_poa:
                w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

            self._w3 = w3
        return self._w3

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def account(self) -> LocalAccount:
        return self._account

    def _contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    # =========================================================================
    # Reads
    # =========================================================================

    def read_contract_value(self, address: str, abi: list, method: str, *args) -> Any:
        """Call a view function"""
        contract = self._contract(address, abi)
        return getattr(contract.functions, method)(*args).call()

    def encode_call(self, address: str, abi: list, method: str, *args) -> str:
        """ABI-encode a function call"""
        contract = self._contract(address, abi)
        return contract.encode_abi(method, args=list(args))

    # =========================================================================
    # Transactions
    # =========================================================================

    def _add_gas_price(self, tx: dict) -> dict:
        """Add gas price parameters to a transaction"""
        gas_settings = self.config.gas_settings
        max_gas_price = self.w3.to_wei(gas_settings.max_gas_price_gwei, "gwei")

        if gas_settings.use_eip1559:
            block = self.w3.eth.get_block("latest")
            base_fee = block.get("baseFeePerGas")
            if base_fee is not None:
                max_priority = self.w3.to_wei(gas_settings.max_priority_fee_gwei, "gwei")
                tx["maxFeePerGas"] = min(base_fee * 2 + max_priority, max_gas_price)
                tx["maxPriorityFeePerGas"] = min(max_priority, tx["maxFeePerGas"])
                return tx

        # Legacy gas price
        tx["gasPrice"] = min(self.w3.eth.gas_price, max_gas_price)
        return tx

    async def send_transaction(self, to: str, data: str = "0x", value: int = 0) -> TransactionReceipt:
        """
        Sign, broadcast and wait for a transaction

        Args:
            to: Target address
            data: Calldata (hex)
            value: Native currency to send, in wei

        Returns:
            Receipt of the confirmed transaction

        Raises:
            TransactionError: rejected, reverted or not confirmed in time
        """
        self.cancel_token.raise_if_cancelled()

        try:
            tx = {
                "from": self.address,
                "to": Web3.to_checksum_address(to),
                "data": data,
                "value": value,
                "nonce": self.w3.eth.get_transaction_count(self.address, "pending"),
                "chainId": self.config.chain_id,
            }
            estimate = self.w3.eth.estimate_gas(tx)
            tx["gas"] = int(estimate * float(self.config.gas_settings.gas_limit_multiplier))
            tx = self._add_gas_price(tx)

            signed_tx = self._account.sign_transaction(tx)
            tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed_tx.raw_transaction))
        except Exception as e:
            raise TransactionError(f"Transaction to {to} rejected: {e}") from e

        self.logger.info(f"Transaction sent: {self.config.network.explorer_url}/tx/{tx_hash}")
        return await self.wait_for_receipt(tx_hash)

    async def send_contract_transaction(
        self,
        address: str,
        abi: list,
        method: str,
        *args,
        value: int = 0,
    ) -> TransactionReceipt:
        """Encode a contract call and send it with send_transaction()"""
        data = self.encode_call(address, abi, method, *args)
        return await self.send_transaction(address, data, value)

    async def wait_for_receipt(self, tx_hash: str) -> TransactionReceipt:
        """
        Poll for a receipt until mined, cancelled or `tx_timeout` elapsed

        Raises:
            TransactionError: timeout or reverted transaction
            SwapAbortedError: cancel token fired while waiting
        """
        deadline = time.monotonic() + self.config.tx_timeout

        while True:
            self.cancel_token.raise_if_cancelled()
            try:
                receipt = self.w3.eth.get_transaction_receipt(tx_hash)
                break
            except TransactionNotFound:
                pass

            if time.monotonic() >= deadline:
                raise TransactionError(
                    f"Transaction {tx_hash} not confirmed after {self.config.tx_timeout}s",
                    tx_hash=tx_hash,
                )
            await self.cancel_token.sleep(self.config.receipt_poll_interval)

        if receipt["status"] != 1:
            raise TransactionError(f"Transaction {tx_hash} reverted", tx_hash=tx_hash)

        return TransactionReceipt(
            tx_hash=tx_hash,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
            effective_gas_price=receipt.get("effectiveGasPrice", 0),
            status=receipt["status"],
        )
