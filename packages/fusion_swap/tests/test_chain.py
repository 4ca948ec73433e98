"""
Tests for ChainClient with a mocked web3 instance (no RPC).
"""
import asyncio
from unittest.mock import MagicMock

import pytest
from web3 import Web3
from web3.exceptions import TransactionNotFound

from fusion_swap.chain import ChainClient
from fusion_swap.errors import SwapAbortedError, TransactionError

from conftest import USDC


TX_HASH = b"\x12" * 32


@pytest.fixture
def w3():
    w3 = MagicMock()
    w3.to_wei = Web3.to_wei
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.estimate_gas.return_value = 50000
    w3.eth.get_block.return_value = {"baseFeePerGas": 10**9}
    w3.eth.gas_price = 3 * 10**9
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.get_transaction_receipt.return_value = {
        "status": 1, "blockNumber": 42, "gasUsed": 46000, "effectiveGasPrice": 10**9,
    }
    return w3


@pytest.fixture
def client(config, w3):
    return ChainClient(config, w3=w3)


class TestSendTransaction:

    def test_eip1559_transaction(self, client, w3, caplog):
        with caplog.at_level("INFO", logger="fusion_swap.chain"):
            receipt = asyncio.run(client.send_transaction(USDC, "0x", 0))

        assert f"https://bscscan.com/tx/{Web3.to_hex(TX_HASH)}" in caplog.text

        assert receipt.tx_hash == Web3.to_hex(TX_HASH)
        assert receipt.block_number == 42
        w3.eth.get_transaction_count.assert_called_once_with(client.address, "pending")

        tx = w3.eth.estimate_gas.call_args[0][0]
        assert tx["nonce"] == 7
        assert tx["chainId"] == 56
        assert tx["to"] == USDC

    def test_legacy_gas_price_without_base_fee(self, client, w3):
        w3.eth.get_block.return_value = {}

        tx = client._add_gas_price({})

        assert tx == {"gasPrice": 3 * 10**9}

    def test_fee_capped_by_max_gas_price(self, client, w3):
        w3.eth.get_block.return_value = {"baseFeePerGas": 10**12}

        tx = client._add_gas_price({})

        assert tx["maxFeePerGas"] == Web3.to_wei(100, "gwei")
        assert tx["maxPriorityFeePerGas"] == Web3.to_wei(2, "gwei")

    def test_rejected_transaction(self, client, w3):
        w3.eth.estimate_gas.side_effect = ValueError("execution reverted")

        with pytest.raises(TransactionError, match="execution reverted"):
            asyncio.run(client.send_transaction(USDC))

        w3.eth.send_raw_transaction.assert_not_called()


class TestWaitForReceipt:

    def test_waits_until_mined(self, client, w3):
        mined = w3.eth.get_transaction_receipt.return_value
        w3.eth.get_transaction_receipt.side_effect = [
            TransactionNotFound("not yet"),
            TransactionNotFound("not yet"),
            mined,
        ]

        receipt = asyncio.run(client.wait_for_receipt("0xabc"))

        assert receipt.gas_used == 46000
        assert w3.eth.get_transaction_receipt.call_count == 3

    def test_reverted(self, client, w3):
        w3.eth.get_transaction_receipt.return_value = {"status": 0, "blockNumber": 1, "gasUsed": 1}

        with pytest.raises(TransactionError) as exc_info:
            asyncio.run(client.wait_for_receipt("0xabc"))

        assert exc_info.value.tx_hash == "0xabc"

    def test_timeout(self, client, config, w3):
        config.tx_timeout = 0
        w3.eth.get_transaction_receipt.side_effect = TransactionNotFound("not yet")

        with pytest.raises(TransactionError, match="not confirmed"):
            asyncio.run(client.wait_for_receipt("0xabc"))

    def test_cancelled(self, client, w3):
        client.cancel_token.cancel("user abort")

        with pytest.raises(SwapAbortedError):
            asyncio.run(client.wait_for_receipt("0xabc"))

        w3.eth.get_transaction_receipt.assert_not_called()
