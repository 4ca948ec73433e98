"""
Tests for WrapManager.
"""
import asyncio

import pytest

from fusion_swap.errors import TransactionError
from fusion_swap.wrapping import WrapManager


@pytest.fixture
def wrapper(config, chain):
    return WrapManager(config, chain)


class TestWrap:

    def test_wrap_deposits_value(self, wrapper, chain, config):
        receipt = asyncio.run(wrapper.wrap(5 * 10**15))

        assert receipt.tx_hash.startswith("0x")
        assert chain.sent == [(config.wrapped_native, "deposit", (), 5 * 10**15)]
        assert chain.wrapped_balance == 5 * 10**15

    def test_wrap_failure_propagates(self, wrapper, chain):
        chain.fail_methods.add("deposit")
        with pytest.raises(TransactionError):
            asyncio.run(wrapper.wrap(1))


class TestUnwrap:

    def test_unwrap_full_balance(self, wrapper, chain):
        chain.wrapped_balance = 7 * 10**15

        amount = asyncio.run(wrapper.unwrap())

        assert amount == 7 * 10**15
        assert chain.methods() == ["withdraw"]
        assert chain.sent[0][2] == (7 * 10**15,)
        assert chain.wrapped_balance == 0

    def test_unwrap_zero_balance_is_noop(self, wrapper, chain):
        amount = asyncio.run(wrapper.unwrap())

        assert amount == 0
        assert chain.sent == []

    def test_unwrap_explicit_amount(self, wrapper, chain):
        chain.wrapped_balance = 10
        amount = asyncio.run(wrapper.unwrap(4))

        assert amount == 4
        assert chain.wrapped_balance == 6
