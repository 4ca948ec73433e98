"""
Tests for AllowanceManager.
"""
import asyncio
import dataclasses

import pytest

from fusion_swap.allowance import AllowanceManager
from fusion_swap.errors import TransactionError

from conftest import CAKE

AMOUNT = 5 * 10**15


@pytest.fixture
def manager(config, chain):
    return AllowanceManager(config, chain)


class TestEnsureAllowance:
    """Approval flow against the settlement contract."""

    @pytest.mark.parametrize("current", [AMOUNT, AMOUNT + 1, 2**256 - 1])
    def test_sufficient_allowance_sends_nothing(self, manager, chain, current):
        chain.default_allowance = current

        sent = asyncio.run(manager.ensure_allowance(CAKE, AMOUNT))

        assert sent == 0
        assert chain.sent == []

    def test_zero_allowance_single_approval(self, manager, chain, config):
        sent = asyncio.run(manager.ensure_allowance(CAKE, AMOUNT))

        assert sent == 1
        assert len(chain.sent) == 1
        token, method, args, value = chain.sent[0]
        assert token == CAKE
        assert method == "approve"
        assert args[0].lower() == config.settlement_address.lower()
        assert args[1] == AMOUNT
        assert value == 0

    def test_partial_allowance_resets_to_zero_first(self, manager, chain):
        chain.default_allowance = AMOUNT - 1

        sent = asyncio.run(manager.ensure_allowance(CAKE, AMOUNT))

        assert sent == 2
        assert [args[1] for _, _, args, _ in chain.sent] == [0, AMOUNT]
        assert chain.allowance_of(CAKE) == AMOUNT

    def test_zero_reset_can_be_skipped_per_token(self, config, chain):
        config = dataclasses.replace(config, skip_zero_reset_tokens=frozenset({CAKE.upper()}))
        manager = AllowanceManager(config, chain)
        chain.default_allowance = 1

        sent = asyncio.run(manager.ensure_allowance(CAKE, AMOUNT))

        assert sent == 1
        assert chain.sent[0][2][1] == AMOUNT

    def test_failed_approval_propagates(self, manager, chain):
        chain.fail_methods.add("approve")

        with pytest.raises(TransactionError):
            asyncio.run(manager.ensure_allowance(CAKE, AMOUNT))

    def test_idempotent_second_call(self, manager, chain):
        asyncio.run(manager.ensure_allowance(CAKE, AMOUNT))
        sent = asyncio.run(manager.ensure_allowance(CAKE, AMOUNT))

        assert sent == 0
        assert len(chain.sent) == 1


class TestRelayAllowanceSource:
    """Allowance read and approval calldata from the 1inch approve API."""

    def test_relay_source_uses_api(self, config, chain, api):
        config = dataclasses.replace(config, allowance_source="relay")
        manager = AllowanceManager(config, chain, api)
        api.allowance = 1

        sent = asyncio.run(manager.ensure_allowance(CAKE, AMOUNT))

        assert sent == 2
        assert api.approval_calls == [(CAKE, 0), (CAKE, AMOUNT)]
        assert chain.methods() == ["raw", "raw"]

    def test_relay_source_requires_api(self, config, chain):
        config = dataclasses.replace(config, allowance_source="relay")
        with pytest.raises(ValueError):
            AllowanceManager(config, chain)
