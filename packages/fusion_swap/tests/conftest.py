"""
Shared fixtures: a throwaway wallet, fast config, fake chain and fake relay.
"""
import itertools

import pytest
from eth_account import Account
from web3 import Web3

from fusion_swap.cancellation import CancelToken
from fusion_swap.config import PollSettings, SwapConfig
from fusion_swap.context import SwapContext
from fusion_swap.errors import RelayApiError, TransactionError
from fusion_swap.models import FusionQuote, OrderStatusInfo, TransactionReceipt
from fusion_swap.networks import get_network


WBNB = "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c"
USDC = "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d"
CAKE = "0x0E09FaBB73Bd3Ade0a17ECC321fD13a19e81cE82"
SETTLEMENT_EXTENSION = "0x2ad5004c60e16e54d5007c80ce329adde5b51ef5"

QUOTE_RESPONSE = {
    "quoteId": "c6d2b2a5-0e8c-4a0c-9f7a-6d1c3a0d6b11",
    "fromTokenAmount": "5000000000000000",
    "toTokenAmount": "2950000000000000000",
    "feeToken": WBNB,
    "presets": {
        "fast": {
            "auctionDuration": 180,
            "startAuctionIn": 24,
            "initialRateBump": 84909,
            "auctionStartAmount": "2975000000000000000",
            "startAmount": "2950000000000000000",
            "auctionEndAmount": "2930000000000000000",
            "exclusiveResolver": None,
            "costInDstToken": "12000000000000000",
            "points": [
                {"delay": 12, "coefficient": 50000},
                {"delay": 24, "coefficient": 20000},
            ],
            "allowPartialFills": False,
            "allowMultipleFills": False,
            "gasCost": {"gasBumpEstimate": 30, "gasPriceEstimate": "1000"},
        },
        "medium": {
            "auctionDuration": 360,
            "startAuctionIn": 24,
            "initialRateBump": 84909,
            "auctionStartAmount": "2975000000000000000",
            "auctionEndAmount": "2920000000000000000",
            "points": [],
        },
        "slow": {
            "auctionDuration": 600,
            "startAuctionIn": 24,
            "initialRateBump": 84909,
            "auctionStartAmount": "2975000000000000000",
            "auctionEndAmount": "2910000000000000000",
            "points": [],
        },
        "custom": None,
    },
    "settlementAddress": SETTLEMENT_EXTENSION,
    "whitelist": [
        "0xcfa62f77920d6383be12c91c71bd403599e1116f",
        "0xf0da67f1d1ef5f6a4a4b0e35d5ffb04b0f9ad7f8",
    ],
    "recommended_preset": "fast",
}


def quote_for(from_token: str, to_token: str, amount: int, wallet: str) -> FusionQuote:
    params = {
        "fromTokenAddress": from_token,
        "toTokenAddress": to_token,
        "amount": str(amount),
        "walletAddress": wallet,
    }
    data = dict(QUOTE_RESPONSE, fromTokenAmount=str(amount))
    return FusionQuote.from_api(data, params)


class FakeChain:
    """In-memory ERC20 allowance + wrapped balance, records every transaction"""

    def __init__(self, account, allowance: int = 0, wrapped_balance: int = 0):
        self.account = account
        self.address = account.address
        self.allowances: dict[str, int] = {}
        self.default_allowance = allowance
        self.wrapped_balance = wrapped_balance
        self.sent: list[tuple] = []
        self.fail_methods: set[str] = set()
        self._hashes = itertools.count(1)

    def allowance_of(self, token: str) -> int:
        return self.allowances.get(token.lower(), self.default_allowance)

    def read_contract_value(self, address, abi, method, *args):
        if method == "allowance":
            return self.allowance_of(address)
        if method == "balanceOf":
            return self.wrapped_balance
        raise AssertionError(f"unexpected read {method}")

    def _receipt(self) -> TransactionReceipt:
        return TransactionReceipt(
            tx_hash="0x" + f"{next(self._hashes):064x}",
            block_number=1,
            gas_used=46000,
            effective_gas_price=10**9,
        )

    async def send_contract_transaction(self, address, abi, method, *args, value=0):
        if method in self.fail_methods:
            raise TransactionError(f"{method} reverted")
        self.sent.append((address, method, args, value))
        if method == "approve":
            self.allowances[address.lower()] = args[1]
        elif method == "deposit":
            self.wrapped_balance += value
        elif method == "withdraw":
            self.wrapped_balance -= args[0]
        return self._receipt()

    async def send_transaction(self, to, data="0x", value=0):
        self.sent.append((to, "raw", (data,), value))
        return self._receipt()

    def methods(self) -> list[str]:
        return [method for _, method, _, _ in self.sent]


class FakeApi:
    """Relay stand-in; statuses are strings or exceptions, the last one repeats"""

    def __init__(self, statuses=("filled",)):
        self.statuses = list(statuses)
        self.quote_calls: list[tuple] = []
        self.submitted: list = []
        self.status_calls = 0
        self.allowance = 0
        self.approval_calls: list[tuple] = []

    async def get_quote(self, from_token, to_token, amount, wallet_address):
        self.quote_calls.append((from_token, to_token, amount, wallet_address))
        return quote_for(from_token, to_token, amount, wallet_address)

    async def submit_order(self, signed_order):
        self.submitted.append(signed_order)
        return None

    async def get_order_status(self, order_hash):
        index = min(self.status_calls, len(self.statuses) - 1)
        self.status_calls += 1
        status = self.statuses[index]
        if isinstance(status, Exception):
            raise status
        return OrderStatusInfo.from_api(order_hash, {"status": status})

    async def get_allowance(self, token, owner):
        return self.allowance

    async def get_approval_transaction(self, token, amount):
        self.approval_calls.append((token, amount))
        return {"to": token, "data": "0x095ea7b3", "value": 0}

    async def close(self):
        pass


def status_error(message: str = "boom") -> RelayApiError:
    return RelayApiError(message, 500, body={"error": message})


@pytest.fixture
def account():
    return Account.create()


@pytest.fixture
def config(account):
    """BSC config with instant polling and no rate limiting"""
    return SwapConfig(
        private_key=Web3.to_hex(account.key),
        rpc_url="http://localhost:8545",
        network=get_network("bsc"),
        oneinch_api_key="test-key",
        rate_limits={},
        poll=PollSettings(interval_seconds=0, max_seconds=None),
        receipt_poll_interval=0,
    )


@pytest.fixture
def chain(account):
    return FakeChain(account)


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def context(config, chain, api):
    return SwapContext(config=config, chain=chain, api=api, cancel_token=CancelToken())


ENV_VARS = [
    "PRIVATE_KEY", "RPC_URL", "ONE_INCH_API_KEY", "ONE_INCH_BASE_URL",
    "FUSION_NETWORK", "FUSION_PRESET", "FUSION_POLL_INTERVAL",
    "FUSION_MAX_POLL_SECONDS", "FUSION_ALLOWANCE_SOURCE", "FUSION_UNWRAP_ON_FAILURE",
    "FUSION_DRY_RUN", "FUSION_LOG_LEVEL", "FUSION_MAX_STATUS_ERRORS",
    "FUSION_SKIP_ZERO_RESET_TOKENS",
]


@pytest.fixture
def env(monkeypatch, tmp_path):
    """Clean environment with credentials set, returns an empty .env path"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PRIVATE_KEY", "0x" + "11" * 32)
    monkeypatch.setenv("ONE_INCH_API_KEY", "dev-key")
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return str(env_file)
