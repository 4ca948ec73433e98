"""
Fusion Swap - Configuration
Loaded once from the environment (.env supported) and passed explicitly.
"""
import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .models import Preset
from .networks import NetworkConfig, get_network


ALLOWANCE_SOURCES = ("onchain", "relay")


@dataclass
class GasSettings:
    """Gas configuration for transactions"""
    max_gas_price_gwei: Decimal = Decimal("100")
    max_priority_fee_gwei: Decimal = Decimal("2")
    gas_limit_multiplier: Decimal = Decimal("1.2")  # 20% buffer
    use_eip1559: bool = True


@dataclass
class PollSettings:
    """Order status polling"""
    interval_seconds: float = 10.0
    backoff: float = 1.0  # 1.0 = fixed interval
    interval_max_seconds: float = 60.0
    max_seconds: Optional[float] = 3600.0  # None = unbounded
    max_attempts: Optional[int] = None
    max_status_errors: Optional[int] = None  # consecutive failures, None = keep polling


@dataclass
class RateLimit:
    """Token bucket: `rate` requests per second, bursts up to `capacity`"""
    rate: float
    capacity: float = 1.0


def default_rate_limits() -> dict[str, RateLimit]:
    # Dev portal keys are limited per key, not per endpoint
    return {"global": RateLimit(rate=0.5, capacity=1.0)}


@dataclass
class SwapConfig:
    """Configuration of one swap run"""
    # Wallet / chain
    private_key: str
    rpc_url: str
    network: NetworkConfig

    # API
    oneinch_api_key: str
    oneinch_base_url: str = "https://api.1inch.dev"
    http_timeout: float = 30.0
    rate_limits: dict[str, RateLimit] = field(default_factory=default_rate_limits)

    # Order
    preset: Preset = Preset.FAST

    # Allowance
    allowance_source: str = "onchain"
    skip_zero_reset_tokens: frozenset = frozenset()

    # Transactions
    gas_settings: GasSettings = field(default_factory=GasSettings)
    tx_timeout: float = 120.0
    receipt_poll_interval: float = 2.0

    # Polling
    poll: PollSettings = field(default_factory=PollSettings)

    # Behaviour
    unwrap_on_failure: bool = False
    dry_run: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        if self.allowance_source not in ALLOWANCE_SOURCES:
            raise ConfigurationError(
                f"Unknown allowance source: {self.allowance_source}. "
                f"Supported: {', '.join(ALLOWANCE_SOURCES)}"
            )
        self.skip_zero_reset_tokens = frozenset(
            t.lower() for t in self.skip_zero_reset_tokens
        )

    @property
    def chain_id(self) -> int:
        return self.network.chain_id

    @property
    def settlement_address(self) -> str:
        return self.network.settlement_address

    @property
    def wrapped_native(self) -> str:
        return self.network.wrapped_native

    def requires_zero_reset(self, token_address: str) -> bool:
        """Whether a nonzero allowance must be reset to 0 before re-approving"""
        return token_address.lower() not in self.skip_zero_reset_tokens

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "SwapConfig":
        """
        Build the configuration from environment variables

        Required: PRIVATE_KEY, ONE_INCH_API_KEY (RPC_URL falls back to the
        network's public endpoint).

        Raises:
            ConfigurationError: missing credentials or invalid values
        """
        load_dotenv(env_file)

        private_key = os.getenv("PRIVATE_KEY")
        api_key = os.getenv("ONE_INCH_API_KEY")

        missing = [
            name for name, value in (("PRIVATE_KEY", private_key), ("ONE_INCH_API_KEY", api_key))
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing environment variables: {', '.join(missing)}")

        try:
            network = get_network(os.getenv("FUSION_NETWORK", "bsc"))
            preset = Preset.from_name(os.getenv("FUSION_PRESET", "fast"))
            poll = PollSettings(
                interval_seconds=float(os.getenv("FUSION_POLL_INTERVAL", "10")),
                max_seconds=_optional_float(os.getenv("FUSION_MAX_POLL_SECONDS", "3600")),
                max_status_errors=_optional_int(os.getenv("FUSION_MAX_STATUS_ERRORS")),
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        skip_reset = os.getenv("FUSION_SKIP_ZERO_RESET_TOKENS", "")

        return cls(
            private_key=private_key,
            rpc_url=os.getenv("RPC_URL") or network.rpc_url,
            network=network,
            oneinch_api_key=api_key,
            oneinch_base_url=os.getenv("ONE_INCH_BASE_URL", "https://api.1inch.dev"),
            preset=preset,
            allowance_source=os.getenv("FUSION_ALLOWANCE_SOURCE", "onchain").lower(),
            skip_zero_reset_tokens=frozenset(t.strip() for t in skip_reset.split(",") if t.strip()),
            poll=poll,
            unwrap_on_failure=_env_flag("FUSION_UNWRAP_ON_FAILURE"),
            dry_run=_env_flag("FUSION_DRY_RUN"),
            log_level=os.getenv("FUSION_LOG_LEVEL", "INFO").upper(),
        )


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() in ("", "0"):
        return None
    return float(value)


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() in ("", "0"):
        return None
    return int(value)
