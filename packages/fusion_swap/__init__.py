"""
Fusion Swap
===========

Gasless token swaps through the 1inch Fusion order relay.

Wraps native currency when needed, guarantees the settlement allowance,
signs and submits a Fusion order, polls it until filled or cancelled, then
unwraps native proceeds.

Quick Start:
------------

    from fusion_swap import SwapConfig, SwapContext, SwapOrchestrator, SwapRequest

    config = SwapConfig.from_env()          # PRIVATE_KEY, RPC_URL, ONE_INCH_API_KEY
    context = SwapContext.from_config(config)

    request = SwapRequest(
        source_asset="0x0000000000000000000000000000000000000000",  # BNB
        destination_asset="0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d",  # USDC
        amount=5 * 10**15,
        wallet_address=context.wallet_address,
    )
    result = await SwapOrchestrator(context).run(request)
    print(result.outcome)

Supported Networks:
-------------------
- Ethereum (1)
- BSC (56) - default
- Polygon (137)
- Arbitrum (42161)
- Optimism (10)
- Base (8453)
"""

# Version
__version__ = "0.1.0"

from .errors import (
    FusionSwapError,
    ConfigurationError,
    TransactionError,
    RelayApiError,
    InvalidOrderHashError,
    SwapAbortedError,
)

from .models import (
    Preset,
    OrderStatus,
    SwapState,
    SwapOutcome,
    SwapRequest,
    WrapDecision,
    FusionQuote,
    OrderRequest,
    SignedOrder,
    OrderStatusInfo,
    SwapResult,
)

from .networks import NetworkConfig, NETWORKS, get_network
from .config import SwapConfig, GasSettings, PollSettings, RateLimit
from .cancellation import CancelToken
from .assets import normalize_assets, NormalizedAssets
from .chain import ChainClient
from .relay import FusionApiClient
from .allowance import AllowanceManager
from .wrapping import WrapManager
from .orders import FusionOrderBuilder, OrderSigner, validate_order_hash
from .context import SwapContext
from .orchestrator import SwapOrchestrator

__all__ = [
    # Version
    "__version__",

    # Errors
    "FusionSwapError",
    "ConfigurationError",
    "TransactionError",
    "RelayApiError",
    "InvalidOrderHashError",
    "SwapAbortedError",

    # Models
    "Preset",
    "OrderStatus",
    "SwapState",
    "SwapOutcome",
    "SwapRequest",
    "WrapDecision",
    "FusionQuote",
    "OrderRequest",
    "SignedOrder",
    "OrderStatusInfo",
    "SwapResult",

    # Config
    "NetworkConfig",
    "NETWORKS",
    "get_network",
    "SwapConfig",
    "GasSettings",
    "PollSettings",
    "RateLimit",

    # Pipeline
    "CancelToken",
    "normalize_assets",
    "NormalizedAssets",
    "ChainClient",
    "FusionApiClient",
    "AllowanceManager",
    "WrapManager",
    "FusionOrderBuilder",
    "OrderSigner",
    "validate_order_hash",
    "SwapContext",
    "SwapOrchestrator",
]
