"""
Fusion Swap Models - Dataclasses for the Fusion order lifecycle
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .networks import ZERO_ADDRESS


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Preset(Enum):
    """Execution preset (speed/cost tradeoff)"""
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"

    @classmethod
    def from_name(cls, name: str) -> "Preset":
        try:
            return cls(name.lower())
        except ValueError:
            supported = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown preset: {name}. Supported: {supported}")


class OrderStatus(Enum):
    """Status of a Fusion order, as reported by the orders API"""
    PENDING = "pending"
    FILLED = "filled"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PARTIALLY_FILLED = "partially-filled"
    FALSE_PREDICATE = "false-predicate"
    NOT_ENOUGH_BALANCE_OR_ALLOWANCE = "not-enough-balance-or-allowance"
    WRONG_PERMIT = "wrong-permit"
    INVALID_SIGNATURE = "invalid-signature"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "OrderStatus":
        """Map a vendor status string, unknown values become UNKNOWN"""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.FILLED, OrderStatus.CANCELLED)


class SwapState(Enum):
    """States of the swap pipeline"""
    INIT = "init"
    QUOTED = "quoted"
    WRAPPED = "wrapped"
    APPROVED = "approved"
    ORDER_SUBMITTED = "order_submitted"
    POLLING = "polling"
    FILLED = "filled"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    UNWRAPPED = "unwrapped"
    DONE = "done"
    FAILED = "failed"


class SwapOutcome(Enum):
    """How a swap run ended (fatal errors are raised instead)"""
    FILLED = "filled"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    DRY_RUN = "dry_run"


@dataclass(frozen=True)
class SwapRequest:
    """One swap, built once per run"""
    source_asset: str
    destination_asset: str
    amount: int  # smallest unit
    wallet_address: str

    def __post_init__(self):
        if self.amount <= 0:
            raise ValueError(f"Swap amount must be positive, got {self.amount}")


@dataclass(frozen=True)
class WrapDecision:
    """Whether native currency has to be wrapped before / unwrapped after the swap"""
    must_wrap_source: bool = False
    must_unwrap_destination: bool = False


@dataclass
class AuctionPoint:
    """Point of the Dutch auction rate curve"""
    delay: int
    coefficient: int


@dataclass
class PresetInfo:
    """Auction parameters of one quote preset"""
    auction_duration: int
    start_auction_in: int
    initial_rate_bump: int
    auction_start_amount: int
    auction_end_amount: int
    points: list[AuctionPoint] = field(default_factory=list)
    gas_bump_estimate: int = 0
    gas_price_estimate: int = 0
    allow_partial_fills: bool = False
    allow_multiple_fills: bool = False
    exclusive_resolver: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "PresetInfo":
        gas_cost = data.get("gasCost") or {}
        return cls(
            auction_duration=int(data["auctionDuration"]),
            start_auction_in=int(data.get("startAuctionIn", 0)),
            initial_rate_bump=int(data.get("initialRateBump", 0)),
            auction_start_amount=int(data["auctionStartAmount"]),
            auction_end_amount=int(data["auctionEndAmount"]),
            points=[
                AuctionPoint(delay=int(p["delay"]), coefficient=int(p["coefficient"]))
                for p in data.get("points", [])
            ],
            gas_bump_estimate=int(gas_cost.get("gasBumpEstimate", 0)),
            gas_price_estimate=int(gas_cost.get("gasPriceEstimate", 0)),
            allow_partial_fills=bool(data.get("allowPartialFills", False)),
            allow_multiple_fills=bool(data.get("allowMultipleFills", False)),
            exclusive_resolver=data.get("exclusiveResolver"),
        )


@dataclass
class FusionQuote:
    """Quote returned by the Fusion quoter"""
    quote_id: str
    from_token_address: str
    to_token_address: str
    from_token_amount: int
    to_token_amount: int

    presets: dict[Preset, PresetInfo] = field(default_factory=dict)
    recommended_preset: Preset = Preset.FAST
    settlement_address: str = ""
    whitelist: list[str] = field(default_factory=list)

    raw: dict = field(default_factory=dict)
    quoted_at: datetime = field(default_factory=utcnow)

    def get_preset(self, preset: Preset) -> PresetInfo:
        if preset not in self.presets:
            available = ", ".join(p.value for p in self.presets)
            raise ValueError(f"Preset {preset.value} not in quote (available: {available})")
        return self.presets[preset]

    @classmethod
    def from_api(cls, data: dict, params: dict) -> "FusionQuote":
        """
        Build a quote from the quoter response.

        The response does not echo the token pair, so the request params
        are kept alongside it.
        """
        presets = {}
        for name, preset_data in (data.get("presets") or {}).items():
            if preset_data is None:
                continue
            try:
                presets[Preset(name)] = PresetInfo.from_api(preset_data)
            except ValueError:
                continue  # custom presets are not used

        recommended = data.get("recommended_preset") or data.get("recommendedPreset") or "fast"
        try:
            recommended_preset = Preset(recommended)
        except ValueError:
            recommended_preset = Preset.FAST

        return cls(
            quote_id=str(data.get("quoteId", "")),
            from_token_address=params["fromTokenAddress"],
            to_token_address=params["toTokenAddress"],
            from_token_amount=int(data.get("fromTokenAmount", params["amount"])),
            to_token_amount=int(data.get("toTokenAmount", 0)),
            presets=presets,
            recommended_preset=recommended_preset,
            settlement_address=data.get("settlementAddress", ""),
            whitelist=list(data.get("whitelist") or []),
            raw=data,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "quote_id": self.quote_id,
            "from_token": self.from_token_address,
            "to_token": self.to_token_address,
            "from_amount": str(self.from_token_amount),
            "to_amount": str(self.to_token_amount),
            "recommended_preset": self.recommended_preset.value,
            "quoted_at": self.quoted_at.isoformat(),
        }


@dataclass
class OrderRequest:
    """Parameters of the limit order to create from a quote"""
    source_asset: str
    destination_asset: str
    amount: int
    wallet_address: str
    receiver: str = ZERO_ADDRESS  # zero = maker
    allow_partial_fills: bool = False
    allow_multiple_fills: bool = False
    preset: Preset = Preset.FAST


@dataclass
class SignedOrder:
    """Order struct + signature, ready for the relayer"""
    order: dict[str, str]
    signature: str
    quote_id: str
    extension: str
    order_hash: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "order": self.order,
            "signature": self.signature,
            "quoteId": self.quote_id,
            "extension": self.extension,
        }


@dataclass
class OrderStatusInfo:
    """Order status response"""
    order_hash: str
    status: OrderStatus
    fills: list[dict] = field(default_factory=list)
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, order_hash: str, data: dict) -> "OrderStatusInfo":
        return cls(
            order_hash=order_hash,
            status=OrderStatus.from_value(data.get("status")),
            fills=list(data.get("fills") or []),
            raw=data,
        )


@dataclass
class TransactionReceipt:
    """Confirmed transaction"""
    tx_hash: str
    block_number: int
    gas_used: int
    effective_gas_price: int = 0
    status: int = 1


@dataclass
class SwapStep:
    """Completed pipeline step, used for compensation"""
    name: str
    reversible: bool
    amount: int = 0
    tx_hashes: list[str] = field(default_factory=list)


@dataclass
class SwapResult:
    """Outcome of a swap run"""
    outcome: SwapOutcome
    order_hash: Optional[str] = None
    quote: Optional[FusionQuote] = None
    final_status: Optional[OrderStatusInfo] = None

    wrapped: bool = False
    unwrapped_amount: int = 0
    approvals_sent: int = 0
    poll_attempts: int = 0
    steps: list[SwapStep] = field(default_factory=list)

    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.outcome == SwapOutcome.FILLED

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "order_hash": self.order_hash,
            "final_status": self.final_status.status.value if self.final_status else None,
            "wrapped": self.wrapped,
            "unwrapped_amount": str(self.unwrapped_amount),
            "quote": self.quote.to_dict() if self.quote else None,
            "approvals_sent": self.approvals_sent,
            "poll_attempts": self.poll_attempts,
            "steps": [s.name for s in self.steps],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
