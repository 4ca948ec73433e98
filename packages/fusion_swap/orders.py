"""
Fusion order construction and signing

Orders are 1inch limit order protocol v4 orders whose extension carries the
Fusion Dutch auction. The order hash is the EIP-712 hash of the Order struct
under the Aggregation Router v6 domain.
"""
import re
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .errors import InvalidOrderHashError
from .models import FusionQuote, OrderRequest, PresetInfo, SignedOrder
from .networks import ZERO_ADDRESS


ORDER_HASH_PATTERN = re.compile(r"0x[0-9a-fA-F]{64}")

DOMAIN_NAME = "1inch Aggregation Router"
DOMAIN_VERSION = "6"

ORDER_TYPES = [
    {"name": "salt", "type": "uint256"},
    {"name": "maker", "type": "address"},
    {"name": "receiver", "type": "address"},
    {"name": "makerAsset", "type": "address"},
    {"name": "takerAsset", "type": "address"},
    {"name": "makingAmount", "type": "uint256"},
    {"name": "takingAmount", "type": "uint256"},
    {"name": "makerTraits", "type": "uint256"},
]

EIP712_DOMAIN_TYPES = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

# makerTraits high bit flags
NO_PARTIAL_FILLS_FLAG = 255
ALLOW_MULTIPLE_FILLS_FLAG = 254
PRE_INTERACTION_CALL_FLAG = 252
POST_INTERACTION_CALL_FLAG = 251
NEED_CHECK_EPOCH_MANAGER_FLAG = 250
HAS_EXTENSION_FLAG = 249
USE_PERMIT2_FLAG = 248
UNWRAP_WETH_FLAG = 247

UINT_40_MAX = (1 << 40) - 1
UINT_80_MASK = (1 << 80) - 1
UINT_160_MASK = (1 << 160) - 1

# Extension fields, in offset order
EXTENSION_FIELDS = (
    "maker_asset_suffix",
    "taker_asset_suffix",
    "making_amount_data",
    "taking_amount_data",
    "predicate",
    "maker_permit",
    "pre_interaction",
    "post_interaction",
)


def trim0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def build_maker_traits(
    allowed_sender: str = ZERO_ADDRESS,
    expiration: int = 0,
    nonce: int = 0,
    series: int = 0,
    allow_partial_fills: bool = False,
    allow_multiple_fills: bool = False,
    has_extension: bool = False,
    has_pre_interaction: bool = False,
    has_post_interaction: bool = False,
    unwrap_weth: bool = False,
) -> int:
    """
    Pack makerTraits

    Layout (low to high): allowed sender (low 80 bits of the address),
    expiration (40 bits), nonce (40 bits), series (40 bits), then flags.
    """
    for name, value in (("expiration", expiration), ("nonce", nonce), ("series", series)):
        if not 0 <= value <= UINT_40_MAX:
            raise ValueError(f"{name} must fit in 40 bits, got {value}")

    traits = (
        (series << 160)
        | (nonce << 120)
        | (expiration << 80)
        | (int(allowed_sender, 16) & UINT_80_MASK)
    )

    if not allow_partial_fills:
        traits |= 1 << NO_PARTIAL_FILLS_FLAG
    if allow_multiple_fills:
        traits |= 1 << ALLOW_MULTIPLE_FILLS_FLAG
    if has_extension:
        traits |= 1 << HAS_EXTENSION_FLAG
    if has_pre_interaction:
        traits |= 1 << PRE_INTERACTION_CALL_FLAG
    if has_post_interaction:
        traits |= 1 << POST_INTERACTION_CALL_FLAG
    if unwrap_weth:
        traits |= 1 << UNWRAP_WETH_FLAG
    return traits


@dataclass
class Extension:
    """Limit order extension: offsets word followed by the concatenated fields"""
    maker_asset_suffix: str = "0x"
    taker_asset_suffix: str = "0x"
    making_amount_data: str = "0x"
    taking_amount_data: str = "0x"
    predicate: str = "0x"
    maker_permit: str = "0x"
    pre_interaction: str = "0x"
    post_interaction: str = "0x"

    @property
    def is_empty(self) -> bool:
        return all(trim0x(getattr(self, f)) == "" for f in EXTENSION_FIELDS)

    def encode(self) -> str:
        if self.is_empty:
            return "0x"

        offsets = 0
        cumulative = 0
        body = ""
        for index, name in enumerate(EXTENSION_FIELDS):
            data = trim0x(getattr(self, name))
            cumulative += len(data) // 2
            offsets |= cumulative << (32 * index)
            body += data
        return "0x" + offsets.to_bytes(32, "big").hex() + body


def encode_auction_details(preset: PresetInfo, start_time: int) -> str:
    """
    Dutch auction parameters

    gasBumpEstimate (uint24) | gasPriceEstimate (uint32) | startTime (uint32)
    | duration (uint24) | initialRateBump (uint24) | points (uint24 coefficient
    + uint16 delay each)
    """
    data = (
        preset.gas_bump_estimate.to_bytes(3, "big")
        + preset.gas_price_estimate.to_bytes(4, "big")
        + start_time.to_bytes(4, "big")
        + preset.auction_duration.to_bytes(3, "big")
        + preset.initial_rate_bump.to_bytes(3, "big")
    )
    for point in preset.points:
        data += point.coefficient.to_bytes(3, "big") + point.delay.to_bytes(2, "big")
    return "0x" + data.hex()


def encode_whitelist(whitelist: list[str], resolving_start_time: int) -> str:
    """
    Resolver whitelist for the settlement post-interaction

    resolvingStartTime (uint32) | count (uint8) | per resolver: last 10 bytes
    of the address + delay (uint16)
    """
    data = resolving_start_time.to_bytes(4, "big") + len(whitelist).to_bytes(1, "big")
    for resolver in whitelist:
        data += bytes.fromhex(trim0x(resolver))[-10:] + (0).to_bytes(2, "big")
    return "0x" + data.hex()


@dataclass
class FusionOrder:
    """Unsigned order"""
    salt: int
    maker: str
    receiver: str
    maker_asset: str
    taker_asset: str
    making_amount: int
    taking_amount: int
    maker_traits: int
    extension: str = "0x"

    def build(self) -> dict[str, str]:
        """Order struct as the relayer expects it (all strings)"""
        return {
            "salt": str(self.salt),
            "maker": self.maker,
            "receiver": self.receiver,
            "makerAsset": self.maker_asset,
            "takerAsset": self.taker_asset,
            "makingAmount": str(self.making_amount),
            "takingAmount": str(self.taking_amount),
            "makerTraits": str(self.maker_traits),
        }

    def typed_data(self, chain_id: int, verifying_contract: str) -> dict:
        """EIP-712 payload for signing"""
        return {
            "types": {
                "EIP712Domain": EIP712_DOMAIN_TYPES,
                "Order": ORDER_TYPES,
            },
            "primaryType": "Order",
            "domain": {
                "name": DOMAIN_NAME,
                "version": DOMAIN_VERSION,
                "chainId": chain_id,
                "verifyingContract": Web3.to_checksum_address(verifying_contract),
            },
            "message": {
                "salt": self.salt,
                "maker": self.maker,
                "receiver": self.receiver,
                "makerAsset": self.maker_asset,
                "takerAsset": self.taker_asset,
                "makingAmount": self.making_amount,
                "takingAmount": self.taking_amount,
                "makerTraits": self.maker_traits,
            },
        }

    def order_hash(self, chain_id: int, verifying_contract: str) -> str:
        """Order UID"""
        signable = encode_typed_data(full_message=self.typed_data(chain_id, verifying_contract))
        digest = Web3.keccak(b"\x19" + signable.version + signable.header + signable.body)
        return Web3.to_hex(digest)


class FusionOrderBuilder:
    """
    Turns a quote + OrderRequest into a FusionOrder

    Args:
        chain_id: Chain of the order
        router_address: Limit order protocol (EIP-712 verifying contract)
        extension_address: Fusion settlement extension, used when the quote
            does not name one
    """

    def __init__(self, chain_id: int, router_address: str, extension_address: Optional[str] = None):
        self.chain_id = chain_id
        self.router_address = router_address
        self.extension_address = extension_address

    def create_order(
        self,
        request: OrderRequest,
        quote: FusionQuote,
        now: Optional[int] = None,
    ) -> FusionOrder:
        preset = quote.get_preset(request.preset)
        now = int(time.time()) if now is None else now

        extension_address = quote.settlement_address or self.extension_address or self.router_address
        extension_address = Web3.to_checksum_address(extension_address)

        start_time = now + preset.start_auction_in
        auction = extension_address + trim0x(encode_auction_details(preset, start_time))
        extension = Extension(
            making_amount_data=auction,
            taking_amount_data=auction,
            post_interaction=extension_address + trim0x(encode_whitelist(quote.whitelist, start_time)),
        )
        encoded_extension = extension.encode()

        # Low 160 bits of the salt commit to the extension
        salt = (secrets.randbits(96) << 160) | (
            int.from_bytes(Web3.keccak(hexstr=encoded_extension), "big") & UINT_160_MASK
        )

        maker_traits = build_maker_traits(
            allowed_sender=extension_address,
            expiration=start_time + preset.auction_duration,
            nonce=secrets.randbits(40),
            allow_partial_fills=request.allow_partial_fills,
            allow_multiple_fills=request.allow_multiple_fills,
            has_extension=True,
            has_post_interaction=True,
        )

        return FusionOrder(
            salt=salt,
            maker=Web3.to_checksum_address(request.wallet_address),
            receiver=Web3.to_checksum_address(request.receiver),
            maker_asset=Web3.to_checksum_address(request.source_asset),
            taker_asset=Web3.to_checksum_address(request.destination_asset),
            making_amount=request.amount,
            taking_amount=preset.auction_end_amount,
            maker_traits=maker_traits,
            extension=encoded_extension,
        )

    def order_hash(self, order: FusionOrder) -> str:
        return order.order_hash(self.chain_id, self.router_address)

    def typed_data(self, order: FusionOrder) -> dict:
        return order.typed_data(self.chain_id, self.router_address)


class OrderSigner:
    """EIP-712 signer backed by a local account"""

    def __init__(self, account: LocalAccount):
        self.account = account

    def sign(self, typed_data: dict) -> str:
        signable = encode_typed_data(full_message=typed_data)
        signed = self.account.sign_message(signable)
        return Web3.to_hex(signed.signature)


def validate_order_hash(order_hash: str) -> str:
    """
    Raises:
        InvalidOrderHashError: not a 0x-prefixed 32-byte hex string
    """
    if not isinstance(order_hash, str) or not ORDER_HASH_PATTERN.fullmatch(order_hash):
        raise InvalidOrderHashError(f"Invalid order hash generated: {order_hash!r}")
    return order_hash


def sign_order(
    builder: FusionOrderBuilder,
    signer: OrderSigner,
    order: FusionOrder,
    quote_id: str,
) -> SignedOrder:
    """Sign an order and validate its hash"""
    signature = signer.sign(builder.typed_data(order))
    order_hash = validate_order_hash(builder.order_hash(order))
    return SignedOrder(
        order=order.build(),
        signature=signature,
        quote_id=quote_id,
        extension=order.extension,
        order_hash=order_hash,
    )
