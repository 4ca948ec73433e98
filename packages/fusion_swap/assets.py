"""
Asset normalization - native currency is never tradable through Fusion,
it is swapped through its wrapped token instead.
"""
from dataclasses import dataclass

from .models import WrapDecision
from .networks import NATIVE_PLACEHOLDER, NATIVE_SENTINEL


_NATIVE_IDS = {NATIVE_SENTINEL.lower(), NATIVE_PLACEHOLDER.lower()}


@dataclass(frozen=True)
class NormalizedAssets:
    """Wrap decision + addresses to use for every quote/order call"""
    decision: WrapDecision
    source: str
    destination: str


def is_native(asset: str) -> bool:
    """True for the zero address or the 0xEeee... placeholder (any case)"""
    return asset.lower() in _NATIVE_IDS


def normalize_assets(source: str, destination: str, wrapped_native: str) -> NormalizedAssets:
    """
    Translate user-facing asset identifiers for the quote/order subsystem

    Args:
        source: Source asset address (may be native)
        destination: Destination asset address (may be native)
        wrapped_native: Wrapped token of the configured chain

    Returns:
        NormalizedAssets with the wrap flags and substituted addresses
    """
    must_wrap = is_native(source)
    must_unwrap = is_native(destination)

    return NormalizedAssets(
        decision=WrapDecision(
            must_wrap_source=must_wrap,
            must_unwrap_destination=must_unwrap,
        ),
        source=wrapped_native if must_wrap else source,
        destination=wrapped_native if must_unwrap else destination,
    )
