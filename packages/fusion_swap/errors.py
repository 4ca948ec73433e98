"""
Fusion Swap - Exceptions
"""
from typing import Any, Optional


class FusionSwapError(Exception):
    """Base error for the swap pipeline"""
    pass


class ConfigurationError(FusionSwapError):
    """Missing or invalid configuration (credentials, RPC endpoint, API key)"""
    pass


class TransactionError(FusionSwapError):
    """An on-chain transaction was rejected, reverted or never confirmed"""
    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class RelayApiError(FusionSwapError):
    """Error returned by the 1inch Fusion relay / quoter API"""
    def __init__(
        self,
        message: str,
        status_code: int = 0,
        error_code: str = "",
        body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.body = body


class InvalidOrderHashError(FusionSwapError):
    """The order hash is not a 32-byte hex string; the order is never submitted"""
    pass


class SwapAbortedError(FusionSwapError):
    """The swap was cancelled through its CancelToken"""
    pass
