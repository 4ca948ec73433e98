"""
Fusion relay API client - quotes, order submission, order status, approvals
"""
import logging
from typing import Any, Optional

import httpx

from .cancellation import CancelToken
from .config import SwapConfig
from .errors import RelayApiError
from .models import FusionQuote, OrderStatusInfo, SignedOrder
from .rate_limit import EndpointRateLimiter


class FusionApiClient:
    """
    1inch Fusion API client

    Usage:
        async with FusionApiClient(config) as api:
            quote = await api.get_quote(src, dst, amount, wallet)
            await api.submit_order(signed_order)
            status = await api.get_order_status(signed_order.order_hash)
    """

    QUOTER = "/fusion/quoter/v2.0/{chain_id}"
    RELAYER = "/fusion/relayer/v2.0/{chain_id}"
    ORDERS = "/fusion/orders/v2.0/{chain_id}"
    SWAP = "/swap/v6.0/{chain_id}"

    def __init__(
        self,
        config: SwapConfig,
        cancel_token: Optional[CancelToken] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rate_limiter: Optional[EndpointRateLimiter] = None,
    ):
        self.config = config
        self.cancel_token = cancel_token or CancelToken()
        self.rate_limiter = rate_limiter or EndpointRateLimiter(
            config.rate_limits, cancel_token=self.cancel_token
        )
        self.logger = logging.getLogger("fusion_swap.relay")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._init_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _init_client(self):
        """Initialize HTTP client"""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.oneinch_api_key}",
        }
        self._client = httpx.AsyncClient(
            base_url=self.config.oneinch_base_url,
            headers=headers,
            timeout=httpx.Timeout(self.config.http_timeout),
            transport=self._transport,
        )

    async def close(self):
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _path(self, prefix: str, suffix: str) -> str:
        return prefix.format(chain_id=self.config.chain_id) + suffix

    async def _request(
        self,
        endpoint: str,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
        expect_object: bool = True,
    ) -> Any:
        """
        Rate-limited API request

        Args:
            endpoint: Rate limit key ("quote", "submit", "status", "approve")
            expect_object: A successful response must be a JSON object

        Raises:
            RelayApiError: HTTP error (with response body), timeout or transport error
        """
        if not self._client:
            self._init_client()

        self.cancel_token.raise_if_cancelled()
        await self.rate_limiter.acquire(endpoint)

        try:
            if method == "GET":
                response = await self._client.get(path, params=params)
            else:
                response = await self._client.post(path, json=json_data, params=params)
        except httpx.TimeoutException:
            raise RelayApiError(f"{endpoint}: request timeout", 0, "TIMEOUT")
        except httpx.RequestError as e:
            raise RelayApiError(f"{endpoint}: request failed: {e}", 0, "REQUEST_ERROR")

        self.cancel_token.raise_if_cancelled()

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = response.text

        if response.status_code == 429:
            raise RelayApiError(f"{endpoint}: rate limit exceeded", 429, "RATE_LIMIT", data)

        if response.status_code >= 400:
            if isinstance(data, dict):
                error_msg = data.get("description", data.get("error", str(data)))
            else:
                error_msg = data or response.reason_phrase
            raise RelayApiError(
                f"{endpoint}: API error ({response.status_code}): {error_msg}",
                response.status_code,
                body=data,
            )

        if expect_object and not isinstance(data, dict):
            raise RelayApiError(
                f"{endpoint}: unexpected response body: {data!r}",
                response.status_code,
                "INVALID_RESPONSE",
                body=data,
            )

        return data

    # =========================================================================
    # Fusion
    # =========================================================================

    async def get_quote(
        self,
        from_token: str,
        to_token: str,
        amount: int,
        wallet_address: str,
    ) -> FusionQuote:
        """
        Get a Fusion quote

        Args:
            from_token: Source token address (wrapped, never native)
            to_token: Destination token address
            amount: Amount in the source token's smallest unit
            wallet_address: Maker address

        Returns:
            FusionQuote with auction presets
        """
        params = {
            "fromTokenAddress": from_token,
            "toTokenAddress": to_token,
            "amount": str(amount),
            "walletAddress": wallet_address,
            "enableEstimate": "true",
        }
        data = await self._request(
            "quote", "GET", self._path(self.QUOTER, "/quote/receive"), params=params
        )
        try:
            quote = FusionQuote.from_api(data, params)
        except (KeyError, TypeError, ValueError) as e:
            raise RelayApiError(f"quote: malformed quote: {e!r}", 200, "INVALID_RESPONSE", data) from e
        self.logger.info(
            f"Quote {quote.quote_id}: {quote.from_token_amount} -> {quote.to_token_amount} "
            f"(recommended preset: {quote.recommended_preset.value})"
        )
        return quote

    async def submit_order(self, signed_order: SignedOrder) -> Any:
        """Submit a signed order to the relayer"""
        data = await self._request(
            "submit",
            "POST",
            self._path(self.RELAYER, "/order/submit"),
            json_data=signed_order.to_payload(),
            expect_object=False,
        )
        self.logger.info(f"Order submitted: {signed_order.order_hash}")
        return data

    async def get_order_status(self, order_hash: str) -> OrderStatusInfo:
        """Status of a submitted order"""
        data = await self._request(
            "status", "GET", self._path(self.ORDERS, f"/order/status/{order_hash}")
        )
        return OrderStatusInfo.from_api(order_hash, data)

    # =========================================================================
    # Approvals (vendor-hosted alternative to contract calls)
    # =========================================================================

    async def get_allowance(self, token: str, owner: str) -> int:
        """Allowance granted by `owner` to the 1inch router"""
        data = await self._request(
            "approve",
            "GET",
            self._path(self.SWAP, "/approve/allowance"),
            params={"tokenAddress": token, "walletAddress": owner},
        )
        return int(data["allowance"])

    async def get_approval_transaction(self, token: str, amount: int) -> dict:
        """Calldata approving the 1inch router for `amount`"""
        data = await self._request(
            "approve",
            "GET",
            self._path(self.SWAP, "/approve/transaction"),
            params={"tokenAddress": token, "amount": str(amount)},
        )
        return {
            "to": data["to"],
            "data": data["data"],
            "value": int(data.get("value", 0)),
        }
