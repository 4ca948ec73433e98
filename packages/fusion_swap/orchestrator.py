"""
Swap Orchestrator - quote -> wrap -> approve -> sign -> submit -> poll -> unwrap
"""
import logging
import time
from typing import Callable, Optional

from .allowance import AllowanceManager
from .assets import NormalizedAssets, normalize_assets
from .context import SwapContext
from .errors import ConfigurationError, RelayApiError, SwapAbortedError
from .models import (
    FusionQuote, OrderRequest, OrderStatus, OrderStatusInfo, SignedOrder,
    SwapOutcome, SwapRequest, SwapResult, SwapState, SwapStep, utcnow,
)
from .orders import FusionOrderBuilder, OrderSigner, sign_order
from .wrapping import WrapManager


class SwapOrchestrator:
    """
    Runs one swap end to end

    States:
        INIT -> QUOTED -> WRAPPED? -> APPROVED -> ORDER_SUBMITTED -> POLLING
        -> FILLED | CANCELLED | TIMED_OUT -> UNWRAPPED? -> DONE

    Any error moves to FAILED and is re-raised. A cancelled order is a
    normal outcome, not an error.

    Usage:
        context = SwapContext.from_config(SwapConfig.from_env())
        result = await SwapOrchestrator(context).run(request)
    """

    def __init__(
        self,
        context: SwapContext,
        wrapper: Optional[WrapManager] = None,
        allowances: Optional[AllowanceManager] = None,
        builder: Optional[FusionOrderBuilder] = None,
        signer: Optional[OrderSigner] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.context = context
        self.config = context.config
        self.api = context.api
        self.cancel_token = context.cancel_token

        self.wrapper = wrapper or WrapManager(self.config, context.chain)
        self.allowances = allowances or AllowanceManager(self.config, context.chain, context.api)
        self.builder = builder or FusionOrderBuilder(
            chain_id=self.config.chain_id,
            router_address=self.config.settlement_address,
        )
        self.signer = signer or OrderSigner(context.chain.account)
        self._clock = clock

        self.logger = logging.getLogger("fusion_swap.orchestrator")
        self.state = SwapState.INIT
        self.history: list[SwapState] = [SwapState.INIT]

    def _set_state(self, state: SwapState):
        self.state = state
        self.history.append(state)
        self.logger.debug(f"State -> {state.value}")

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def run(self, request: SwapRequest) -> SwapResult:
        """
        Execute the swap

        Returns:
            SwapResult with outcome FILLED, CANCELLED, TIMED_OUT or DRY_RUN

        Raises:
            TransactionError, RelayApiError, InvalidOrderHashError,
            SwapAbortedError: fatal errors, after compensation
        """
        started_at = utcnow()
        steps: list[SwapStep] = []

        try:
            self.cancel_token.raise_if_cancelled()
            self._check_wallet(request)
            assets = normalize_assets(
                request.source_asset,
                request.destination_asset,
                self.config.wrapped_native,
            )
            quote = await self._quote(request, assets)

            if self.config.dry_run:
                signed = self._build_signed_order(request, assets, quote)
                self.logger.info(f"Dry run: order {signed.order_hash} built and signed, not submitted")
                self._set_state(SwapState.DONE)
                return SwapResult(
                    outcome=SwapOutcome.DRY_RUN,
                    order_hash=signed.order_hash,
                    quote=quote,
                    started_at=started_at,
                    finished_at=utcnow(),
                )

            if assets.decision.must_wrap_source:
                self.logger.info(f"Wrapping {self.config.network.symbol}...")
                receipt = await self.wrapper.wrap(request.amount)
                steps.append(SwapStep("wrap", reversible=True, amount=request.amount, tx_hashes=[receipt.tx_hash]))
                self._set_state(SwapState.WRAPPED)

            approvals = await self.allowances.ensure_allowance(assets.source, request.amount)
            steps.append(SwapStep("approve", reversible=False, amount=request.amount))
            self._set_state(SwapState.APPROVED)

            signed = self._build_signed_order(request, assets, quote)
            self.cancel_token.raise_if_cancelled()
            await self.api.submit_order(signed)
            steps.append(SwapStep("submit", reversible=False, amount=request.amount))
            self._set_state(SwapState.ORDER_SUBMITTED)

            self._set_state(SwapState.POLLING)
            final_status, attempts = await self._poll(signed.order_hash)

            result = SwapResult(
                outcome=SwapOutcome.TIMED_OUT,
                order_hash=signed.order_hash,
                quote=quote,
                final_status=final_status,
                wrapped=assets.decision.must_wrap_source,
                approvals_sent=approvals,
                poll_attempts=attempts,
                steps=steps,
                started_at=started_at,
            )

            status = final_status.status if final_status else None
            if status == OrderStatus.FILLED:
                self._set_state(SwapState.FILLED)
                result.outcome = SwapOutcome.FILLED
                self.logger.info(f"Order {signed.order_hash} filled")

                if assets.decision.must_unwrap_destination:
                    self.logger.info(f"Unwrapping {self.config.network.wrapped_symbol}...")
                    result.unwrapped_amount = await self.wrapper.unwrap()
                    steps.append(SwapStep("unwrap", reversible=False, amount=result.unwrapped_amount))
                    self._set_state(SwapState.UNWRAPPED)
            elif status == OrderStatus.CANCELLED:
                self._set_state(SwapState.CANCELLED)
                result.outcome = SwapOutcome.CANCELLED
                self.logger.warning(f"Order {signed.order_hash} was cancelled")
            else:
                self._set_state(SwapState.TIMED_OUT)
                self.logger.warning(
                    f"Order {signed.order_hash} still {status.value if status else 'unknown'} "
                    f"after {attempts} status checks, giving up"
                )

            self._set_state(SwapState.DONE)
            result.finished_at = utcnow()
            return result

        except Exception as e:
            self._set_state(SwapState.FAILED)
            self.logger.error(f"Swap failed: {e}")
            await self._compensate(steps, e)
            raise

    def _check_wallet(self, request: SwapRequest):
        """The order maker must be the account that signs it"""
        signer = self.signer.account.address
        if request.wallet_address.lower() != signer.lower():
            raise ConfigurationError(
                f"Request wallet {request.wallet_address} is not the signing account {signer}"
            )

    async def _quote(self, request: SwapRequest, assets: NormalizedAssets) -> FusionQuote:
        quote = await self.api.get_quote(
            assets.source,
            assets.destination,
            request.amount,
            request.wallet_address,
        )
        self._set_state(SwapState.QUOTED)
        return quote

    def _build_signed_order(
        self,
        request: SwapRequest,
        assets: NormalizedAssets,
        quote: FusionQuote,
    ) -> SignedOrder:
        """Build, sign and validate the order (InvalidOrderHashError aborts here)"""
        order_request = OrderRequest(
            source_asset=assets.source,
            destination_asset=quote.to_token_address,
            amount=request.amount,
            wallet_address=request.wallet_address,
            allow_partial_fills=False,
            allow_multiple_fills=False,
            preset=self.config.preset,
        )
        order = self.builder.create_order(order_request, quote)
        signed = sign_order(self.builder, self.signer, order, quote.quote_id)
        self.logger.info(f"Order UID: {signed.order_hash}")
        return signed

    # =========================================================================
    # Polling
    # =========================================================================

    async def _poll(self, order_hash: str) -> tuple[Optional[OrderStatusInfo], int]:
        """
        Poll until filled/cancelled, deadline or attempt limit

        Status fetch errors are logged and polling goes on, unless
        `max_status_errors` consecutive errors occur.

        Returns:
            (last status seen or None, number of status requests)
        """
        poll = self.config.poll
        interval = poll.interval_seconds
        deadline = self._clock() + poll.max_seconds if poll.max_seconds else None

        attempts = 0
        consecutive_errors = 0
        last: Optional[OrderStatusInfo] = None

        while True:
            if poll.max_attempts is not None and attempts >= poll.max_attempts:
                return last, attempts
            if deadline is not None and self._clock() >= deadline:
                return last, attempts

            await self.cancel_token.sleep(interval)
            attempts += 1

            try:
                last = await self.api.get_order_status(order_hash)
            except RelayApiError as e:
                consecutive_errors += 1
                self.logger.warning(f"Error fetching order status: {e.body or e}")
                if poll.max_status_errors is not None and consecutive_errors >= poll.max_status_errors:
                    raise
                continue

            consecutive_errors = 0
            self.logger.info(f"Order Status: {last.status.value}")
            if last.status.is_terminal:
                return last, attempts

            interval = min(interval * poll.backoff, poll.interval_max_seconds)

    # =========================================================================
    # Compensation
    # =========================================================================

    async def _compensate(self, steps: list[SwapStep], error: Exception):
        """
        Undo reversible steps that no submitted order depends on

        Only a wrap before submission is reversible. Nothing is undone once
        the order is submitted, and never after a cancel.
        """
        if any(step.name == "submit" for step in steps):
            return

        wraps = [step for step in steps if step.name == "wrap" and step.reversible]
        if not wraps:
            return

        amount = sum(step.amount for step in wraps)
        symbol = self.config.network.wrapped_symbol

        if isinstance(error, SwapAbortedError) or not self.config.unwrap_on_failure:
            self.logger.warning(
                f"{amount} {symbol} left wrapped after failure, unwrap manually if needed"
            )
            return

        self.logger.info(f"Unwrapping {amount} {symbol} after failure...")
        try:
            await self.wrapper.unwrap(amount)
        except Exception as unwrap_error:
            self.logger.error(f"Compensating unwrap failed: {unwrap_error}")
