"""
Run one Fusion swap from the command line

    python -m fusion_swap                      # 0.005 BNB -> USDC on BSC
    python -m fusion_swap --to 0x000...000 --from 0x8ac7... --amount 2
"""
import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal

from web3 import Web3

from .config import SwapConfig
from .context import SwapContext
from .errors import ConfigurationError, FusionSwapError
from .models import SwapOutcome, SwapRequest
from .networks import NATIVE_SENTINEL
from .orchestrator import SwapOrchestrator


USDC_BSC = "0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d"

EXIT_CODES = {
    SwapOutcome.FILLED: 0,
    SwapOutcome.CANCELLED: 0,
    SwapOutcome.DRY_RUN: 0,
    SwapOutcome.TIMED_OUT: 2,
}


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Swap tokens through 1inch Fusion")
    parser.add_argument("--from", dest="source", default=NATIVE_SENTINEL,
                        help="Source token address (zero address = native currency)")
    parser.add_argument("--to", dest="destination", default=USDC_BSC,
                        help="Destination token address (zero address = native currency)")
    parser.add_argument("--amount", type=Decimal, default=Decimal("0.005"),
                        help="Amount of the source token, 18 decimals assumed")
    parser.add_argument("--dry-run", action="store_true",
                        help="Quote and sign only, send nothing")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    parser.add_argument("--json", dest="as_json", action="store_true",
                        help="Print the swap result as JSON")
    return parser.parse_args(argv)


async def run(
    config: SwapConfig,
    source: str,
    destination: str,
    amount: int,
    as_json: bool = False,
) -> SwapOutcome:
    context = SwapContext.from_config(config)
    try:
        request = SwapRequest(
            source_asset=source,
            destination_asset=destination,
            amount=amount,
            wallet_address=context.wallet_address,
        )
        if not as_json:
            print(f"Wallet: {context.wallet_address}")

        result = await SwapOrchestrator(context).run(request)
        if as_json:
            print(json.dumps(result.to_dict(), indent=2))
            return result.outcome

        print(f"\n✅ Swap finished: {result.outcome.value}")
        if result.order_hash:
            print(f"   Order UID: {result.order_hash}")
        if result.final_status:
            print(f"   Final status: {result.final_status.status.value}")
        if result.unwrapped_amount:
            print(f"   Unwrapped: {Web3.from_wei(result.unwrapped_amount, 'ether')}")
        return result.outcome
    finally:
        await context.close()


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = SwapConfig.from_env(args.env_file)
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return 1

    if args.dry_run:
        config.dry_run = True

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("fusion_swap")

    amount = Web3.to_wei(args.amount, "ether")

    try:
        outcome = asyncio.run(run(config, args.source, args.destination, amount, args.as_json))
    except FusionSwapError as e:
        logger.exception(f"Swap failed: {e}")
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    return EXIT_CODES[outcome]


if __name__ == "__main__":
    sys.exit(main())
