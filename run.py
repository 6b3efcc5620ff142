#!/usr/bin/env python3
"""
Fuzzy Grid Bot Runner.

Usage:
    python run.py [--config PATH] [--env NAME] [--once]
"""

import argparse
import asyncio
import signal
import sys

from dotenv import load_dotenv

from fuzzygrid.bots.fuzzy_grid import FuzzyGridBot
from fuzzygrid.config import ConfigError, load_config
from fuzzygrid.core import get_logger, set_log_level
from fuzzygrid.exchange import BinanceFuturesGateway
from fuzzygrid.monitoring import ProfitLossLogger

# Load environment variables
load_dotenv()

logger = get_logger("fuzzygrid.run")

# Global bot reference for signal handling
_bot: FuzzyGridBot | None = None


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fuzzy-logic futures grid bot")
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to the YAML configuration file (default: config/config.yaml)",
    )
    parser.add_argument(
        "--env",
        default=None,
        help="Environment overlay name, loads config.<env>.yaml next to the base file",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single reconciliation cycle and exit",
    )
    return parser.parse_args(argv)


async def shutdown(sig: signal.Signals) -> None:
    """Stop the bot on SIGINT/SIGTERM."""
    logger.info(f"Received {sig.name}, shutting down...")
    if _bot:
        await _bot.stop(flatten=False)


async def main(argv: list[str] | None = None) -> int:
    global _bot

    args = parse_args(argv)

    try:
        config = load_config(args.config, env=args.env)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    set_log_level(config.log_level)

    errors = config.validate_for_trading()
    if errors:
        for error in errors:
            logger.error(f"Config validation: {error}")
        return 1

    print("=" * 60)
    print(f"         {config.app_name}")
    print("=" * 60)
    print(f"  Symbol:      {config.strategy.symbol}")
    print(f"  Interval:    {config.strategy.interval}")
    print(f"  Grid Count:  {config.strategy.grid.grid_count}")
    print(f"  Leverage:    {config.strategy.grid.leverage}x")
    print(f"  Testnet:     {config.exchange.is_testnet}")
    print()

    gateway = BinanceFuturesGateway.from_config(config.exchange)
    async with gateway:
        await gateway.sync_time()
        _bot = FuzzyGridBot(
            config,
            gateway,
            pnl_logger=ProfitLossLogger(config.bot.pnl_log_path),
        )

        if args.once:
            await _bot.start()
            result = await _bot.run_cycle()
            logger.info(f"Cycle finished: {result.action.value} {result.reason}".strip())
            return 0

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(
                sig,
                lambda s=sig: asyncio.create_task(shutdown(s))
            )

        await _bot.run()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
