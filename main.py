"""
pairkeeper - Main Entry Point
"""
import argparse
import asyncio
import sys

from config.schema import ConfigError, load_config
from core.runner import BotRunner
from utils.logger import close_logger, setup_logger


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Single-pair order lifecycle bot")
    parser.add_argument("--config", default="config/config.yaml", help="Path to the YAML configuration")
    parser.add_argument("--env-file", default=None, help="Optional .env file with exchange credentials")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument("--paper", action="store_true", help="Force paper trading")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Main entry point for the trading system."""
    args = parse_args(argv)
    try:
        config = load_config(args.config, args.env_file)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 2

    if args.paper:
        config = config.model_copy(update={
            'exchange': config.exchange.model_copy(update={'paper_trading': True})
        })

    level = args.log_level or config.logging.level
    logger = setup_logger(
        "pairkeeper",
        config.logging.log_dir,
        level=level,
        max_bytes=config.logging.max_bytes,
        backup_count=config.logging.backup_count,
    )
    logger.info(f"Starting pairkeeper for {config.trading.pair}")

    runner = BotRunner(config)
    try:
        if args.once:
            report = await runner.run_once()
            logger.info(f"Single cycle finished: {report.outcome.value}")
        else:
            await runner.run()
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return 1
    finally:
        logger.info("Shutting down pairkeeper")
        close_logger("pairkeeper")
    return 0


def cli():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
