"""
Runner for the pairkeeper bot.
Builds the exchange gateway from configuration and drives the trading loop
until a stop is requested.
"""
import asyncio
import logging
import signal
import time
from typing import Optional

from config.schema import Config
from core.interfaces import ExchangeGateway
from core.loop import CycleReport, TradingLoop
from market_data.ccxt_gateway import CcxtGateway
from market_data.mock import PaperGateway
from utils.common import Clock

logger = logging.getLogger("pairkeeper.core.runner")


def build_gateway(config: Config, clock: Clock = time.time) -> ExchangeGateway:
    """Create the paper or live gateway selected by the configuration."""
    pair = config.trading.pair
    if config.exchange.paper_trading:
        logger.info(f"Paper trading {pair} on a simulated exchange")
        return PaperGateway(pair, config.paper, clock=clock,
                            offset_hours=config.trading.exchange_time_offset_hours)
    logger.info(f"Live trading {pair} on {config.exchange.name}")
    return CcxtGateway(config.exchange, default_pair=pair)


class BotRunner:
    def __init__(self, config: Config, gateway: Optional[ExchangeGateway] = None, clock: Clock = time.time):
        """Initialize the bot runner with configuration."""
        self.config = config
        self.gateway = gateway or build_gateway(config, clock)
        self.loop = TradingLoop(self.gateway, clock=clock)
        self._stop_event: Optional[asyncio.Event] = None

    def request_stop(self) -> None:
        """Stop the trading loop and let ``run`` return."""
        self.loop.stop()
        if self._stop_event is not None:
            self._stop_event.set()

    async def run_once(self) -> CycleReport:
        """Run a single cycle and release the gateway."""
        self.loop.configure(self.config.trading)
        try:
            return await self.loop.run_cycle()
        finally:
            await self.loop.shutdown()
            await self.gateway.close()

    async def run(self) -> None:
        """Run cycles until ``request_stop`` is called or SIGINT/SIGTERM arrives."""
        self._stop_event = asyncio.Event()
        event_loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                event_loop.add_signal_handler(sig, self.request_stop)
            except (NotImplementedError, RuntimeError):
                # No signal handlers outside the main thread or on Windows.
                pass

        self.loop.start(self.config.trading)
        try:
            await self._stop_event.wait()
        finally:
            logger.info("Waiting for the current cycle to finish...")
            await self.loop.shutdown()
            await self.gateway.close()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    event_loop.remove_signal_handler(sig)
                except (NotImplementedError, RuntimeError):
                    pass
