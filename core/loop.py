"""
Trading loop implementation.

One cycle fetches the open orders, classifies them for the tracked pair and
either evaluates the existing orders or opens a new position. Cycles are
chained with a single asyncio timer: the next cycle is armed exactly once,
after the current one has finished all of its exchange calls.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from config.schema import TradingConfig
from core.classifier import classify_orders
from core.evaluator import OrderDecision, OrderLifecycleEvaluator
from core.exceptions import GatewayError, MalformedResponse
from core.executor import OpenResult, PositionOpener
from core.interfaces import ExchangeGateway
from core.models import parse_open_orders
from utils.common import Clock
from utils.enums import CycleOutcome

logger = logging.getLogger("pairkeeper.core.loop")


@dataclass
class SchedulerState:
    """Mutable state shared by consecutive cycles."""
    pending: Optional[asyncio.TimerHandle] = None
    stopped: bool = False
    current_cycle: Optional[asyncio.Task] = None
    cycles_run: int = 0
    rearm_count: int = 0

    @property
    def pending_count(self) -> int:
        if self.pending is None or self.pending.cancelled():
            return 0
        return 1

    def cancel_pending(self) -> None:
        if self.pending is not None:
            self.pending.cancel()
            self.pending = None


@dataclass(frozen=True)
class CycleReport:
    """Summary of one cycle."""
    outcome: CycleOutcome
    decisions: List[OrderDecision] = field(default_factory=list)
    opened: Optional[OpenResult] = None


class TradingLoop:
    """Poll-decide-act loop for a single currency pair."""

    def __init__(self, gateway: ExchangeGateway, clock: Clock = time.time,
                 state: Optional[SchedulerState] = None):
        self.gateway = gateway
        self.clock = clock
        self.state = state or SchedulerState()
        self.config: Optional[TradingConfig] = None
        self.evaluator: Optional[OrderLifecycleEvaluator] = None
        self.opener: Optional[PositionOpener] = None
        self._active = False

    def configure(self, config: TradingConfig) -> None:
        """Bind the loop to a configuration without scheduling anything."""
        self.config = config
        self.evaluator = OrderLifecycleEvaluator(self.gateway, config, self.clock)
        self.opener = PositionOpener(self.gateway, config, self.clock)

    @property
    def is_running(self) -> bool:
        return self._active or self.state.pending_count > 0

    def start(self, config: TradingConfig) -> None:
        """
        Start (or resume) the cycle loop with ``config``.

        The first cycle runs on the next event-loop iteration. Calling this
        while a cycle is pending or in flight only clears the stop flag.
        Must be called from inside a running event loop.
        """
        self.state.stopped = False
        if self.is_running:
            logger.warning("Trading loop already running, start request ignored")
            return
        self.configure(config)
        logger.info(f"Starting trading loop for {config.pair}, polling every {config.poll_interval_seconds}s")
        self._arm(0)

    def stop(self) -> None:
        """
        Stop the loop from the next cycle boundary on.

        A cycle already in flight finishes its actions but arms no successor.
        """
        logger.info("Stopping trading loop...")
        self.state.stopped = True
        self.state.cancel_pending()

    async def shutdown(self) -> None:
        """Stop, wait for the in-flight cycle and drop any pending timer."""
        self.stop()
        task = self.state.current_cycle
        if task is not None and not task.done():
            await asyncio.wait([task])
        self.state.cancel_pending()

    async def run_cycle(self) -> CycleReport:
        """
        Run one cycle and arm the next one.

        Every outcome except a stopped or overlapping trigger arms exactly one
        follow-up timer, including unexpected errors, so the loop never stalls.
        """
        if self.config is None:
            raise RuntimeError("Trading loop is not configured, call start() first")
        if self.state.stopped:
            logger.info("Trading loop stopped, cycle skipped")
            return CycleReport(CycleOutcome.STOPPED)
        if self._active:
            logger.warning("Cycle already in flight, trigger ignored")
            return CycleReport(CycleOutcome.OVERLAPPED)

        self._active = True
        self.state.cycles_run += 1
        report = CycleReport(CycleOutcome.ERROR)
        try:
            report = await self._cycle()
        except Exception as e:
            logger.error(f"Error in trading cycle: {str(e)}", exc_info=True)
        finally:
            self._active = False
            if not self.state.stopped:
                self._rearm()

        logger.info(f"Cycle {self.state.cycles_run} finished: {report.outcome.value}")
        return report

    async def _cycle(self) -> CycleReport:
        try:
            orders = parse_open_orders(await self.gateway.open_orders(), self.config.pair)
        except (GatewayError, MalformedResponse) as e:
            logger.error(f"Could not fetch open orders: {e}")
            return CycleReport(CycleOutcome.GATEWAY_FAILED)

        sell_orders, buy_orders = classify_orders(orders, self.config.pair)
        if sell_orders or buy_orders:
            logger.info(f"Open orders for {self.config.pair}: {len(sell_orders)} sell, {len(buy_orders)} buy")
            decisions = await self.evaluator.evaluate(sell_orders, buy_orders)
            return CycleReport(CycleOutcome.ORDERS_EVALUATED, decisions=decisions)

        logger.info("No active orders. Need to sell or buy.")
        opened = await self.opener.open_position()
        return CycleReport(opened.outcome, opened=opened)

    def _rearm(self) -> None:
        self.state.rearm_count += 1
        self._arm(self.config.poll_interval_seconds)
        logger.debug(f"Next cycle in {self.config.poll_interval_seconds}s")

    def _arm(self, delay: float) -> None:
        # A new handle always replaces the previous one.
        self.state.cancel_pending()
        loop = asyncio.get_running_loop()
        self.state.pending = loop.call_later(delay, self._on_timer)

    def _on_timer(self) -> None:
        self.state.pending = None
        self.state.current_cycle = asyncio.get_running_loop().create_task(self.run_cycle())
