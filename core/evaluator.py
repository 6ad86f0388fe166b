"""
Order lifecycle evaluation module.

Decides, per open order, whether it has gone stale and must be cancelled or
should be left standing. Sell orders are compared against one best-ask
snapshot; buy orders are checked for fills and age one by one. Every order is
evaluated independently so a failed query only affects its own order.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Sequence

from config.schema import TradingConfig
from core.exceptions import GatewayError, MalformedResponse
from core.interfaces import ExchangeGateway
from core.models import Order, parse_cancel_result, parse_fills, parse_order_book_top
from utils.common import Clock, seconds_since
from utils.enums import OrderAction

logger = logging.getLogger("pairkeeper.core.evaluator")


@dataclass(frozen=True)
class OrderDecision:
    """Outcome of evaluating one open order."""
    order: Order
    action: OrderAction
    reason: str = ""


class OrderLifecycleEvaluator:
    """Cancels stale sell and buy orders of the tracked pair."""

    def __init__(self, gateway: ExchangeGateway, config: TradingConfig, clock: Clock = time.time):
        self.gateway = gateway
        self.config = config
        self.clock = clock

    async def evaluate(self, sell_orders: Sequence[Order], buy_orders: Sequence[Order]) -> List[OrderDecision]:
        """Evaluate both sides and return once every order has a decision."""
        sell_decisions, buy_decisions = await asyncio.gather(
            self.evaluate_sell_orders(sell_orders),
            self.evaluate_buy_orders(buy_orders),
        )
        return sell_decisions + buy_decisions

    async def evaluate_sell_orders(self, sell_orders: Sequence[Order]) -> List[OrderDecision]:
        """
        Cancel every sell order priced below the current best ask.

        The best ask is fetched once and shared by all orders. If it cannot be
        fetched, every sell order is left standing for this cycle.
        """
        if not sell_orders:
            return []

        try:
            ask_top = parse_order_book_top(await self.gateway.order_book_top(self.config.pair)).ask_top
        except (GatewayError, MalformedResponse) as e:
            logger.error(f"Could not fetch best ask for {self.config.pair}: {e}")
            return [OrderDecision(order, OrderAction.SKIPPED, "best ask unavailable") for order in sell_orders]

        async def settle(order: Order) -> OrderDecision:
            if ask_top > order.price:
                logger.info(f"Sell order {order.order_id} at {order.price} is below best ask {ask_top}, cancelling")
                return await self._cancel(order, f"best ask {ask_top} above price")
            logger.info(f"Sell order {order.order_id} at {order.price} still at or above best ask {ask_top}")
            return OrderDecision(order, OrderAction.LEFT_STANDING, f"best ask {ask_top}")

        return await self._gather(settle, sell_orders)

    async def evaluate_buy_orders(self, buy_orders: Sequence[Order]) -> List[OrderDecision]:
        """Cancel buy orders that never filled and outlived the configured max age."""
        return await self._gather(self._evaluate_buy, buy_orders)

    async def _evaluate_buy(self, order: Order) -> OrderDecision:
        try:
            fills = parse_fills(await self.gateway.order_fills(order.order_id, order.pair))
        except (GatewayError, MalformedResponse) as e:
            logger.error(f"Could not fetch fills for buy order {order.order_id}: {e}")
            return OrderDecision(order, OrderAction.SKIPPED, "fills unavailable")

        if fills:
            logger.info(f"Buy order {order.order_id} is partially executed ({len(fills)} fills), leaving it")
            return OrderDecision(order, OrderAction.LEFT_STANDING, "partially executed")

        age = seconds_since(order.created, self.config.exchange_time_offset_hours, self.clock)
        if age > self.config.order_max_age_seconds:
            logger.info(f"Buy order {order.order_id} too old ({age:.0f}s) and never filled, cancelling")
            return await self._cancel(order, f"unfilled for {age:.0f}s")

        logger.info(f"Buy order {order.order_id} not so old ({age:.0f}s), leaving it")
        return OrderDecision(order, OrderAction.LEFT_STANDING, f"age {age:.0f}s")

    async def _cancel(self, order: Order, reason: str) -> OrderDecision:
        try:
            result = parse_cancel_result(await self.gateway.cancel_order(order.order_id, order.pair))
        except (GatewayError, MalformedResponse) as e:
            logger.error(f"Failed to cancel order {order.order_id}: {e}")
            return OrderDecision(order, OrderAction.CANCEL_FAILED, str(e))

        logger.info(f"Close the order {order.order_id}. Result is - {result.result}")
        if not result.result:
            return OrderDecision(order, OrderAction.CANCEL_FAILED, "exchange refused cancel")
        return OrderDecision(order, OrderAction.CANCELLED, reason)

    async def _gather(self, evaluate_one, orders: Sequence[Order]) -> List[OrderDecision]:
        # Barrier over the fan-out; an unexpected error stays with its own order.
        results = await asyncio.gather(*(evaluate_one(order) for order in orders), return_exceptions=True)
        decisions = []
        for order, result in zip(orders, results):
            if isinstance(result, Exception):
                logger.error(f"Error evaluating order {order.order_id}: {result}", exc_info=result)
                decisions.append(OrderDecision(order, OrderAction.SKIPPED, str(result)))
            else:
                decisions.append(result)
        return decisions
