"""
Position opening module.

Runs when the tracked pair has no open orders: sells the whole currency-A
balance if there is any, otherwise buys with the spend limit if currency B
covers it, otherwise does nothing until funds arrive.
"""
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from config.schema import TradingConfig
from core.exceptions import GatewayError, InsufficientFunds, MalformedResponse, PricingUndefined
from core.interfaces import ExchangeGateway
from core.models import (
    Balances,
    parse_balances,
    parse_min_quantity,
    parse_order_book_top,
    parse_place_result,
    parse_trades,
)
from strategy.pricing import buy_quote, sell_price
from utils.common import Clock, exchange_now
from utils.enums import CycleOutcome, OrderSide

logger = logging.getLogger("pairkeeper.core.executor")


@dataclass(frozen=True)
class OpenResult:
    """What the position opener did this cycle."""
    outcome: CycleOutcome
    side: Optional[OrderSide] = None
    price: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    order_id: Optional[str] = None
    detail: str = ""


def choose_side(balances: Balances, config: TradingConfig) -> OrderSide:
    """
    Pick which order to open from the current balances.

    Raises:
        InsufficientFunds: If there is nothing to sell and not enough to buy
    """
    if balances.of(config.currency_a) > 0:
        return OrderSide.SELL
    available = balances.of(config.currency_b)
    if available >= config.spend_limit:
        return OrderSide.BUY
    raise InsufficientFunds(
        f"No {config.currency_a} to sell and {available} {config.currency_b} below spend limit",
        required=config.spend_limit,
        available=available,
    )


class PositionOpener:
    """Opens a sell or a buy order when none are open."""

    def __init__(self, gateway: ExchangeGateway, config: TradingConfig, clock: Clock = time.time):
        self.gateway = gateway
        self.config = config
        self.clock = clock

    async def open_position(self) -> OpenResult:
        try:
            balances = parse_balances(await self.gateway.account_balances())
        except (GatewayError, MalformedResponse) as e:
            logger.error(f"Could not fetch balances: {e}")
            return OpenResult(CycleOutcome.GATEWAY_FAILED, detail=str(e))

        try:
            side = choose_side(balances, self.config)
        except InsufficientFunds as e:
            logger.warning(f"No money: {e}")
            return OpenResult(CycleOutcome.NO_FUNDS, detail=str(e))

        if side is OrderSide.SELL:
            return await self.open_sell(balances.of(self.config.currency_a))
        return await self.open_buy()

    async def open_sell(self, balance_a: Decimal) -> OpenResult:
        """Place a sell for the whole currency-A balance."""
        try:
            ask_top = parse_order_book_top(await self.gateway.order_book_top(self.config.pair)).ask_top
        except (GatewayError, MalformedResponse) as e:
            logger.error(f"Could not fetch best ask before selling: {e}")
            return OpenResult(CycleOutcome.GATEWAY_FAILED, OrderSide.SELL, detail=str(e))

        price = sell_price(self.config, balance_a, ask_top)
        logger.info(f"Sell info: pair={self.config.pair} quantity={balance_a} price={price} ask_top={ask_top}")
        return await self._place(OrderSide.SELL, price, balance_a)

    async def open_buy(self) -> OpenResult:
        """Place a buy below the trailing average, sized to the spend limit."""
        try:
            trades = parse_trades(await self.gateway.recent_trades(self.config.pair))
        except (GatewayError, MalformedResponse) as e:
            logger.error(f"Could not fetch recent trades: {e}")
            return OpenResult(CycleOutcome.GATEWAY_FAILED, OrderSide.BUY, detail=str(e))

        now = exchange_now(self.config.exchange_time_offset_hours, self.clock)
        try:
            quote = buy_quote(self.config, trades, now)
        except PricingUndefined as e:
            logger.warning(f"Cannot price a buy this cycle: {e}")
            return OpenResult(CycleOutcome.PRICE_UNDEFINED, OrderSide.BUY, detail=str(e))

        logger.info(f"Buy info: avg_price={quote.average_price} price={quote.price} quantity={quote.quantity}")

        try:
            min_quantity = parse_min_quantity(await self.gateway.pair_min_quantity(self.config.pair))
        except (GatewayError, MalformedResponse) as e:
            logger.error(f"Could not fetch minimum quantity: {e}")
            return OpenResult(CycleOutcome.GATEWAY_FAILED, OrderSide.BUY, quote.price, quote.quantity, detail=str(e))

        if quote.quantity < min_quantity:
            logger.warning(f"Have no money to create buy order: {quote.quantity} below minimum {min_quantity}")
            return OpenResult(
                CycleOutcome.BELOW_MIN_QUANTITY, OrderSide.BUY, quote.price, quote.quantity,
                detail=f"minimum {min_quantity}",
            )

        return await self._place(OrderSide.BUY, quote.price, quote.quantity)

    async def _place(self, side: OrderSide, price: Decimal, quantity: Decimal) -> OpenResult:
        try:
            result = parse_place_result(await self.gateway.place_order(self.config.pair, side.value, price, quantity))
        except (GatewayError, MalformedResponse) as e:
            logger.error(f"Failed to place {side.value} order: {e}")
            return OpenResult(CycleOutcome.GATEWAY_FAILED, side, price, quantity, detail=str(e))

        if result.accepted and not result.error:
            logger.info(f"{side.value.capitalize()} order created. id: {result.order_id}")
            outcome = CycleOutcome.SELL_PLACED if side is OrderSide.SELL else CycleOutcome.BUY_PLACED
            return OpenResult(outcome, side, price, quantity, order_id=result.order_id)

        logger.warning(f"Something went wrong, got error when trying to {side.value}: {result.error}")
        return OpenResult(CycleOutcome.PLACEMENT_REJECTED, side, price, quantity, detail=result.error or "")
