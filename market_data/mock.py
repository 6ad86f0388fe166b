"""
Paper exchange gateway for dry runs and testing.
"""
import itertools
import random
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from config.schema import PaperConfig
from core.exceptions import GatewayError
from market_data.base import BaseGateway, logger
from utils.common import exchange_now

PRICE_STEP = Decimal("0.00000001")


class PaperGateway(BaseGateway):
    """In-memory exchange that simulates a single pair.

    The ask price follows a random walk that advances once per ``open_orders``
    call, which the trading loop makes exactly once per cycle. Limit orders
    reserve their funds when placed and fill completely as soon as the walk
    crosses their price.
    """

    def __init__(self, pair: str, config: PaperConfig, clock=time.time, trades_per_step: int = 3,
                 offset_hours: float = 0.0):
        """Initialize the paper exchange.

        Args:
            pair: The only tradable pair, e.g. "BTC/USD"
            config: Paper trading options:
                - base_price: Starting ask price
                - volatility: Price volatility (0-1)
                - trend: Price trend (-1 to 1)
                - balances: Starting free balances
                - min_quantity: Minimum order quantity
                - seed: Random seed
            clock: Time source in seconds
            trades_per_step: Synthetic public trades recorded per price step
            offset_hours: Exchange clock offset used to stamp trades and orders
        """
        self.pair = pair
        self.currency_a, self.currency_b = pair.split("/")
        self.base_price = config.base_price
        self.volatility = config.volatility
        self.trend = config.trend
        self.min_quantity = config.min_quantity
        self.initial_balances = dict(config.balances)
        self.clock = clock
        self.trades_per_step = trades_per_step
        self.offset_hours = offset_hours
        self.random = random.Random(config.seed)
        self.reset()

    def reset(self):
        """Reset the simulated exchange to its initial state."""
        self.current_price = self.base_price
        self.balances: Dict[str, Decimal] = {c: Decimal(v) for c, v in self.initial_balances.items()}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.fills: Dict[str, List[Dict[str, Any]]] = {}
        self.trades: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)

    def _now(self) -> float:
        return exchange_now(self.offset_hours, self.clock)

    def _check_pair(self, pair: str) -> None:
        if pair != self.pair:
            raise GatewayError("paper", ValueError(f"Unknown pair {pair}"))

    def _step(self) -> None:
        """Advance the price walk, record public trades and match open orders."""
        price_change = self.random.uniform(-self.volatility, self.volatility)
        price_change += self.trend * self.volatility  # Add trend bias
        new_price = self.current_price * Decimal(str(1 + price_change))
        self.current_price = max(new_price.quantize(PRICE_STEP), PRICE_STEP)

        now = self._now()
        for _ in range(self.trades_per_step):
            jitter = Decimal(str(self.random.uniform(-self.volatility / 2, self.volatility / 2)))
            price = (self.current_price * (1 + jitter)).quantize(PRICE_STEP)
            self.trades.append(self._format_trade(price, now))
        del self.trades[:-100]

        self._match(now)

    def _match(self, now: float) -> None:
        for order_id, order in list(self.orders.items()):
            price, quantity = order["price"], order["quantity"]
            if order["side"] == "buy" and self.current_price <= price:
                self._credit(self.currency_a, quantity)
            elif order["side"] == "sell" and self.current_price >= price:
                self._credit(self.currency_b, price * quantity)
            else:
                continue
            self.fills.setdefault(order_id, []).append(self._format_fill(price, quantity, now))
            del self.orders[order_id]
            logger.info(f"Paper {order['side']} order {order_id} filled at {price}")

    def _credit(self, currency: str, amount: Decimal) -> None:
        self.balances[currency] = self.balances.get(currency, Decimal("0")) + amount

    async def open_orders(self) -> Dict[str, List[Dict[str, Any]]]:
        self._step()
        return self._group_by_pair(
            self._format_order(order_id, o["side"], o["price"], o["quantity"], self.pair, o["created"])
            for order_id, o in self.orders.items()
        )

    async def account_balances(self) -> Dict[str, Any]:
        return {currency: str(amount) for currency, amount in self.balances.items()}

    async def order_book_top(self, pair: str) -> Dict[str, Any]:
        self._check_pair(pair)
        return {"ask_top": str(self.current_price)}

    async def recent_trades(self, pair: str) -> List[Dict[str, Any]]:
        self._check_pair(pair)
        return list(self.trades)

    async def pair_min_quantity(self, pair: str) -> Any:
        self._check_pair(pair)
        return str(self.min_quantity)

    async def place_order(self, pair: str, side: str, price: Decimal, quantity: Decimal) -> Dict[str, Any]:
        self._check_pair(pair)
        price = Decimal(price).quantize(PRICE_STEP)
        quantity = Decimal(quantity)
        if quantity < self.min_quantity:
            return {"accepted": False, "error": f"Quantity {quantity} below minimum {self.min_quantity}"}

        currency, cost = (self.currency_b, price * quantity) if side == "buy" else (self.currency_a, quantity)
        available = self.balances.get(currency, Decimal("0"))
        if available < cost:
            return {"accepted": False, "error": f"Insufficient {currency}: {available} < {cost}"}
        self.balances[currency] = available - cost

        order_id = str(next(self._ids))
        self.orders[order_id] = {
            "side": side,
            "price": price,
            "quantity": quantity,
            "created": self._now(),
        }
        return {"accepted": True, "order_id": order_id, "error": None}

    async def cancel_order(self, order_id: str, pair: Optional[str] = None) -> Dict[str, Any]:
        order = self.orders.pop(order_id, None)
        if order is None:
            return {"result": False}
        if order["side"] == "buy":
            self._credit(self.currency_b, order["price"] * order["quantity"])
        else:
            self._credit(self.currency_a, order["quantity"])
        return {"result": True}

    async def order_fills(self, order_id: str, pair: Optional[str] = None) -> List[Dict[str, Any]]:
        return list(self.fills.get(order_id, []))
