"""
Live exchange gateway on top of ccxt's asyncio client.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import ccxt.async_support as ccxt

from config.schema import ExchangeConfig
from core.exceptions import GatewayError
from market_data.base import BaseGateway

logger = logging.getLogger("pairkeeper.market_data.ccxt")


class CcxtGateway(BaseGateway):
    """
    Exchange gateway backed by a ``ccxt.async_support`` client.

    Every ccxt failure is reported as ``GatewayError``. The only exception is
    an order the exchange refuses at creation time, which is returned as a
    not-accepted placement so the loop can log it and move on. Request
    timeouts are enforced by the ccxt client (``timeout_ms``).
    """

    def __init__(self, exchange_config: ExchangeConfig, default_pair: Optional[str] = None, client=None):
        """
        Args:
            exchange_config: Exchange name, credentials and timeout
            default_pair: Symbol passed to calls that some exchanges cannot make without one
            client: Pre-built ccxt client, mostly for tests
        """
        self.name = exchange_config.name
        self.default_pair = default_pair
        if client is None:
            exchange_class = getattr(ccxt, exchange_config.name)
            client = exchange_class({
                'apiKey': exchange_config.api_key,
                'secret': exchange_config.api_secret,
                'timeout': exchange_config.timeout_ms,
                'enableRateLimit': True,
                'options': {'defaultType': 'spot'},
            })
        self.client = client

    async def _call(self, operation: str, method, *args, **kwargs):
        try:
            return await method(*args, **kwargs)
        except ccxt.BaseError as e:
            logger.debug(f"{self.name} {operation} failed: {e}")
            raise GatewayError(operation, e) from e

    async def open_orders(self) -> Dict[str, List[Dict[str, Any]]]:
        raw_orders = await self._call("open_orders", self.client.fetch_open_orders, self.default_pair)
        return self._group_by_pair(
            self._format_order(
                order.get('id'),
                order.get('side'),
                order.get('price'),
                order.get('remaining') if order.get('remaining') is not None else order.get('amount'),
                order.get('symbol'),
                self._seconds(order.get('timestamp')),
            )
            for order in raw_orders
        )

    async def account_balances(self) -> Dict[str, Any]:
        balance = await self._call("account_balances", self.client.fetch_balance)
        free = balance.get('free') or {}
        return {currency: self._as_text(amount) for currency, amount in free.items() if amount is not None}

    async def order_book_top(self, pair: str) -> Dict[str, Any]:
        book = await self._call("order_book_top", self.client.fetch_order_book, pair)
        asks = book.get('asks') or []
        if not asks:
            return {}
        return {"ask_top": self._as_text(asks[0][0])}

    async def recent_trades(self, pair: str) -> List[Dict[str, Any]]:
        trades = await self._call("recent_trades", self.client.fetch_trades, pair)
        # Trades without a timestamp cannot be placed in the averaging window.
        return [
            self._format_trade(t.get('price'), self._seconds(t.get('timestamp')))
            for t in trades
            if t.get('timestamp') is not None
        ]

    async def pair_min_quantity(self, pair: str) -> Any:
        await self._call("pair_min_quantity", self.client.load_markets)
        try:
            market = self.client.market(pair)
        except ccxt.BaseError as e:
            raise GatewayError("pair_min_quantity", e) from e
        minimum = ((market.get('limits') or {}).get('amount') or {}).get('min')
        return self._as_text(minimum) if minimum is not None else "0"

    async def place_order(self, pair: str, side: str, price: Decimal, quantity: Decimal) -> Dict[str, Any]:
        await self._call("place_order", self.client.load_markets)
        try:
            amount = float(self.client.amount_to_precision(pair, float(quantity)))
            limit_price = float(self.client.price_to_precision(pair, float(price)))
            order = await self.client.create_order(pair, 'limit', side, amount, limit_price)
        except (ccxt.InvalidOrder, ccxt.InsufficientFunds) as e:
            logger.warning(f"{self.name} rejected {side} order on {pair}: {e}")
            return {"accepted": False, "error": str(e)}
        except ccxt.BaseError as e:
            raise GatewayError("place_order", e) from e
        return {"accepted": True, "order_id": order.get('id'), "error": None}

    async def cancel_order(self, order_id: str, pair: Optional[str] = None) -> Dict[str, Any]:
        try:
            await self.client.cancel_order(order_id, pair)
        except ccxt.OrderNotFound as e:
            logger.warning(f"Order {order_id} not found on cancel: {e}")
            return {"result": False}
        except ccxt.BaseError as e:
            raise GatewayError("cancel_order", e) from e
        return {"result": True}

    async def order_fills(self, order_id: str, pair: Optional[str] = None) -> List[Dict[str, Any]]:
        if self.client.has.get('fetchOrderTrades'):
            trades = await self._call("order_fills", self.client.fetch_order_trades, order_id, pair)
            return [
                self._format_fill(t.get('price'), t.get('amount'), self._seconds(t.get('timestamp')))
                for t in trades
            ]

        # Without per-order trades, a non-zero filled amount stands in for one fill.
        order = await self._call("order_fills", self.client.fetch_order, order_id, pair)
        filled = order.get('filled') or 0
        if not filled:
            return []
        price = order.get('average') or order.get('price')
        return [self._format_fill(price, filled, self._seconds(order.get('lastTradeTimestamp')))]

    async def close(self) -> None:
        """Close the ccxt HTTP session."""
        await self.client.close()
