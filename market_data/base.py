"""
Base exchange gateway implementation.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from core.interfaces import ExchangeGateway

logger = logging.getLogger("pairkeeper.market_data")


class BaseGateway(ExchangeGateway):
    """Base implementation of the exchange gateway with common payload formatting."""

    def _format_order(self, order_id: Any, side: str, price: Any, quantity: Any,
                      pair: str, created: Optional[float]) -> Dict[str, Any]:
        """Format an order into the ``open_orders`` payload shape.

        Args:
            order_id: Exchange order id
            side: "buy" or "sell"
            price: Limit price
            quantity: Order quantity
            pair: Pair symbol, e.g. "BTC/USD"
            created: Creation time in seconds on the exchange clock

        Returns:
            Formatted order
        """
        return {
            "order_id": str(order_id),
            "side": side,
            "price": self._as_text(price),
            "quantity": self._as_text(quantity),
            "pair": pair,
            "created": created,
        }

    def _format_trade(self, price: Any, timestamp: Optional[float]) -> Dict[str, Any]:
        return {"price": self._as_text(price), "timestamp": timestamp}

    def _format_fill(self, price: Any, quantity: Any, timestamp: Optional[float]) -> Dict[str, Any]:
        return {"price": self._as_text(price), "quantity": self._as_text(quantity), "timestamp": timestamp}

    def _group_by_pair(self, orders: Iterable[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for order in orders:
            grouped.setdefault(order["pair"], []).append(order)
        return grouped

    @staticmethod
    def _as_text(value: Any) -> Any:
        # floats go through str() so Decimal parsing sees the short repr
        if isinstance(value, float):
            return str(value)
        return value

    @staticmethod
    def _seconds(milliseconds: Optional[float]) -> Optional[float]:
        if milliseconds is None:
            return None
        return milliseconds / 1000
