"""
Defines the base interface for the exchange gateway consumed by the order loop.
Keeping the exchange behind this interface lets the loop run against a live
ccxt client, the paper exchange, or a scripted test double.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional


class ExchangeGateway(ABC):
    """Base interface for exchange access.

    Every method performs exactly one named exchange operation and returns the
    raw payload. Implementations raise ``GatewayError`` when the call did not
    complete; payload validation is left to ``core.models``. Implementations
    are expected to enforce their own request timeout.
    """

    @abstractmethod
    async def open_orders(self) -> Dict[str, List[Dict[str, Any]]]:
        """Open orders of the account, keyed by pair."""
        pass

    @abstractmethod
    async def account_balances(self) -> Dict[str, Any]:
        """Free balance per currency."""
        pass

    @abstractmethod
    async def order_book_top(self, pair: str) -> Dict[str, Any]:
        """Best ask for the pair as ``{"ask_top": price}``."""
        pass

    @abstractmethod
    async def recent_trades(self, pair: str) -> List[Dict[str, Any]]:
        """Recent public trades for the pair."""
        pass

    @abstractmethod
    async def pair_min_quantity(self, pair: str) -> Any:
        """Exchange-enforced minimum order quantity for the pair."""
        pass

    @abstractmethod
    async def place_order(self, pair: str, side: str, price: Decimal, quantity: Decimal) -> Dict[str, Any]:
        """Place a limit order; returns ``{"accepted", "order_id", "error"}``."""
        pass

    @abstractmethod
    async def cancel_order(self, order_id: str, pair: Optional[str] = None) -> Dict[str, Any]:
        """Cancel an order; returns ``{"result": bool}``."""
        pass

    @abstractmethod
    async def order_fills(self, order_id: str, pair: Optional[str] = None) -> List[Dict[str, Any]]:
        """Executions recorded against an order."""
        pass

    async def close(self) -> None:
        """Release any open connections."""
        pass
