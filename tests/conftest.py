import pytest
from decimal import Decimal
from typing import Any, Dict, List, Optional

from config.schema import TradingConfig
from core.interfaces import ExchangeGateway

NOW = 1_700_000_000.0


class FakeGateway(ExchangeGateway):
    """Scripted gateway that records every call."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.orders: Dict[str, List[Dict[str, Any]]] = {}
        self.balances: Dict[str, Any] = {}
        self.ask_top: Any = "100"
        self.trades: List[Dict[str, Any]] = []
        self.min_quantity: Any = "0.001"
        self.fills: Dict[str, List[Dict[str, Any]]] = {}
        self.place_result: Dict[str, Any] = {"accepted": True, "order_id": "42", "error": None}
        self.cancel_result: Dict[str, Any] = {"result": True}
        self.failures: Dict[Any, Exception] = {}

    def _record(self, operation: str, *args):
        self.calls.append((operation,) + args)
        for key in ((operation,) + args[:1], operation):
            if key in self.failures:
                raise self.failures[key]

    def called(self, operation: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == operation]

    async def open_orders(self):
        self._record("open_orders")
        return self.orders

    async def account_balances(self):
        self._record("account_balances")
        return self.balances

    async def order_book_top(self, pair: str):
        self._record("order_book_top", pair)
        return {"ask_top": self.ask_top}

    async def recent_trades(self, pair: str):
        self._record("recent_trades", pair)
        return self.trades

    async def pair_min_quantity(self, pair: str):
        self._record("pair_min_quantity", pair)
        return self.min_quantity

    async def place_order(self, pair: str, side: str, price: Decimal, quantity: Decimal):
        self._record("place_order", pair, side, price, quantity)
        return self.place_result

    async def cancel_order(self, order_id: str, pair: Optional[str] = None):
        self._record("cancel_order", order_id)
        return self.cancel_result

    async def order_fills(self, order_id: str, pair: Optional[str] = None):
        self._record("order_fills", order_id)
        return self.fills.get(order_id, [])


def raw_order(order_id, side, price, created=NOW, quantity="1", pair="BTC/USD"):
    return {
        "order_id": order_id,
        "side": side,
        "price": price,
        "quantity": quantity,
        "pair": pair,
        "created": created,
    }


@pytest.fixture
def config_factory():
    """Build trading configurations with overrides."""
    def make(**overrides):
        values = {
            'currency_a': 'BTC',
            'currency_b': 'USD',
            'fee_rate': '0.01',
            'profit_margin': '0.02',
            'order_max_age_minutes': 3,
            'spend_limit': '97',
            'avg_price_window_minutes': 1,
            'exchange_time_offset_hours': 0,
            'poll_interval_seconds': 60,
        }
        values.update(overrides)
        return TradingConfig(**values)
    return make


@pytest.fixture
def trading_config(config_factory):
    return config_factory()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def clock():
    """Fixed clock at NOW."""
    return lambda: NOW


@pytest.fixture
def make_order():
    return raw_order


@pytest.fixture
def full_config():
    """A complete configuration mapping as it would come from YAML."""
    return {
        'exchange': {
            'name': 'exmo',
            'api_key': '',
            'api_secret': '',
            'paper_trading': True,
        },
        'trading': {
            'currency_a': 'BTC',
            'currency_b': 'USD',
            'fee_rate': 0.002,
            'profit_margin': 0.001,
            'order_max_age_minutes': 3,
            'spend_limit': 15,
            'avg_price_window_minutes': 1,
            'exchange_time_offset_hours': 0,
            'poll_interval_seconds': 60,
        },
        'paper': {
            'base_price': 50000,
            'volatility': 0.0,
            'balances': {'USD': 100},
        },
        'logging': {
            'level': 'INFO',
            'log_dir': 'logs',
        },
    }
