"""
Tests for the paper exchange gateway.
"""
import pytest
from decimal import Decimal

from config.schema import PaperConfig
from core.exceptions import GatewayError
from core.models import parse_balances, parse_open_orders, parse_order_book_top, parse_trades
from market_data.mock import PaperGateway

NOW = 1_700_000_000.0


@pytest.fixture
def paper_config():
    return PaperConfig(base_price="100", volatility=0.0, balances={"USD": "1000", "BTC": "1"},
                       min_quantity="0.01", seed=7)


@pytest.fixture
def paper(paper_config):
    return PaperGateway("BTC/USD", paper_config, clock=lambda: NOW)


@pytest.mark.asyncio
async def test_initial_state(paper):
    balances = parse_balances(await paper.account_balances())
    assert balances.of("USD") == Decimal("1000")
    assert parse_order_book_top(await paper.order_book_top("BTC/USD")).ask_top == Decimal("100")
    assert parse_open_orders(await paper.open_orders()) == {}


@pytest.mark.asyncio
async def test_open_orders_records_trades(paper):
    await paper.open_orders()

    trades = parse_trades(await paper.recent_trades("BTC/USD"))
    assert len(trades) == 3
    assert all(t.price == Decimal("100") and t.timestamp == NOW for t in trades)


@pytest.mark.asyncio
async def test_buy_reserves_and_cancel_releases(paper):
    result = await paper.place_order("BTC/USD", "buy", Decimal("90"), Decimal("2"))
    assert result["accepted"] is True
    assert paper.balances["USD"] == Decimal("820")

    orders = parse_open_orders(await paper.open_orders())
    assert [o.order_id for o in orders["BTC/USD"]] == [result["order_id"]]

    assert await paper.cancel_order(result["order_id"]) == {"result": True}
    assert paper.balances["USD"] == Decimal("1000")
    assert await paper.cancel_order(result["order_id"]) == {"result": False}


@pytest.mark.asyncio
async def test_insufficient_funds_rejected(paper):
    result = await paper.place_order("BTC/USD", "sell", Decimal("100"), Decimal("5"))
    assert result["accepted"] is False
    assert "Insufficient BTC" in result["error"]


@pytest.mark.asyncio
async def test_below_minimum_rejected(paper):
    result = await paper.place_order("BTC/USD", "buy", Decimal("100"), Decimal("0.001"))
    assert result["accepted"] is False


@pytest.mark.asyncio
async def test_buy_fills_when_price_drops(paper):
    result = await paper.place_order("BTC/USD", "buy", Decimal("90"), Decimal("1"))
    paper.current_price = Decimal("89")

    orders = parse_open_orders(await paper.open_orders())

    assert orders == {}
    assert paper.balances["BTC"] == Decimal("2")
    assert len(await paper.order_fills(result["order_id"])) == 1


@pytest.mark.asyncio
async def test_sell_fills_when_price_rises(paper):
    result = await paper.place_order("BTC/USD", "sell", Decimal("110"), Decimal("1"))
    assert paper.balances["BTC"] == Decimal("0")

    paper.current_price = Decimal("111")
    await paper.open_orders()

    assert paper.balances["USD"] == Decimal("1110")
    assert await paper.order_fills(result["order_id"]) != []


@pytest.mark.asyncio
async def test_unknown_pair(paper):
    with pytest.raises(GatewayError):
        await paper.order_book_top("ETH/USD")


@pytest.mark.asyncio
async def test_trend_moves_price(paper_config):
    rising = PaperGateway("BTC/USD", paper_config.model_copy(update={"volatility": 0.01, "trend": 1.0}))
    for _ in range(5):
        await rising.open_orders()
    assert rising.current_price > Decimal("100")


def test_reset(paper):
    paper.current_price = Decimal("500")
    paper.balances["USD"] = Decimal("0")

    paper.reset()

    assert paper.current_price == Decimal("100")
    assert paper.balances["USD"] == Decimal("1000")
    assert paper.orders == {}


@pytest.mark.asyncio
async def test_times_follow_exchange_clock(paper_config):
    paper = PaperGateway("BTC/USD", paper_config, clock=lambda: NOW, offset_hours=2)

    await paper.open_orders()
    result = await paper.place_order("BTC/USD", "buy", Decimal("90"), Decimal("1"))

    assert all(t.timestamp == NOW + 7200 for t in parse_trades(await paper.recent_trades("BTC/USD")))
    assert paper.orders[result["order_id"]]["created"] == NOW + 7200
