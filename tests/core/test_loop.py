"""
Tests for the trading loop scheduler.
"""
import asyncio
import pytest

from core.exceptions import GatewayError
from core.loop import SchedulerState, TradingLoop
from utils.enums import CycleOutcome, OrderAction

NOW = 1_700_000_000.0
RECENT_TRADES = [{"price": "100", "timestamp": NOW - 5}]


@pytest.fixture
def trading_loop(gateway, trading_config, clock):
    loop = TradingLoop(gateway, clock=clock)
    loop.configure(trading_config)
    yield loop
    loop.state.cancel_pending()


def script_standing(gateway, make_order):
    gateway.orders = {"BTC/USD": [make_order("b1", "buy", "95", created=NOW - 10)]}


def script_cancel(gateway, make_order):
    gateway.orders = {"BTC/USD": [make_order("b1", "buy", "95", created=NOW - 1000)]}


def script_many_orders(gateway, make_order):
    gateway.ask_top = "100"
    gateway.orders = {"BTC/USD": [
        make_order("s1", "sell", "99"),
        make_order("s2", "sell", "101"),
        make_order("b1", "buy", "95", created=NOW - 1000),
        make_order("b2", "buy", "95", created=NOW - 10),
    ]}


def script_sell(gateway, make_order):
    gateway.balances = {"BTC": "1"}


def script_buy(gateway, make_order):
    gateway.balances = {"USD": "100"}
    gateway.trades = RECENT_TRADES


def script_no_funds(gateway, make_order):
    gateway.balances = {"USD": "1"}


def script_undefined_price(gateway, make_order):
    gateway.balances = {"USD": "100"}
    gateway.trades = []


def script_below_minimum(gateway, make_order):
    gateway.balances = {"USD": "100"}
    gateway.trades = RECENT_TRADES
    gateway.min_quantity = "5"


def script_open_orders_failure(gateway, make_order):
    gateway.failures["open_orders"] = GatewayError("open_orders")


def script_fills_failure(gateway, make_order):
    script_cancel(gateway, make_order)
    gateway.failures["order_fills"] = GatewayError("order_fills")


def script_malformed_orders(gateway, make_order):
    gateway.orders = ["not", "a", "mapping"]


def script_unexpected_error(gateway, make_order):
    gateway.balances = {"USD": "100"}
    gateway.failures["recent_trades"] = RuntimeError("unexpected")


@pytest.mark.asyncio
@pytest.mark.parametrize("script,outcome", [
    (script_standing, CycleOutcome.ORDERS_EVALUATED),
    (script_cancel, CycleOutcome.ORDERS_EVALUATED),
    (script_many_orders, CycleOutcome.ORDERS_EVALUATED),
    (script_sell, CycleOutcome.SELL_PLACED),
    (script_buy, CycleOutcome.BUY_PLACED),
    (script_no_funds, CycleOutcome.NO_FUNDS),
    (script_undefined_price, CycleOutcome.PRICE_UNDEFINED),
    (script_below_minimum, CycleOutcome.BELOW_MIN_QUANTITY),
    (script_open_orders_failure, CycleOutcome.GATEWAY_FAILED),
    (script_fills_failure, CycleOutcome.ORDERS_EVALUATED),
    (script_malformed_orders, CycleOutcome.GATEWAY_FAILED),
    (script_unexpected_error, CycleOutcome.ERROR),
])
async def test_every_branch_rearms_exactly_once(trading_loop, gateway, make_order, script, outcome):
    script(gateway, make_order)

    report = await trading_loop.run_cycle()

    assert report.outcome is outcome
    assert trading_loop.state.rearm_count == 1
    assert trading_loop.state.pending_count == 1


@pytest.mark.asyncio
async def test_fan_out_rearms_once(trading_loop, gateway, make_order):
    """Evaluating several orders still arms a single timer."""
    script_many_orders(gateway, make_order)

    report = await trading_loop.run_cycle()

    assert {d.order.order_id: d.action for d in report.decisions} == {
        "s1": OrderAction.CANCELLED,
        "s2": OrderAction.LEFT_STANDING,
        "b1": OrderAction.CANCELLED,
        "b2": OrderAction.LEFT_STANDING,
    }
    assert trading_loop.state.rearm_count == 1


@pytest.mark.asyncio
async def test_consecutive_cycles_keep_one_pending_timer(trading_loop, gateway, make_order):
    script_standing(gateway, make_order)

    for _ in range(3):
        await trading_loop.run_cycle()

    assert trading_loop.state.rearm_count == 3
    assert trading_loop.state.pending_count == 1
    assert trading_loop.state.cycles_run == 3


@pytest.mark.asyncio
async def test_stopped_cycle_makes_no_calls(trading_loop, gateway):
    trading_loop.stop()

    report = await trading_loop.run_cycle()

    assert report.outcome is CycleOutcome.STOPPED
    assert gateway.calls == []
    assert trading_loop.state.pending_count == 0
    assert trading_loop.state.cycles_run == 0


@pytest.mark.asyncio
async def test_stop_during_cycle_finishes_without_rearm(trading_loop, gateway, make_order):
    script_sell(gateway, make_order)
    original = gateway.account_balances

    async def balances_then_stop():
        trading_loop.stop()
        return await original()

    gateway.account_balances = balances_then_stop

    report = await trading_loop.run_cycle()

    assert report.outcome is CycleOutcome.SELL_PLACED
    assert trading_loop.state.rearm_count == 0
    assert trading_loop.state.pending_count == 0


@pytest.mark.asyncio
async def test_overlapping_trigger_ignored(trading_loop, gateway, make_order):
    script_no_funds(gateway, make_order)
    release = asyncio.Event()
    original = gateway.open_orders

    async def slow_open_orders():
        await release.wait()
        return await original()

    gateway.open_orders = slow_open_orders

    first = asyncio.ensure_future(trading_loop.run_cycle())
    await asyncio.sleep(0)
    second = await trading_loop.run_cycle()
    release.set()
    first_report = await first

    assert second.outcome is CycleOutcome.OVERLAPPED
    assert first_report.outcome is CycleOutcome.NO_FUNDS
    assert trading_loop.state.rearm_count == 1
    assert trading_loop.state.pending_count == 1


@pytest.mark.asyncio
async def test_run_cycle_requires_configuration(gateway):
    with pytest.raises(RuntimeError):
        await TradingLoop(gateway).run_cycle()


@pytest.mark.asyncio
async def test_start_runs_cycles_on_timer(gateway, config_factory, clock, make_order):
    script_standing(gateway, make_order)
    loop = TradingLoop(gateway, clock=clock)

    loop.start(config_factory(poll_interval_seconds=0.01))

    async def wait_for_cycles(count):
        while loop.state.cycles_run < count:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(wait_for_cycles(3), timeout=2)
    await loop.shutdown()

    assert loop.state.pending_count == 0
    assert not loop.is_running
    assert len(gateway.called("open_orders")) == loop.state.cycles_run


@pytest.mark.asyncio
async def test_start_twice_keeps_single_timer(gateway, trading_config, clock):
    loop = TradingLoop(gateway, clock=clock)
    loop.start(trading_config)
    first_handle = loop.state.pending

    loop.start(trading_config)

    assert loop.state.pending is first_handle
    assert loop.state.pending_count == 1
    loop.state.cancel_pending()


@pytest.mark.asyncio
async def test_restart_after_stop(gateway, trading_config, clock):
    loop = TradingLoop(gateway, clock=clock)
    loop.start(trading_config)
    loop.stop()
    assert loop.state.pending_count == 0
    assert loop.state.stopped

    loop.start(trading_config)

    assert not loop.state.stopped
    assert loop.state.pending_count == 1
    loop.state.cancel_pending()


def test_state_pending_count():
    state = SchedulerState()
    assert state.pending_count == 0
    state.cancel_pending()
    assert state.pending is None


@pytest.mark.asyncio
async def test_bad_order_on_other_pair_does_not_block_tracked_pair(trading_loop, gateway, make_order):
    gateway.orders = {
        "BTC/USD": [make_order("b1", "buy", "95", created=NOW - 1000)],
        "ETH/USD": [{"order_id": "e1", "side": "sell", "pair": "ETH/USD"}],
    }

    report = await trading_loop.run_cycle()

    assert report.outcome is CycleOutcome.ORDERS_EVALUATED
    assert [d.action for d in report.decisions] == [OrderAction.CANCELLED]
    assert gateway.called("cancel_order") == [("cancel_order", "b1")]
    assert trading_loop.state.rearm_count == 1
