"""
Pricing engine: sell price, trailing average and buy price/quantity.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from config.schema import TradingConfig
from core.exceptions import PricingUndefined
from core.models import Trade


@dataclass(frozen=True)
class BuyQuote:
    """Price and quantity for a buy order."""
    average_price: Decimal
    price: Decimal
    quantity: Decimal


def target_proceeds(config: TradingConfig) -> Decimal:
    """Amount of currency B a sell has to bring in: spend plus fees and profit."""
    return config.spend_limit + config.spend_limit * config.margin


def sell_price(config: TradingConfig, balance_a: Decimal, ask_top: Decimal) -> Decimal:
    """
    Unit price for selling the whole currency-A balance.

    The price that recovers the target proceeds is floored at the current best
    ask so the order never posts below the market.

    Raises:
        ValueError: If ``balance_a`` is not positive
    """
    if balance_a <= 0:
        raise ValueError(f"Cannot price a sell of {balance_a}")
    computed = target_proceeds(config) / balance_a
    return max(computed, ask_top)


def trailing_average(trades: Iterable[Trade], now: float, window_seconds: float) -> Decimal:
    """
    Mean price of the trades younger than ``window_seconds`` at ``now``.

    Raises:
        PricingUndefined: If no trade falls inside the window
    """
    prices = [trade.price for trade in trades if now - trade.timestamp < window_seconds]
    if not prices:
        raise PricingUndefined(f"No trades in the last {window_seconds:.0f}s")
    return sum(prices, Decimal("0")) / len(prices)


def buy_quote(config: TradingConfig, trades: Iterable[Trade], now: float) -> BuyQuote:
    """Buy price below the trailing average by fee plus profit, sized to the spend limit."""
    average = trailing_average(trades, now, config.avg_price_window_seconds)
    price = average - average * config.margin
    if price <= 0:
        raise PricingUndefined(f"Non-positive buy price {price} from average {average}")
    return BuyQuote(average_price=average, price=price, quantity=config.spend_limit / price)
