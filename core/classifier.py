"""
Order classification for the tracked pair.
"""
from typing import Dict, List, Tuple

from core.models import Order
from utils.enums import OrderSide


def classify_orders(open_orders: Dict[str, List[Order]], pair: str) -> Tuple[List[Order], List[Order]]:
    """
    Split the open orders of ``pair`` into sell-side and buy-side lists.

    Orders of any other pair are ignored and input order is preserved.

    Args:
        open_orders: Open orders keyed by pair
        pair: Tracked pair symbol

    Returns:
        Tuple of (sell_orders, buy_orders)
    """
    sell_orders: List[Order] = []
    buy_orders: List[Order] = []
    for order in open_orders.get(pair, []):
        if order.side is OrderSide.SELL:
            sell_orders.append(order)
        else:
            buy_orders.append(order)
    return sell_orders, buy_orders
