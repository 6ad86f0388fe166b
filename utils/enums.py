"""
Defines enums for order sides, order decisions and cycle outcomes.
"""
from enum import Enum


class OrderSide(str, Enum):
    """Side of an exchange order."""
    BUY = "buy"
    SELL = "sell"


class OrderAction(Enum):
    """What a cycle decided to do with one open order."""
    CANCELLED = "cancelled"
    CANCEL_FAILED = "cancel_failed"
    LEFT_STANDING = "left_standing"
    SKIPPED = "skipped"  # detail query failed, left standing for this cycle


class CycleOutcome(Enum):
    """Terminal outcome of one poll-decide-act cycle."""
    STOPPED = "stopped"
    ORDERS_EVALUATED = "orders_evaluated"
    SELL_PLACED = "sell_placed"
    BUY_PLACED = "buy_placed"
    PLACEMENT_REJECTED = "placement_rejected"
    NO_FUNDS = "no_funds"
    BELOW_MIN_QUANTITY = "below_min_quantity"
    PRICE_UNDEFINED = "price_undefined"
    GATEWAY_FAILED = "gateway_failed"
    OVERLAPPED = "overlapped"
    ERROR = "error"
