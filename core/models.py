"""
Payload models for exchange gateway responses.

Every gateway response is treated as opaque until it passes through one of the
``parse_*`` helpers below. A payload that does not have the expected shape is
reported as :class:`MalformedResponse` so callers can route it like any other
failed exchange call.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from core.exceptions import MalformedResponse
from utils.enums import OrderSide


class Order(BaseModel):
    """An open order as reported by the exchange."""
    model_config = ConfigDict(frozen=True)

    order_id: str
    side: OrderSide
    price: Decimal = Field(..., gt=0)
    quantity: Decimal = Field(..., ge=0)
    pair: str
    created: float

    @field_validator('order_id', mode='before')
    @classmethod
    def coerce_order_id(cls, v):
        # some exchanges send numeric ids
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator('side', mode='before')
    @classmethod
    def normalize_side(cls, v):
        return v.lower() if isinstance(v, str) else v


class Trade(BaseModel):
    """A historical trade on the pair."""
    model_config = ConfigDict(frozen=True)

    price: Decimal = Field(..., gt=0)
    timestamp: float


class Fill(BaseModel):
    """A single execution against one of our orders."""
    model_config = ConfigDict(frozen=True)

    price: Decimal
    quantity: Decimal
    timestamp: Optional[float] = None


class OrderBookTop(BaseModel):
    model_config = ConfigDict(frozen=True)

    ask_top: Decimal = Field(..., gt=0)


class Balances(BaseModel):
    """Free amounts held per currency."""
    model_config = ConfigDict(frozen=True)

    amounts: Dict[str, Decimal]

    def of(self, currency: str) -> Decimal:
        return self.amounts.get(currency, Decimal("0"))


class PlaceOrderResult(BaseModel):
    accepted: bool
    order_id: Optional[str] = None
    error: Optional[str] = None

    @field_validator('order_id', mode='before')
    @classmethod
    def coerce_order_id(cls, v):
        if isinstance(v, int):
            return str(v)
        return v


class CancelResult(BaseModel):
    result: bool


_order_list = TypeAdapter(List[Dict[str, Any]])
_trades = TypeAdapter(List[Trade])
_fills = TypeAdapter(List[Fill])
_amounts = TypeAdapter(Dict[str, Decimal])
_quantity = TypeAdapter(Decimal)


def _summarize(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = '.'.join(str(x) for x in err['loc']) or '<root>'
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_open_orders(payload: Any, pair: Optional[str] = None) -> Dict[str, List[Order]]:
    """
    Validate an ``open_orders`` payload into orders keyed by pair.

    With ``pair`` given only that pair's entry is validated and returned;
    entries of other pairs are skipped without being checked.
    """
    if not isinstance(payload, dict):
        raise MalformedResponse("open_orders", f"expected mapping, got {type(payload).__name__}")
    if pair is not None:
        payload = {pair: payload[pair]} if pair in payload else {}
    result: Dict[str, List[Order]] = {}
    try:
        for key, raw_orders in payload.items():
            orders = []
            for raw in _order_list.validate_python(raw_orders):
                raw = {'pair': key, **raw}
                orders.append(Order.model_validate(raw))
            result[key] = orders
    except ValidationError as e:
        raise MalformedResponse("open_orders", _summarize(e)) from e
    return result


def parse_balances(payload: Any) -> Balances:
    try:
        return Balances(amounts=_amounts.validate_python(payload))
    except ValidationError as e:
        raise MalformedResponse("account_balances", _summarize(e)) from e


def parse_order_book_top(payload: Any) -> OrderBookTop:
    try:
        return OrderBookTop.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponse("order_book_top", _summarize(e)) from e


def parse_trades(payload: Any) -> List[Trade]:
    try:
        return _trades.validate_python(payload)
    except ValidationError as e:
        raise MalformedResponse("recent_trades", _summarize(e)) from e


def parse_min_quantity(payload: Any) -> Decimal:
    try:
        quantity = _quantity.validate_python(payload)
    except ValidationError as e:
        raise MalformedResponse("pair_min_quantity", _summarize(e)) from e
    if quantity < 0:
        raise MalformedResponse("pair_min_quantity", f"negative minimum {quantity}")
    return quantity


def parse_place_result(payload: Any) -> PlaceOrderResult:
    try:
        return PlaceOrderResult.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponse("place_order", _summarize(e)) from e


def parse_cancel_result(payload: Any) -> CancelResult:
    try:
        return CancelResult.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponse("cancel_order", _summarize(e)) from e


def parse_fills(payload: Any) -> List[Fill]:
    try:
        return _fills.validate_python(payload)
    except ValidationError as e:
        raise MalformedResponse("order_fills", _summarize(e)) from e
