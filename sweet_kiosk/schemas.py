from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any, Optional

from fastapi.responses import JSONResponse
from pydantic import AfterValidator, BaseModel, ConfigDict, PlainSerializer, Strict
from pydantic.alias_generators import to_camel

from sweet_kiosk.status import OrderStatus

CENTS = Decimal("0.01")


def to_cents(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _format_money(value) -> str:
    return str(to_cents(value))


def _format_quantity(value) -> str:
    return format(Decimal(value).normalize(), "f")


Money = Annotated[Decimal, PlainSerializer(_format_money, return_type=str, when_used="json")]
Quantity = Annotated[Decimal, PlainSerializer(_format_quantity, return_type=str, when_used="json")]


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back; everything is stored in UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


Timestamp = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Request bodies. Fields are optional here so that missing values reach the
# service and get the kiosk's own error messages.

class CreateOrderItem(CamelModel):
    sweet_id: Optional[int] = None
    quantity: Optional[Decimal] = None


class CreateOrderRequest(CamelModel):
    # a quoted token such as "55" is a malformed body, not token 55
    token: Optional[Annotated[int, Strict()]] = None
    items: Optional[list[CreateOrderItem]] = None


class UpdateOrderStatusRequest(CamelModel):
    status: Optional[str] = None


# Responses

class SweetOut(CamelModel):
    id: int
    name: str
    category: str
    price: Money
    quantity: Quantity


class SweetRef(CamelModel):
    id: int
    name: str
    category: str
    price: Money


class OrderItemOut(CamelModel):
    id: int
    order_id: str
    sweet_id: int
    name: str
    price: Money
    quantity: Quantity
    sweet: Optional[SweetRef] = None


class OrderOut(CamelModel):
    id: str
    token: int
    status: OrderStatus
    total: Money
    created_at: Timestamp
    updated_at: Timestamp
    items: list[OrderItemOut] = []


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def envelope(message: str, data: Any = None, success: bool = True) -> dict:
    return {"success": success, "message": message, "data": _dump(data)}


def respond(message: str, data: Any = None, status_code: int = 200, success: bool = True) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(message, data, success))
