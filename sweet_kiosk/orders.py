import logging
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from sweet_kiosk.errors import (
    OrderIdUnavailable,
    OrderNotFound,
    TokenConflict,
    ValidationError,
)
from sweet_kiosk.inventory import InventoryGuard
from sweet_kiosk.models import Order, OrderItem, utcnow
from sweet_kiosk.order_ids import OrderIdGenerator
from sweet_kiosk.schemas import CreateOrderItem, OrderOut, to_cents
from sweet_kiosk.status import INITIAL_STATUS, StatusMachine
from sweet_kiosk.store import Store

logger = logging.getLogger(__name__)

MAX_TOKEN = 2**63 - 1
QUANTITY_PLACES = 3


def _get_log_extras(token=None, order_id=None, sweet_id=None, attempt=None):
    log_extra = {}
    if token is not None:
        log_extra["token"] = token
    if order_id:
        log_extra["order_id"] = order_id
    if sweet_id is not None:
        log_extra["sweet_id"] = sweet_id
    if attempt is not None:
        log_extra["attempt"] = attempt
    return log_extra


def validate_order_request(token, items) -> list[tuple[int, Decimal]]:
    """Check a create-order request and return its `(sweet_id, quantity)` lines.

    Runs before the store is touched.
    """
    if token is None or not items:
        raise ValidationError("Token and items are required")
    if isinstance(token, bool) or not isinstance(token, int) or not 0 <= token <= MAX_TOKEN:
        raise ValidationError("Token must be a non-negative integer")

    lines = []
    seen = set()
    for item in items:
        if not isinstance(item, CreateOrderItem):
            item = CreateOrderItem.model_validate(item)
        if item.sweet_id is None or item.quantity is None:
            raise ValidationError("Each item requires sweetId and quantity")
        quantity = Decimal(item.quantity)
        if not quantity.is_finite() or quantity <= 0:
            raise ValidationError("Item quantity must be greater than 0")
        if quantity.as_tuple().exponent < -QUANTITY_PLACES:
            raise ValidationError(f"Item quantity allows at most {QUANTITY_PLACES} decimal places")
        if item.sweet_id in seen:
            raise ValidationError("Each sweet may appear only once per order")
        seen.add(item.sweet_id)
        lines.append((item.sweet_id, quantity))
    return lines


class OrderService:
    def __init__(
        self,
        store: Store,
        inventory: Optional[InventoryGuard] = None,
        id_generator: Optional[OrderIdGenerator] = None,
        status_machine: Optional[StatusMachine] = None,
    ):
        self._store = store
        self._inventory = inventory or InventoryGuard()
        self._ids = id_generator or OrderIdGenerator()
        self._status = status_machine or StatusMachine()

    def create_order(self, token, items: Optional[Iterable]) -> OrderOut:
        lines = validate_order_request(token, items)

        for attempt in range(self._ids.total_attempts):
            try:
                order = self._create_once(token, lines, attempt)
            except IntegrityError:
                if self._token_taken(token):
                    logger.info("Token claimed by a concurrent order", extra=_get_log_extras(token))
                    raise TokenConflict()
                logger.warning(
                    "Order id already taken, retrying",
                    extra=_get_log_extras(token, attempt=attempt),
                )
                continue
            logger.info("Created order", extra=_get_log_extras(token, order.id))
            return order

        logger.error("Ran out of order id candidates", extra=_get_log_extras(token))
        raise OrderIdUnavailable()

    def _create_once(self, token: int, lines: list[tuple[int, Decimal]], attempt: int) -> OrderOut:
        with self._store.transaction() as session:
            if self._find_token(session, token) is not None:
                raise TokenConflict()

            sweets = self._inventory.load(session, [sweet_id for sweet_id, _ in lines])
            self._inventory.check(sweets, lines)

            order_items = [
                OrderItem(
                    sweet=sweets[sweet_id],
                    name=sweets[sweet_id].name,
                    price=sweets[sweet_id].price,
                    quantity=quantity,
                )
                for sweet_id, quantity in lines
            ]
            total = sum((item.price * item.quantity for item in order_items), Decimal("0"))

            order = Order(
                id=self._ids.next_id(session, attempt),
                token=token,
                status=INITIAL_STATUS,
                total=to_cents(total),
                items=order_items,
            )
            session.add(order)
            # the insert claims the id and token before any stock moves
            session.flush()

            for sweet_id, quantity in lines:
                self._inventory.decrement(session, sweets[sweet_id], quantity)

            return OrderOut.model_validate(order)

    def _find_token(self, session: Session, token: int) -> Optional[str]:
        return session.scalar(select(Order.id).where(Order.token == token))

    def _token_taken(self, token: int) -> bool:
        with self._store.session() as session:
            return self._find_token(session, token) is not None

    def _load(self, session: Session, order_id: str) -> Order:
        order = session.scalars(
            select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
        ).first()
        if order is None:
            raise OrderNotFound()
        return order

    def list_orders(self) -> list[OrderOut]:
        with self._store.session() as session:
            orders = session.scalars(
                select(Order)
                .options(selectinload(Order.items))
                .order_by(Order.created_at.desc(), Order.id.desc())
            ).all()
            return [OrderOut.model_validate(order) for order in orders]

    def get_order(self, order_id: str) -> OrderOut:
        with self._store.session() as session:
            return OrderOut.model_validate(self._load(session, order_id))

    def get_order_by_token(self, token: int) -> OrderOut:
        with self._store.session() as session:
            order_id = self._find_token(session, token)
            if order_id is None:
                raise OrderNotFound()
            return OrderOut.model_validate(self._load(session, order_id))

    def set_status(self, order_id: str, status) -> OrderOut:
        new_status = self._status.parse(status)
        with self._store.transaction() as session:
            order = self._load(session, order_id)
            self._status.check(order.status, new_status)
            order.status = new_status
            order.updated_at = utcnow()
            session.flush()
            updated = OrderOut.model_validate(order)
        logger.info(
            "Order status changed",
            extra={**_get_log_extras(order_id=order_id), "status": new_status.value},
        )
        return updated

    def delete_order(self, order_id: str):
        """Delete an order and put its items back into stock."""
        with self._store.transaction() as session:
            order = self._load(session, order_id)
            restock = [(item.sweet_id, item.quantity) for item in order.items]

            session.execute(
                delete(OrderItem)
                .where(OrderItem.order_id == order_id)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(
                delete(Order).where(Order.id == order_id).execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # another request deleted it after our read
                raise OrderNotFound()

            for sweet_id, quantity in restock:
                self._inventory.restore(session, sweet_id, quantity)
            session.expunge(order)

        logger.info("Deleted order and restored stock", extra=_get_log_extras(order_id=order_id))
