import time
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from sweet_kiosk.models import Order

PREFIX = "ORD"
PAD_WIDTH = 3
DEFAULT_ATTEMPTS = 10


def format_order_id(number: int) -> str:
    return f"{PREFIX}{number:0{PAD_WIDTH}d}"


def parse_order_number(order_id: str) -> int:
    suffix = order_id[len(PREFIX):] if order_id.startswith(PREFIX) else ""
    return int(suffix) if suffix.isdigit() else 0


class OrderIdGenerator:
    """Proposes `ORD###` ids following the most recently created order.

    A proposal is only a candidate: the caller inserts it against the primary
    key and comes back with a higher `attempt` on collision. Once
    `max_attempts` sequential candidates have collided the generator falls
    back to the last six digits of the epoch milliseconds.
    """

    def __init__(self, max_attempts: int = DEFAULT_ATTEMPTS, clock: Callable[[], float] = time.time):
        self.max_attempts = max_attempts
        self._clock = clock

    def latest_number(self, session: Session) -> int:
        latest = session.scalars(
            select(Order.id).order_by(Order.created_at.desc(), Order.id.desc()).limit(1)
        ).first()
        return parse_order_number(latest) if latest else 0

    def next_id(self, session: Session, attempt: int = 0) -> str:
        if attempt >= self.max_attempts:
            return self.fallback_id()
        return format_order_id(self.latest_number(session) + 1 + attempt)

    def fallback_id(self) -> str:
        millis = int(self._clock() * 1000)
        return f"{PREFIX}{str(millis)[-6:]}"

    @property
    def total_attempts(self) -> int:
        return self.max_attempts + 1
