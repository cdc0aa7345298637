import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from sweet_kiosk.errors import Conflict, NotFound, ValidationError
from sweet_kiosk.models import CATEGORIES, Sweet
from sweet_kiosk.schemas import SweetOut
from sweet_kiosk.store import Store

logger = logging.getLogger(__name__)

DEFAULT_SWEETS = (
    ("Kaju Katli", "Nut-Based", Decimal("50"), Decimal("20")),
    ("Gajar Halwa", "Vegetable-Based", Decimal("30"), Decimal("15")),
    ("Gulab Jamun", "Milk-Based", Decimal("10"), Decimal("50")),
)


def validate_sweet(name, category, price, quantity):
    if not name or not category or price is None or quantity is None:
        raise ValidationError("All fields (name, category, price, quantity) are required")
    if not name.strip():
        raise ValidationError("Name cannot be empty")
    if price <= 0:
        raise ValidationError("Price must be greater than 0")
    if quantity < 0:
        raise ValidationError("quantity must be greater than or equal to 0")
    if category not in CATEGORIES:
        raise ValidationError(f"Invalid category. Valid categories are: {', '.join(CATEGORIES)}")


class SweetCatalog:
    """Read access to the sweets catalog, plus seeding.

    The catalog itself is maintained elsewhere; the order service only ever
    changes `Sweet.quantity`.
    """

    def __init__(self, store: Store):
        self._store = store

    def list(self) -> list[SweetOut]:
        with self._store.session() as session:
            sweets = session.scalars(select(Sweet).order_by(Sweet.id)).all()
            return [SweetOut.model_validate(sweet) for sweet in sweets]

    def get(self, sweet_id: int) -> SweetOut:
        with self._store.session() as session:
            sweet = session.get(Sweet, sweet_id)
            if sweet is None:
                raise NotFound("Sweet not found")
            return SweetOut.model_validate(sweet)

    def add(self, name: str, category: str, price: Decimal, quantity: Decimal) -> SweetOut:
        validate_sweet(name, category, price, quantity)
        try:
            with self._store.transaction() as session:
                sweet = Sweet(name=name.strip(), category=category, price=price, quantity=quantity)
                session.add(sweet)
                session.flush()
                created = SweetOut.model_validate(sweet)
        except IntegrityError:
            raise Conflict(f"Sweet '{name.strip()}' already exists")
        logger.info("Sweet added", extra={"sweet_id": created.id})
        return created

    def seed_defaults(self) -> int:
        with self._store.session() as session:
            if session.scalar(select(func.count(Sweet.id))):
                return 0
        for name, category, price, quantity in DEFAULT_SWEETS:
            self.add(name, category, price, quantity)
        logger.info("Seeded default catalog", extra={"count": len(DEFAULT_SWEETS)})
        return len(DEFAULT_SWEETS)
