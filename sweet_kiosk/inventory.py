import logging
from decimal import Decimal
from typing import Iterable, Mapping

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from sweet_kiosk.errors import OutOfInventoryError, SweetNotFound
from sweet_kiosk.models import Sweet

logger = logging.getLogger(__name__)


class InventoryGuard:
    """Stock checks and stock mutations for the sweets catalog.

    Reads are advisory: the decrement re-checks availability in the UPDATE
    itself, so two requests that both passed `check` cannot oversell.
    """

    def load(self, session: Session, sweet_ids: Iterable[int]) -> dict[int, Sweet]:
        wanted = set(sweet_ids)
        rows = session.scalars(select(Sweet).where(Sweet.id.in_(wanted))).all()
        sweets = {sweet.id: sweet for sweet in rows}
        if len(sweets) != len(wanted):
            logger.info(
                "Unknown sweets requested",
                extra={"sweet_ids": sorted(wanted - sweets.keys())},
            )
            raise SweetNotFound()
        return sweets

    def check(self, sweets: Mapping[int, Sweet], lines: Iterable[tuple[int, Decimal]]):
        for sweet_id, quantity in lines:
            sweet = sweets[sweet_id]
            if sweet.quantity < quantity:
                raise OutOfInventoryError(sweet.name)

    def decrement(self, session: Session, sweet: Sweet, quantity: Decimal):
        result = session.execute(
            update(Sweet)
            .where(Sweet.id == sweet.id, Sweet.quantity >= quantity)
            .values(quantity=Sweet.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.info(
                "Stock changed before decrement",
                extra={"sweet_id": sweet.id, "quantity": str(quantity)},
            )
            raise OutOfInventoryError(sweet.name)

    def restore(self, session: Session, sweet_id: int, quantity: Decimal):
        session.execute(
            update(Sweet)
            .where(Sweet.id == sweet_id)
            .values(quantity=Sweet.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
