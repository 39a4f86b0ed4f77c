"""
ShelfAllocator -- choose a storage shelf for a received item.

Responsibility:
    Picks the shelf that an incoming good receipt item will be stored on.

Architecture position:
    Kernel > Services.  Called by the procurement orchestrator when a
    purchase order first reaches its approval quorum.

Invariants enforced:
    Preference order, each by earliest creation:
      1. a shelf already holding the item;
      2. a shelf with zero stock, which is claimed for the item;
      3. any shelf at all.
    Ties on created_at fall back to (location, position) so the choice is
    deterministic.

Failure modes:
    - NoShelfAvailableError when no shelf exists.  The caller's transaction
      is aborted.
"""

from uuid import UUID

from sqlalchemy import select

from warehouse_kernel.exceptions import NoShelfAvailableError
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.catalog import Shelf
from warehouse_kernel.services.base import BaseService

logger = get_logger("services.shelf_allocator")

_ORDER = (Shelf.created_at, Shelf.location, Shelf.position)


class ShelfAllocator(BaseService[Shelf]):
    """Allocates shelves for received items."""

    def _first(self, *criteria) -> Shelf | None:
        return self.session.execute(
            select(Shelf).where(*criteria).order_by(*_ORDER).limit(1)
        ).scalar_one_or_none()

    def allocate_shelf(self, item_id: UUID) -> Shelf:
        shelf = self._first(Shelf.item_id == item_id)
        if shelf is not None:
            logger.debug(
                "shelf_allocated",
                extra={"item_id": str(item_id), "shelf_id": str(shelf.id), "rule": "holds_item"},
            )
            return shelf

        shelf = self._first(Shelf.stock_qty == 0)
        if shelf is not None:
            shelf.item_id = item_id
            self.session.flush()
            logger.info(
                "shelf_claimed",
                extra={"item_id": str(item_id), "shelf_id": str(shelf.id), "rule": "empty"},
            )
            return shelf

        shelf = self._first()
        if shelf is not None:
            logger.info(
                "shelf_allocated",
                extra={"item_id": str(item_id), "shelf_id": str(shelf.id), "rule": "fallback"},
            )
            return shelf

        logger.error("no_shelf_available", extra={"item_id": str(item_id)})
        raise NoShelfAvailableError(str(item_id))
