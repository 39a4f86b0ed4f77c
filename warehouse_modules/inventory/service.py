"""
Inventory Module Service (``warehouse_modules.inventory.service``).

Responsibility
--------------
Shelf maintenance: creating, editing and deleting the storage slots that
``ShelfAllocator`` assigns to incoming goods.

Invariants enforced
-------------------
* ``(location, position)`` is unique across shelves.
* A shelf referenced by receipt items cannot be deleted.
* Each public method owns the transaction: commit on success, rollback and
  re-raise on failure.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from warehouse_kernel.exceptions import (
    DuplicateShelfPositionError,
    ItemsNotFoundError,
    ShelfInUseError,
    ShelfNotFoundError,
    WarehouseNotFoundError,
)
from warehouse_kernel.logging_config import LogContext, get_logger
from warehouse_kernel.models.catalog import Item, Shelf, Warehouse
from warehouse_kernel.models.receipt import IncomingGoodReceiptItem
from warehouse_modules.inventory.models import ShelfInput, ShelfUpdate

logger = get_logger("modules.inventory.service")


class InventoryService:
    """Shelf maintenance over a caller-provided session."""

    def __init__(self, session: Session):
        self._session = session

    @contextmanager
    def _transaction(
        self,
        operation: str,
        shelf_id: UUID | None = None,
        **context: Any,
    ) -> Iterator[None]:
        fields = {"operation": operation, **{k: str(v) for k, v in context.items()}}
        with LogContext.bind(document_type="shelf", document_id=shelf_id):
            logger.info("inventory_operation_started", extra=fields)
            try:
                yield
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning("inventory_operation_rolled_back", extra=fields, exc_info=True)
                raise
            logger.info("inventory_operation_committed", extra=fields)

    def _check_references(self, item_id: UUID | None, warehouse_id: UUID | None) -> None:
        if item_id is not None and self._session.get(Item, item_id) is None:
            raise ItemsNotFoundError([str(item_id)])
        if warehouse_id is not None and self._session.get(Warehouse, warehouse_id) is None:
            raise WarehouseNotFoundError(str(warehouse_id))

    def _check_position_free(self, location: str, position: str, shelf_id: UUID | None = None) -> None:
        query = select(Shelf.id).where(Shelf.location == location, Shelf.position == position)
        if shelf_id is not None:
            query = query.where(Shelf.id != shelf_id)
        if self._session.execute(query.limit(1)).scalar_one_or_none() is not None:
            raise DuplicateShelfPositionError(location, position)

    def _flush_shelf(self, shelf: Shelf) -> None:
        # A concurrent insert can still win the unique constraint
        try:
            with self._session.begin_nested():
                self._session.flush()
        except IntegrityError:
            raise DuplicateShelfPositionError(shelf.location, shelf.position) from None

    def create_shelf(self, data: ShelfInput) -> Shelf:
        with self._transaction("create_shelf", location=data.location, position=data.position):
            self._check_references(data.item_id, data.warehouse_id)
            self._check_position_free(data.location, data.position)
            shelf = Shelf(
                location=data.location,
                position=data.position,
                stock_qty=data.stock_qty,
                item_id=data.item_id,
                warehouse_id=data.warehouse_id,
            )
            self._session.add(shelf)
            self._flush_shelf(shelf)
            logger.info(
                "shelf_created",
                extra={
                    "shelf_id": str(shelf.id),
                    "location": shelf.location,
                    "position": shelf.position,
                    "stock_qty": shelf.stock_qty,
                },
            )
        return shelf

    def update_shelf(self, shelf_id: UUID, data: ShelfUpdate) -> Shelf:
        with self._transaction("update_shelf", shelf_id=shelf_id):
            shelf = self._session.execute(
                select(Shelf)
                .where(Shelf.id == shelf_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if shelf is None:
                raise ShelfNotFoundError(str(shelf_id))

            self._check_references(data.item_id, data.warehouse_id)
            location = data.location if data.location is not None else shelf.location
            position = data.position if data.position is not None else shelf.position
            if (location, position) != (shelf.location, shelf.position):
                self._check_position_free(location, position, shelf_id=shelf.id)

            shelf.location = location
            shelf.position = position
            if data.stock_qty is not None:
                shelf.stock_qty = data.stock_qty
            if data.item_id is not None:
                shelf.item_id = data.item_id
            elif data.clear_item:
                shelf.item_id = None
            if data.warehouse_id is not None:
                shelf.warehouse_id = data.warehouse_id
            self._flush_shelf(shelf)

            logger.info(
                "shelf_updated",
                extra={
                    "shelf_id": str(shelf.id),
                    "location": shelf.location,
                    "position": shelf.position,
                    "stock_qty": shelf.stock_qty,
                },
            )
        return shelf

    def delete_shelf(self, shelf_id: UUID) -> None:
        with self._transaction("delete_shelf", shelf_id=shelf_id):
            shelf = self._session.get(Shelf, shelf_id)
            if shelf is None:
                raise ShelfNotFoundError(str(shelf_id))
            in_use = self._session.execute(
                select(func.count(IncomingGoodReceiptItem.id)).where(
                    IncomingGoodReceiptItem.shelf_id == shelf.id,
                )
            ).scalar_one()
            if in_use:
                raise ShelfInUseError(str(shelf.id), in_use)
            self._session.delete(shelf)
            self._session.flush()
            logger.info("shelf_deleted", extra={"shelf_id": str(shelf_id)})
