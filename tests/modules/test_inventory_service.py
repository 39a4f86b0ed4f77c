"""
Shelf maintenance through InventoryService.

Validates:
- (location, position) stays unique on create and on move
- Unknown catalog items and warehouses are rejected
- Shelves referenced by receipt items cannot be deleted
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from warehouse_kernel.exceptions import (
    DuplicateShelfPositionError,
    ItemsNotFoundError,
    ShelfInUseError,
    ShelfNotFoundError,
    ValidationError,
    WarehouseNotFoundError,
)
from warehouse_kernel.models.catalog import Shelf, Warehouse
from warehouse_modules.inventory.models import ShelfInput, ShelfUpdate


def _count(session):
    return session.execute(select(func.count(Shelf.id))).scalar_one()


@pytest.fixture
def warehouse(session):
    wh = Warehouse(name="Main Warehouse", location="North Site")
    session.add(wh)
    session.commit()
    return wh


class TestShelfInput:

    def test_defaults(self):
        data = ShelfInput(location="A", position="01")
        assert data.stock_qty == 0
        assert data.item_id is None

    @pytest.mark.parametrize(
        "kwargs, field",
        [
            ({"location": "", "position": "01"}, "location"),
            ({"location": "A", "position": "   "}, "position"),
            ({"location": "A", "position": "01", "stock_qty": -1}, "stock_qty"),
            ({"location": "A", "position": "01", "stock_qty": True}, "stock_qty"),
        ],
    )
    def test_rejects_bad_fields(self, kwargs, field):
        with pytest.raises(ValidationError) as exc_info:
            ShelfInput(**kwargs)
        assert [e["field"] for e in exc_info.value.field_errors] == [field]

    def test_from_dict_parses_ids(self, catalog_items):
        bolt = catalog_items["bolt"]
        data = ShelfInput.from_dict(
            {"location": "A", "position": "01", "stock_qty": 3, "item_id": str(bolt.id)}
        )
        assert data.item_id == bolt.id
        assert data.warehouse_id is None

    def test_update_cannot_set_and_clear_item(self, catalog_items):
        with pytest.raises(ValidationError):
            ShelfUpdate(item_id=catalog_items["bolt"].id, clear_item=True)


class TestCreateShelf:

    def test_creates_shelf(self, inventory, warehouse, catalog_items):
        shelf = inventory.create_shelf(
            ShelfInput(
                location="A",
                position="01",
                stock_qty=12,
                item_id=catalog_items["bolt"].id,
                warehouse_id=warehouse.id,
            )
        )
        assert shelf.id is not None
        assert shelf.stock_qty == 12
        assert shelf.warehouse_id == warehouse.id

    def test_duplicate_position(self, session, inventory, empty_shelves):
        with pytest.raises(DuplicateShelfPositionError) as exc_info:
            inventory.create_shelf(ShelfInput(location="A", position="01"))
        assert (exc_info.value.location, exc_info.value.position) == ("A", "01")
        assert _count(session) == 3

    def test_same_position_in_another_location(self, inventory, empty_shelves):
        shelf = inventory.create_shelf(ShelfInput(location="B", position="02"))
        assert shelf.location == "B"

    def test_unknown_item(self, session, inventory):
        missing = uuid4()
        with pytest.raises(ItemsNotFoundError) as exc_info:
            inventory.create_shelf(ShelfInput(location="A", position="01", item_id=missing))
        assert exc_info.value.missing_ids == [str(missing)]
        assert _count(session) == 0

    def test_unknown_warehouse(self, inventory):
        with pytest.raises(WarehouseNotFoundError):
            inventory.create_shelf(ShelfInput(location="A", position="01", warehouse_id=uuid4()))


class TestUpdateShelf:

    def test_updates_stock_and_item(self, inventory, empty_shelves, catalog_items):
        shelf = inventory.update_shelf(
            empty_shelves[0].id,
            ShelfUpdate(stock_qty=7, item_id=catalog_items["nut"].id),
        )
        assert shelf.stock_qty == 7
        assert shelf.item_id == catalog_items["nut"].id
        assert (shelf.location, shelf.position) == ("A", "01")

    def test_clear_item(self, inventory, empty_shelves, catalog_items):
        inventory.update_shelf(empty_shelves[0].id, ShelfUpdate(item_id=catalog_items["nut"].id))
        shelf = inventory.update_shelf(empty_shelves[0].id, ShelfUpdate(clear_item=True))
        assert shelf.item_id is None

    def test_move_to_free_position(self, inventory, empty_shelves):
        shelf = inventory.update_shelf(empty_shelves[0].id, ShelfUpdate(position="09"))
        assert (shelf.location, shelf.position) == ("A", "09")

    def test_move_onto_taken_position(self, session, inventory, empty_shelves):
        with pytest.raises(DuplicateShelfPositionError):
            inventory.update_shelf(empty_shelves[0].id, ShelfUpdate(position="02"))
        assert session.get(Shelf, empty_shelves[0].id).position == "01"

    def test_unchanged_position_is_not_a_duplicate(self, inventory, empty_shelves):
        shelf = inventory.update_shelf(
            empty_shelves[1].id, ShelfUpdate(location="A", position="02", stock_qty=1),
        )
        assert shelf.stock_qty == 1

    def test_unknown_shelf(self, inventory):
        with pytest.raises(ShelfNotFoundError):
            inventory.update_shelf(uuid4(), ShelfUpdate(stock_qty=1))


class TestDeleteShelf:

    def test_deletes_unused_shelf(self, session, inventory, empty_shelves):
        inventory.delete_shelf(empty_shelves[2].id)
        assert _count(session) == 2

    def test_unknown_shelf(self, inventory):
        with pytest.raises(ShelfNotFoundError):
            inventory.delete_shelf(uuid4())

    def test_shelf_holding_receipt_items(
        self, session, inventory, purchase_order, admins, empty_shelves, approve,
    ):
        approve(purchase_order.id, admins)
        with pytest.raises(ShelfInUseError) as exc_info:
            inventory.delete_shelf(empty_shelves[0].id)
        assert exc_info.value.receipt_item_count == 2
        assert _count(session) == 3

    def test_logs_rollback(self, inventory, captured_logs):
        missing = uuid4()
        with pytest.raises(ShelfNotFoundError):
            inventory.delete_shelf(missing)
        records = captured_logs()
        rolled_back = [r for r in records if r["message"] == "inventory_operation_rolled_back"]
        assert len(rolled_back) == 1
        assert rolled_back[0]["operation"] == "delete_shelf"
        assert rolled_back[0]["document_type"] == "shelf"
        assert rolled_back[0]["document_id"] == str(missing)
