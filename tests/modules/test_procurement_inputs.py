"""
Tests for the procurement request DTOs and WorkflowResult.

Inputs reject malformed fields before any database access and report one
error per offending field.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from warehouse_kernel.exceptions import (
    AlreadyApprovedError,
    ForbiddenError,
    MaterialRequestItemNotPendingError,
    NoShelfAvailableError,
    PurchaseOrderNotFoundError,
    ValidationError,
)
from warehouse_modules.procurement.models import (
    DeliveryOrderInput,
    MaterialRequestInput,
    MaterialRequestLine,
    MaterialRequestUpdate,
    PurchaseOrderInput,
    PurchaseOrderLine,
    PurchaseOrderUpdate,
    WorkflowResult,
    WorkflowStatus,
)


def _fields(exc_info):
    return [e["field"] for e in exc_info.value.field_errors]


class TestMaterialRequestInput:

    def test_from_dict_parses_ids(self):
        user_id, location_id, item_id = uuid4(), uuid4(), uuid4()
        data = MaterialRequestInput.from_dict({
            "created_by_id": str(user_id),
            "location_id": str(location_id),
            "items": [{"item_id": str(item_id), "quantity": 3, "unit": "box"}],
            "remarks": "urgent",
        })
        assert data.created_by_id == user_id
        assert data.items == (MaterialRequestLine(item_id=item_id, quantity=3, unit="box"),)

    def test_collects_every_error(self):
        with pytest.raises(ValidationError) as exc_info:
            MaterialRequestInput.from_dict({
                "created_by_id": "not-a-uuid",
                "location_id": str(uuid4()),
                "items": [
                    {"item_id": str(uuid4()), "quantity": 0},
                    {"item_id": str(uuid4()), "quantity": 1, "duration": -1},
                ],
            })
        assert _fields(exc_info) == ["created_by_id", "items[0].quantity", "items[1].duration"]
        assert exc_info.value.subject == "material_request"

    def test_boolean_is_not_a_quantity(self):
        with pytest.raises(ValidationError) as exc_info:
            MaterialRequestInput(created_by_id=uuid4(), location_id=uuid4(), items=(
                MaterialRequestLine(item_id=uuid4(), quantity=True),
            ))
        assert _fields(exc_info) == ["items[0].quantity"]

    def test_update_rejects_unknown_line_status(self):
        with pytest.raises(ValidationError) as exc_info:
            MaterialRequestUpdate(items=(MaterialRequestLine(item_id=uuid4(), quantity=1, status="shipped"),))
        assert _fields(exc_info) == ["items[0].status"]


class TestPurchaseOrderInput:

    def test_from_dict_parses_price(self):
        mr_id, line_target = uuid4(), uuid4()
        data = PurchaseOrderInput.from_dict({
            "created_by_id": str(uuid4()),
            "material_request_ids": [str(mr_id)],
            "items": [{"material_request_item_id": str(line_target), "supplier": "Acme", "quantity": 2, "price": "9.50"}],
        })
        assert data.material_request_ids == (mr_id,)
        assert data.items[0].price == Decimal("9.50")

    def test_requires_request_ids_and_supplier(self):
        with pytest.raises(ValidationError) as exc_info:
            PurchaseOrderInput(
                created_by_id=uuid4(),
                material_request_ids=(),
                items=(PurchaseOrderLine(material_request_item_id=uuid4(), supplier=" ", quantity=1),),
            )
        assert _fields(exc_info) == ["material_request_ids", "items[0].supplier"]

    def test_negative_price(self):
        with pytest.raises(ValidationError) as exc_info:
            PurchaseOrderInput(
                created_by_id=uuid4(),
                material_request_ids=(uuid4(),),
                items=(
                    PurchaseOrderLine(
                        material_request_item_id=uuid4(), supplier="Acme", quantity=1, price=Decimal("-1"),
                    ),
                ),
            )
        assert _fields(exc_info) == ["items[0].price"]

    @pytest.mark.parametrize("status", ["draft", "pending", "proses", "done"])
    def test_settable_statuses(self, status):
        assert PurchaseOrderUpdate(status=status).status == status

    def test_approved_is_not_settable(self):
        with pytest.raises(ValidationError) as exc_info:
            PurchaseOrderUpdate(status="approved")
        assert _fields(exc_info) == ["status"]

    def test_update_rejects_repeated_line_ids(self):
        line_id = uuid4()
        line = PurchaseOrderLine(material_request_item_id=uuid4(), supplier="Acme", quantity=1, id=line_id)
        with pytest.raises(ValidationError) as exc_info:
            PurchaseOrderUpdate(items=(line, line))
        assert _fields(exc_info) == ["items"]

    def test_update_from_dict_keeps_absent_fields_none(self):
        update = PurchaseOrderUpdate.from_dict({"remarks": "rush"})
        assert update.items is None
        assert update.material_request_ids is None
        assert update.remarks == "rush"

    def test_empty_item_list_on_update(self):
        with pytest.raises(ValidationError):
            PurchaseOrderUpdate(items=())


class TestDeliveryOrderInput:

    def test_requires_items(self):
        with pytest.raises(ValidationError) as exc_info:
            DeliveryOrderInput.from_dict({
                "created_by_id": str(uuid4()),
                "material_request_id": str(uuid4()),
                "items": [],
            })
        assert _fields(exc_info) == ["items"]


class TestWorkflowResult:

    def test_success(self):
        result = WorkflowResult.capture(lambda a, b: a + b, 2, b=3)
        assert result.is_success
        assert result.value == 5
        assert result.status == WorkflowStatus.SUCCESS

    @pytest.mark.parametrize(
        "error, status",
        [
            (ValidationError("purchase_order", [{"field": "items"}]), WorkflowStatus.VALIDATION_FAILED),
            (PurchaseOrderNotFoundError("abc"), WorkflowStatus.NOT_FOUND),
            (AlreadyApprovedError("purchase_order", "po", "user"), WorkflowStatus.CONFLICT),
            (MaterialRequestItemNotPendingError("item", "proses"), WorkflowStatus.INVALID_STATE),
            (NoShelfAvailableError("item"), WorkflowStatus.DEPENDENCY_FAILED),
            (ForbiddenError("user", "user"), WorkflowStatus.FORBIDDEN),
        ],
    )
    def test_maps_error_categories(self, error, status):
        def fail():
            raise error

        result = WorkflowResult.capture(fail)
        assert not result.is_success
        assert result.status == status
        assert result.code == error.code
        assert result.message == str(error)

    def test_details_carry_error_fields(self):
        def fail():
            raise MaterialRequestItemNotPendingError("item-1", "proses")

        result = WorkflowResult.capture(fail)
        assert result.details["material_request_item_id"] == "item-1"
        assert result.details["current_status"] == "proses"

    def test_other_exceptions_propagate(self):
        def fail():
            raise RuntimeError("database unavailable")

        with pytest.raises(RuntimeError):
            WorkflowResult.capture(fail)

    def test_captures_service_errors(self, procurement, admin):
        result = WorkflowResult.capture(procurement.approve_purchase_order, uuid4(), admin.id)
        assert result.status == WorkflowStatus.NOT_FOUND
        assert result.code == "PURCHASE_ORDER_NOT_FOUND"
