"""
Procurement Domain Models.

The nouns handed to and returned from ``ProcurementService``: validated
request inputs for material requests, purchase orders and delivery orders,
and the results of approvals and receipt transitions.

Inputs validate themselves in ``__post_init__`` and raise
``ValidationError`` with one entry per offending field, so a malformed
request never reaches the database.
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

from warehouse_kernel.domain.status import MaterialRequestItemStatus
from warehouse_kernel.exceptions import (
    AuthorizationError,
    ConflictError,
    DependencyError,
    NotFoundError,
    StateError,
    ValidationError,
    WarehouseKernelError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.purchase_order import PurchaseOrderStatus

logger = get_logger("modules.procurement.models")

_LINE_STATUSES = frozenset(s.value for s in MaterialRequestItemStatus)
# "approved" is reached through the quorum only
_SETTABLE_PO_STATUSES = frozenset(
    s.value for s in PurchaseOrderStatus if s is not PurchaseOrderStatus.APPROVED
)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _error(field_name: str, value: Any, message: str) -> dict:
    return {"field": field_name, "value": value, "message": message}


def _raise_if_errors(subject: str, errors: list[dict]) -> None:
    if errors:
        logger.warning(
            "procurement_input_invalid",
            extra={"subject": subject, "field_errors": errors},
        )
        raise ValidationError(subject, errors)


def _as_uuid(value: Any) -> Any:
    """Parse a UUID from a string; leave anything unparseable unchanged for validation."""
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            return value
    return value


def _as_decimal(value: Any) -> Any:
    if value is None or isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float, str)) and not isinstance(value, bool):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return value
    return value


# -----------------------------------------------------------------------------
# Material requests
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MaterialRequestLine:
    """One requested item.  ``status`` is honoured on update only."""
    item_id: UUID
    quantity: int
    duration: int = 0
    unit: str | None = None
    notes: str | None = None
    status: str | None = None

    def field_errors(self, prefix: str = "") -> list[dict]:
        errors = []
        if not isinstance(self.item_id, UUID):
            errors.append(_error(f"{prefix}item_id", self.item_id, "must be a UUID"))
        if not _is_int(self.quantity) or self.quantity <= 0:
            errors.append(_error(f"{prefix}quantity", self.quantity, "must be a positive integer"))
        if not _is_int(self.duration) or self.duration < 0:
            errors.append(_error(f"{prefix}duration", self.duration, "must be a non-negative integer"))
        if self.status is not None and self.status not in _LINE_STATUSES:
            errors.append(_error(f"{prefix}status", self.status, f"must be one of {sorted(_LINE_STATUSES)}"))
        return errors

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MaterialRequestLine":
        return cls(
            item_id=_as_uuid(data.get("item_id")),
            quantity=data.get("quantity"),
            duration=data.get("duration", 0),
            unit=data.get("unit"),
            notes=data.get("notes"),
            status=data.get("status"),
        )


def _line_errors(items: Sequence, line_type: type, check: Callable[[Any, str], list[dict]]) -> list[dict]:
    errors = []
    if not items:
        errors.append(_error("items", [], "at least one item is required"))
    for index, line in enumerate(items):
        if not isinstance(line, line_type):
            errors.append(_error(f"items[{index}]", line, f"must be a {line_type.__name__}"))
            continue
        errors.extend(check(line, f"items[{index}]."))
    return errors


@dataclass(frozen=True)
class MaterialRequestInput:
    """A new material request, or the full replacement for an existing one."""
    created_by_id: UUID
    location_id: UUID
    items: tuple[MaterialRequestLine, ...]
    remarks: str | None = None

    def __post_init__(self):
        errors = []
        if not isinstance(self.created_by_id, UUID):
            errors.append(_error("created_by_id", self.created_by_id, "must be a UUID"))
        if not isinstance(self.location_id, UUID):
            errors.append(_error("location_id", self.location_id, "must be a UUID"))
        errors.extend(
            _line_errors(self.items, MaterialRequestLine, lambda line, p: line.field_errors(p))
        )
        _raise_if_errors("material_request", errors)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MaterialRequestInput":
        return cls(
            created_by_id=_as_uuid(data.get("created_by_id")),
            location_id=_as_uuid(data.get("location_id")),
            items=tuple(MaterialRequestLine.from_dict(i) for i in data.get("items") or ()),
            remarks=data.get("remarks"),
        )


@dataclass(frozen=True)
class MaterialRequestUpdate:
    """
    Replacement item set for an existing material request.

    ``location_id`` and ``remarks`` are left untouched when ``None``.
    """
    items: tuple[MaterialRequestLine, ...]
    location_id: UUID | None = None
    remarks: str | None = None

    def __post_init__(self):
        errors = []
        if self.location_id is not None and not isinstance(self.location_id, UUID):
            errors.append(_error("location_id", self.location_id, "must be a UUID"))
        errors.extend(
            _line_errors(self.items, MaterialRequestLine, lambda line, p: line.field_errors(p))
        )
        _raise_if_errors("material_request_update", errors)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MaterialRequestUpdate":
        return cls(
            items=tuple(MaterialRequestLine.from_dict(i) for i in data.get("items") or ()),
            location_id=_as_uuid(data.get("location_id")),
            remarks=data.get("remarks"),
        )


# -----------------------------------------------------------------------------
# Purchase orders
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class PurchaseOrderLine:
    """One line of a purchase order.  ``id`` identifies an existing line on update."""
    material_request_item_id: UUID
    supplier: str
    quantity: int
    price: Decimal | None = None
    status: str | None = None
    id: UUID | None = None

    def field_errors(self, prefix: str = "") -> list[dict]:
        errors = []
        if not isinstance(self.material_request_item_id, UUID):
            errors.append(_error(
                f"{prefix}material_request_item_id",
                self.material_request_item_id,
                "must be a UUID",
            ))
        if not isinstance(self.supplier, str) or not self.supplier.strip():
            errors.append(_error(f"{prefix}supplier", self.supplier, "must not be empty"))
        if not _is_int(self.quantity) or self.quantity <= 0:
            errors.append(_error(f"{prefix}quantity", self.quantity, "must be a positive integer"))
        if self.price is not None and (not isinstance(self.price, Decimal) or self.price < 0):
            errors.append(_error(f"{prefix}price", self.price, "must be a non-negative decimal"))
        if self.status is not None and self.status not in _LINE_STATUSES:
            errors.append(_error(f"{prefix}status", self.status, f"must be one of {sorted(_LINE_STATUSES)}"))
        if self.id is not None and not isinstance(self.id, UUID):
            errors.append(_error(f"{prefix}id", self.id, "must be a UUID"))
        return errors

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PurchaseOrderLine":
        return cls(
            material_request_item_id=_as_uuid(data.get("material_request_item_id")),
            supplier=data.get("supplier"),
            quantity=data.get("quantity"),
            price=_as_decimal(data.get("price")),
            status=data.get("status"),
            id=_as_uuid(data.get("id")),
        )


def _po_status_errors(status: str | None) -> list[dict]:
    if status is not None and status not in _SETTABLE_PO_STATUSES:
        return [_error("status", status, f"must be one of {sorted(_SETTABLE_PO_STATUSES)}")]
    return []


def _uuid_list_errors(field_name: str, values: Sequence) -> list[dict]:
    errors = []
    if not values:
        errors.append(_error(field_name, [], "at least one id is required"))
    for index, value in enumerate(values):
        if not isinstance(value, UUID):
            errors.append(_error(f"{field_name}[{index}]", value, "must be a UUID"))
    return errors


@dataclass(frozen=True)
class PurchaseOrderInput:
    created_by_id: UUID
    material_request_ids: tuple[UUID, ...]
    items: tuple[PurchaseOrderLine, ...]
    status: str | None = None
    remarks: str | None = None

    def __post_init__(self):
        errors = []
        if not isinstance(self.created_by_id, UUID):
            errors.append(_error("created_by_id", self.created_by_id, "must be a UUID"))
        errors.extend(_uuid_list_errors("material_request_ids", self.material_request_ids))
        errors.extend(
            _line_errors(self.items, PurchaseOrderLine, lambda line, p: line.field_errors(p))
        )
        errors.extend(_po_status_errors(self.status))
        _raise_if_errors("purchase_order", errors)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PurchaseOrderInput":
        return cls(
            created_by_id=_as_uuid(data.get("created_by_id")),
            material_request_ids=tuple(_as_uuid(v) for v in data.get("material_request_ids") or ()),
            items=tuple(PurchaseOrderLine.from_dict(i) for i in data.get("items") or ()),
            status=data.get("status"),
            remarks=data.get("remarks"),
        )


@dataclass(frozen=True)
class PurchaseOrderUpdate:
    """
    Partial update of a purchase order.

    ``None`` leaves a field untouched.  When ``items`` is given it is the
    complete new line set: existing lines missing from it are removed.
    """
    items: tuple[PurchaseOrderLine, ...] | None = None
    material_request_ids: tuple[UUID, ...] | None = None
    status: str | None = None
    remarks: str | None = None

    def __post_init__(self):
        errors = []
        if self.items is not None:
            errors.extend(
                _line_errors(self.items, PurchaseOrderLine, lambda line, p: line.field_errors(p))
            )
            line_ids = [line.id for line in self.items
                        if isinstance(line, PurchaseOrderLine) and line.id is not None]
            if len(line_ids) != len(set(line_ids)):
                errors.append(_error("items", [str(i) for i in line_ids], "line ids must be unique"))
        if self.material_request_ids is not None:
            errors.extend(_uuid_list_errors("material_request_ids", self.material_request_ids))
        errors.extend(_po_status_errors(self.status))
        _raise_if_errors("purchase_order_update", errors)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PurchaseOrderUpdate":
        items = data.get("items")
        mr_ids = data.get("material_request_ids")
        return cls(
            items=None if items is None else tuple(PurchaseOrderLine.from_dict(i) for i in items),
            material_request_ids=None if mr_ids is None else tuple(_as_uuid(v) for v in mr_ids),
            status=data.get("status"),
            remarks=data.get("remarks"),
        )


# -----------------------------------------------------------------------------
# Delivery orders
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class DeliveryOrderLine:
    material_request_item_id: UUID
    quantity: int

    def field_errors(self, prefix: str = "") -> list[dict]:
        errors = []
        if not isinstance(self.material_request_item_id, UUID):
            errors.append(_error(
                f"{prefix}material_request_item_id",
                self.material_request_item_id,
                "must be a UUID",
            ))
        if not _is_int(self.quantity) or self.quantity < 1:
            errors.append(_error(f"{prefix}quantity", self.quantity, "must be at least 1"))
        return errors


@dataclass(frozen=True)
class DeliveryOrderInput:
    created_by_id: UUID
    material_request_id: UUID
    items: tuple[DeliveryOrderLine, ...]
    remarks: str | None = None

    def __post_init__(self):
        errors = []
        if not isinstance(self.created_by_id, UUID):
            errors.append(_error("created_by_id", self.created_by_id, "must be a UUID"))
        if not isinstance(self.material_request_id, UUID):
            errors.append(_error("material_request_id", self.material_request_id, "must be a UUID"))
        errors.extend(
            _line_errors(self.items, DeliveryOrderLine, lambda line, p: line.field_errors(p))
        )
        _raise_if_errors("delivery_order", errors)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeliveryOrderInput":
        return cls(
            created_by_id=_as_uuid(data.get("created_by_id")),
            material_request_id=_as_uuid(data.get("material_request_id")),
            items=tuple(
                DeliveryOrderLine(
                    material_request_item_id=_as_uuid(i.get("material_request_item_id")),
                    quantity=i.get("quantity"),
                )
                for i in data.get("items") or ()
            ),
            remarks=data.get("remarks"),
        )


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ApprovalResult:
    """Outcome of approving a purchase or delivery order."""
    document_type: str
    document_id: UUID
    document_status: str
    approvals_count: int
    required: int
    remaining: int
    quorum_newly_reached: bool
    receipt_id: UUID | None = None
    receipt_number: str | None = None


@dataclass(frozen=True)
class ReceiptItemStatusChange:
    receipt_item_id: UUID
    previous_status: str
    status: str
    changed: bool
    shelf_id: UUID
    shelf_stock_qty: int


class WorkflowStatus(str, Enum):
    SUCCESS = "success"
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_STATE = "invalid_state"
    DEPENDENCY_FAILED = "dependency_failed"
    FORBIDDEN = "forbidden"
    FAILED = "failed"


# Most specific first
_STATUS_BY_ERROR: tuple[tuple[type[WarehouseKernelError], WorkflowStatus], ...] = (
    (ValidationError, WorkflowStatus.VALIDATION_FAILED),
    (NotFoundError, WorkflowStatus.NOT_FOUND),
    (ConflictError, WorkflowStatus.CONFLICT),
    (StateError, WorkflowStatus.INVALID_STATE),
    (DependencyError, WorkflowStatus.DEPENDENCY_FAILED),
    (AuthorizationError, WorkflowStatus.FORBIDDEN),
)


@dataclass(frozen=True)
class WorkflowResult:
    """
    Structured outcome of a procurement operation for the request layer.

    Only ``WarehouseKernelError`` subclasses are translated; anything else
    propagates from ``capture`` unchanged.
    """
    status: WorkflowStatus
    value: Any = None
    code: str | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == WorkflowStatus.SUCCESS

    @classmethod
    def success(cls, value: Any = None) -> "WorkflowResult":
        return cls(status=WorkflowStatus.SUCCESS, value=value)

    @classmethod
    def from_error(cls, exc: WarehouseKernelError) -> "WorkflowResult":
        status = WorkflowStatus.FAILED
        for error_type, mapped in _STATUS_BY_ERROR:
            if isinstance(exc, error_type):
                status = mapped
                break
        details = {k: v for k, v in vars(exc).items() if not k.startswith("_")}
        return cls(status=status, code=exc.code, message=str(exc), details=details)

    @classmethod
    def capture(cls, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> "WorkflowResult":
        try:
            return cls.success(fn(*args, **kwargs))
        except WarehouseKernelError as exc:
            logger.info(
                "procurement_operation_failed",
                extra={"operation": getattr(fn, "__name__", repr(fn)), "error_code": exc.code},
            )
            return cls.from_error(exc)
