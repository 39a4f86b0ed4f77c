"""
Module: warehouse_kernel.selectors.document_selector
Responsibility: Flattened, plain-data projections of material requests,
    purchase orders, incoming good receipts and delivery orders.  These are
    what an external document renderer consumes.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Projections are frozen dataclasses; ``as_plain_data()`` returns only
      str, int, None, lists and dicts so the renderer needs no ORM or UUID
      knowledge.
"""

from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from warehouse_kernel.exceptions import (
    DeliveryOrderNotFoundError,
    MaterialRequestNotFoundError,
    PurchaseOrderNotFoundError,
    ReceiptNotFoundError,
)
from warehouse_kernel.models.approval import ApprovableDocumentType, DocumentApproval
from warehouse_kernel.models.delivery_order import DeliveryOrder
from warehouse_kernel.models.material_request import MaterialRequest
from warehouse_kernel.models.purchase_order import PurchaseOrder
from warehouse_kernel.models.receipt import IncomingGoodReceipt
from warehouse_kernel.models.user import User
from warehouse_kernel.selectors.base import BaseSelector


def _plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


class _Projection:
    def as_plain_data(self) -> dict[str, Any]:
        return _plain(asdict(self))


@dataclass(frozen=True)
class MaterialRequestLineView(_Projection):
    id: UUID
    item_name: str
    item_code: str
    quantity: int
    duration: int
    unit: str | None
    notes: str | None
    status: str


@dataclass(frozen=True)
class MaterialRequestView(_Projection):
    id: UUID
    no_mr: str
    status: str
    remarks: str | None
    location_name: str
    created_by_email: str
    created_at: datetime
    items: tuple[MaterialRequestLineView, ...]


@dataclass(frozen=True)
class LinkedRequestView(_Projection):
    id: UUID
    no_mr: str
    remarks: str | None
    location_name: str


@dataclass(frozen=True)
class PurchaseOrderLineView(_Projection):
    id: UUID
    item_name: str
    item_code: str
    supplier: str
    quantity: int
    price: Decimal | None
    status: str


@dataclass(frozen=True)
class PurchaseOrderView(_Projection):
    id: UUID
    no_po: str
    status: str
    remarks: str | None
    created_by_email: str
    created_at: datetime
    material_requests: tuple[LinkedRequestView, ...]
    approvers: tuple[str, ...]
    items: tuple[PurchaseOrderLineView, ...]


@dataclass(frozen=True)
class ReceiptLineView(_Projection):
    id: UUID
    item_name: str
    item_code: str
    quantity: int
    status: str
    shelf_location: str
    shelf_position: str


@dataclass(frozen=True)
class ReceiptView(_Projection):
    id: UUID
    no_igr: str
    no_po: str
    received_date: datetime
    items: tuple[ReceiptLineView, ...]


@dataclass(frozen=True)
class DeliveryOrderLineView(_Projection):
    id: UUID
    item_name: str
    item_code: str
    quantity: int
    unit: str | None


@dataclass(frozen=True)
class DeliveryOrderView(_Projection):
    id: UUID
    no_do: str
    status: str
    remarks: str | None
    no_mr: str
    location_name: str
    created_at: datetime
    items: tuple[DeliveryOrderLineView, ...]


class DocumentSelector(BaseSelector[MaterialRequest]):
    """Builds document projections.  Raises the entity's NotFoundError."""

    def material_request(self, material_request_id: UUID) -> MaterialRequestView:
        mr = self.session.get(MaterialRequest, material_request_id)
        if mr is None:
            raise MaterialRequestNotFoundError(str(material_request_id))
        return MaterialRequestView(
            id=mr.id,
            no_mr=mr.no_mr,
            status=mr.status,
            remarks=mr.remarks,
            location_name=mr.location.name,
            created_by_email=mr.created_by.email,
            created_at=mr.created_at,
            items=tuple(
                MaterialRequestLineView(
                    id=line.id,
                    item_name=line.item.name,
                    item_code=line.item.code,
                    quantity=line.quantity,
                    duration=line.duration,
                    unit=line.unit,
                    notes=line.notes,
                    status=line.status,
                )
                for line in mr.items
            ),
        )

    def purchase_order(self, purchase_order_id: UUID) -> PurchaseOrderView:
        po = self.session.get(PurchaseOrder, purchase_order_id)
        if po is None:
            raise PurchaseOrderNotFoundError(str(purchase_order_id))

        approver_emails = self.session.execute(
            select(User.email)
            .join(DocumentApproval, DocumentApproval.user_id == User.id)
            .where(
                DocumentApproval.document_type == ApprovableDocumentType.PURCHASE_ORDER.value,
                DocumentApproval.document_id == po.id,
            )
            .order_by(DocumentApproval.approved_at, DocumentApproval.id)
        ).scalars().all()

        return PurchaseOrderView(
            id=po.id,
            no_po=po.no_po,
            status=po.status,
            remarks=po.remarks,
            created_by_email=po.created_by.email,
            created_at=po.created_at,
            material_requests=tuple(
                LinkedRequestView(
                    id=mr.id,
                    no_mr=mr.no_mr,
                    remarks=mr.remarks,
                    location_name=mr.location.name,
                )
                for mr in po.material_requests
            ),
            approvers=tuple(approver_emails),
            items=tuple(
                PurchaseOrderLineView(
                    id=line.id,
                    item_name=line.material_request_item.item.name,
                    item_code=line.material_request_item.item.code,
                    supplier=line.supplier,
                    quantity=line.quantity,
                    price=line.price,
                    status=line.status,
                )
                for line in po.items
            ),
        )

    def receipt(self, receipt_id: UUID) -> ReceiptView:
        igr = self.session.get(IncomingGoodReceipt, receipt_id)
        if igr is None:
            raise ReceiptNotFoundError(str(receipt_id))
        return ReceiptView(
            id=igr.id,
            no_igr=igr.no_igr,
            no_po=igr.purchase_order.no_po,
            received_date=igr.received_date,
            items=tuple(
                ReceiptLineView(
                    id=line.id,
                    item_name=line.item.name,
                    item_code=line.item.code,
                    quantity=line.quantity,
                    status=line.status,
                    shelf_location=line.shelf.location,
                    shelf_position=line.shelf.position,
                )
                for line in igr.items
            ),
        )

    def delivery_order(self, delivery_order_id: UUID) -> DeliveryOrderView:
        do = self.session.get(DeliveryOrder, delivery_order_id)
        if do is None:
            raise DeliveryOrderNotFoundError(str(delivery_order_id))
        mr = do.material_request
        return DeliveryOrderView(
            id=do.id,
            no_do=do.no_do,
            status=do.status,
            remarks=do.remarks,
            no_mr=mr.no_mr,
            location_name=mr.location.name,
            created_at=do.created_at,
            items=tuple(
                DeliveryOrderLineView(
                    id=line.id,
                    item_name=line.material_request_item.item.name,
                    item_code=line.material_request_item.item.code,
                    quantity=line.quantity,
                    unit=line.material_request_item.unit,
                )
                for line in do.items
            ),
        )
