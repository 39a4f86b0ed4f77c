"""ORM models for the warehouse kernel."""

from warehouse_kernel.models.approval import ApprovableDocumentType, DocumentApproval
from warehouse_kernel.models.catalog import Item, Location, Shelf, Warehouse
from warehouse_kernel.models.delivery_order import (
    DeliveryOrder,
    DeliveryOrderItem,
    DeliveryOrderStatus,
)
from warehouse_kernel.models.material_request import (
    MaterialRequest,
    MaterialRequestItem,
    MaterialRequestStatus,
)
from warehouse_kernel.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderItemStatus,
    PurchaseOrderStatus,
)
from warehouse_kernel.models.receipt import (
    IncomingGoodReceipt,
    IncomingGoodReceiptItem,
    ReceiptItemStatus,
)
from warehouse_kernel.models.user import User, UserRole

__all__ = [
    "User",
    "UserRole",
    "Item",
    "Location",
    "Warehouse",
    "Shelf",
    "MaterialRequest",
    "MaterialRequestItem",
    "MaterialRequestStatus",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderStatus",
    "PurchaseOrderItemStatus",
    "IncomingGoodReceipt",
    "IncomingGoodReceiptItem",
    "ReceiptItemStatus",
    "DeliveryOrder",
    "DeliveryOrderItem",
    "DeliveryOrderStatus",
    "DocumentApproval",
    "ApprovableDocumentType",
]
