"""
Procurement Module.

Material requests, purchase orders with quorum approval, incoming good
receipts and delivery orders.
"""

from warehouse_modules.procurement.config import ProcurementConfig
from warehouse_modules.procurement.documents import (
    DocumentExportService,
    DocumentRenderer,
    ExportedDocument,
)
from warehouse_modules.procurement.models import (
    ApprovalResult,
    DeliveryOrderInput,
    DeliveryOrderLine,
    MaterialRequestInput,
    MaterialRequestLine,
    MaterialRequestUpdate,
    PurchaseOrderInput,
    PurchaseOrderLine,
    PurchaseOrderUpdate,
    ReceiptItemStatusChange,
    WorkflowResult,
    WorkflowStatus,
)
from warehouse_modules.procurement.service import ProcurementService
from warehouse_modules.procurement.workflows import (
    DELIVERY_ORDER_WORKFLOW,
    PURCHASE_ORDER_WORKFLOW,
    RECEIPT_ITEM_WORKFLOW,
)

__all__ = [
    "ProcurementConfig",
    "ProcurementService",
    "DocumentExportService",
    "DocumentRenderer",
    "ExportedDocument",
    "ApprovalResult",
    "DeliveryOrderInput",
    "DeliveryOrderLine",
    "MaterialRequestInput",
    "MaterialRequestLine",
    "MaterialRequestUpdate",
    "PurchaseOrderInput",
    "PurchaseOrderLine",
    "PurchaseOrderUpdate",
    "ReceiptItemStatusChange",
    "WorkflowResult",
    "WorkflowStatus",
    "DELIVERY_ORDER_WORKFLOW",
    "PURCHASE_ORDER_WORKFLOW",
    "RECEIPT_ITEM_WORKFLOW",
]
