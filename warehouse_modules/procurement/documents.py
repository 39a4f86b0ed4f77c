"""
Procurement document export.

``DocumentExportService`` builds the plain-data projection of a document
through ``DocumentSelector`` and hands it to a ``DocumentRenderer``.  Page
layout lives entirely in the renderer; this module only fixes the template
name, the projection shape and the suggested file name.
"""

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.orm import Session

from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.selectors.document_selector import DocumentSelector

logger = get_logger("modules.procurement.documents")


@runtime_checkable
class DocumentRenderer(Protocol):
    """Turns a flattened document projection into file bytes (e.g. a PDF)."""

    def render(self, template: str, data: dict[str, Any]) -> bytes:
        ...


@dataclass(frozen=True)
class ExportedDocument:
    filename: str
    content: bytes
    template: str


class DocumentExportService:
    """Exports material requests, purchase orders, receipts and delivery orders."""

    def __init__(self, session: Session, renderer: DocumentRenderer, extension: str = "pdf"):
        self._selector = DocumentSelector(session)
        self._renderer = renderer
        self._extension = extension

    def _export(self, template: str, number: str, data: dict[str, Any]) -> ExportedDocument:
        content = self._renderer.render(template, data)
        filename = f"{template}-{number}.{self._extension}"
        logger.info(
            "document_exported",
            extra={"template": template, "document_filename": filename, "size_bytes": len(content)},
        )
        return ExportedDocument(filename=filename, content=content, template=template)

    def export_material_request(self, material_request_id: UUID) -> ExportedDocument:
        view = self._selector.material_request(material_request_id)
        return self._export("material-request", view.no_mr, view.as_plain_data())

    def export_purchase_order(self, purchase_order_id: UUID) -> ExportedDocument:
        view = self._selector.purchase_order(purchase_order_id)
        return self._export("purchase-order", view.no_po, view.as_plain_data())

    def export_receipt(self, receipt_id: UUID) -> ExportedDocument:
        view = self._selector.receipt(receipt_id)
        return self._export("incoming-good-receipt", view.no_igr, view.as_plain_data())

    def export_delivery_order(self, delivery_order_id: UUID) -> ExportedDocument:
        view = self._selector.delivery_order(delivery_order_id)
        return self._export("delivery-order", view.no_do, view.as_plain_data())
