"""
Document export projections and file naming.

The renderer is an injected collaborator; these tests use a recording fake
and check what it is handed.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from warehouse_kernel.exceptions import MaterialRequestNotFoundError, ReceiptNotFoundError
from warehouse_modules.procurement.documents import (
    DocumentExportService,
    DocumentRenderer,
    ExportedDocument,
)
from warehouse_modules.procurement.models import DeliveryOrderInput, DeliveryOrderLine


class RecordingRenderer:
    def __init__(self):
        self.calls = []

    def render(self, template, data):
        self.calls.append((template, data))
        return f"{template}:{len(data)}".encode()


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def exporter(session, renderer):
    return DocumentExportService(session, renderer)


def _only_plain(value):
    if isinstance(value, dict):
        return all(isinstance(k, str) and _only_plain(v) for k, v in value.items())
    if isinstance(value, list):
        return all(_only_plain(v) for v in value)
    return value is None or isinstance(value, (str, int))


def test_recording_renderer_satisfies_protocol(renderer):
    assert isinstance(renderer, DocumentRenderer)


def test_material_request_export(exporter, renderer, material_request):
    exported = exporter.export_material_request(material_request.id)

    assert isinstance(exported, ExportedDocument)
    assert exported.filename == "material-request-MR-001.pdf"
    assert exported.template == "material-request"
    assert exported.content.startswith(b"material-request:")

    template, data = renderer.calls[0]
    assert template == "material-request"
    assert data["no_mr"] == "MR-001"
    assert data["location_name"] == "North Site"
    assert data["created_by_email"] == "requester@example.com"
    assert [line["item_code"] for line in data["items"]] == ["ITM-BOLT", "ITM-NUT"]
    assert data["id"] == str(material_request.id)
    assert _only_plain(data)


def test_purchase_order_export(exporter, renderer, purchase_order, admins, approve, empty_shelves):
    approve(purchase_order.id, admins[:2])
    exported = exporter.export_purchase_order(purchase_order.id)

    assert exported.filename == "purchase-order-PO-001.pdf"
    _, data = renderer.calls[0]
    assert data["no_po"] == "PO-001"
    assert [mr["no_mr"] for mr in data["material_requests"]] == ["MR-001"]
    assert data["approvers"] == ["admin1@example.com", "admin2@example.com"]
    assert {line["supplier"] for line in data["items"]} == {"Acme Fasteners"}
    assert all(Decimal(line["price"]) == Decimal("1.25") for line in data["items"])
    assert _only_plain(data)


def test_receipt_export(exporter, renderer, purchase_order, admins, approve, empty_shelves):
    result = approve(purchase_order.id, admins)[-1]
    exported = exporter.export_receipt(result.receipt_id)

    assert exported.filename == "incoming-good-receipt-IGR-001.pdf"
    _, data = renderer.calls[0]
    assert data["no_po"] == "PO-001"
    assert {(line["shelf_location"], line["shelf_position"]) for line in data["items"]} == {("A", "01")}
    assert {line["status"] for line in data["items"]} == {"pending"}
    assert isinstance(data["received_date"], str)


def test_delivery_order_export(exporter, renderer, procurement, requester, material_request, purchase_order):
    bolt_line = material_request.items[0]
    do = procurement.create_delivery_order(
        DeliveryOrderInput(
            created_by_id=requester.id,
            material_request_id=material_request.id,
            items=(DeliveryOrderLine(material_request_item_id=bolt_line.id, quantity=4),),
        )
    )
    exported = exporter.export_delivery_order(do.id)

    assert exported.filename == "delivery-order-DO-001.pdf"
    _, data = renderer.calls[0]
    assert data["no_mr"] == "MR-001"
    assert data["items"] == [
        {
            "id": str(do.items[0].id),
            "item_name": "Hex Bolt M8",
            "item_code": "ITM-BOLT",
            "quantity": 4,
            "unit": "pcs",
        }
    ]


def test_custom_extension(session, renderer, material_request):
    exporter = DocumentExportService(session, renderer, extension="html")
    assert exporter.export_material_request(material_request.id).filename == "material-request-MR-001.html"


def test_missing_documents(exporter, renderer):
    with pytest.raises(MaterialRequestNotFoundError):
        exporter.export_material_request(uuid4())
    with pytest.raises(ReceiptNotFoundError):
        exporter.export_receipt(uuid4())
    assert renderer.calls == []


def test_logs_export(exporter, material_request, captured_logs):
    exporter.export_material_request(material_request.id)
    exported = [r for r in captured_logs() if r["message"] == "document_exported"]
    assert exported[0]["document_filename"] == "material-request-MR-001.pdf"
    assert exported[0]["size_bytes"] > 0
