"""
Shared fixtures for module tests.

Builds on the reference data fixtures of the root conftest (admins,
requester, site, catalog_items, empty_shelves).

DESIGN RULE: Every fixture is opt-in.  No autouse.  Each test explicitly
declares which entities it depends on in its function signature.
"""

from decimal import Decimal

import pytest

from warehouse_modules.inventory.service import InventoryService
from warehouse_modules.procurement.config import ProcurementConfig
from warehouse_modules.procurement.models import (
    MaterialRequestInput,
    MaterialRequestLine,
    PurchaseOrderInput,
    PurchaseOrderLine,
)
from warehouse_modules.procurement.service import ProcurementService


@pytest.fixture
def procurement(session, deterministic_clock):
    """ProcurementService with the default config and a deterministic clock."""
    return ProcurementService(
        session,
        config=ProcurementConfig.with_defaults(),
        clock=deterministic_clock,
    )


@pytest.fixture
def inventory(session):
    return InventoryService(session)


@pytest.fixture
def material_request(procurement, requester, site, catalog_items):
    """MR-001: 10 bolts and 5 nuts, both pending."""
    return procurement.create_material_request(
        MaterialRequestInput(
            created_by_id=requester.id,
            location_id=site.id,
            items=(
                MaterialRequestLine(item_id=catalog_items["bolt"].id, quantity=10, duration=3, unit="pcs"),
                MaterialRequestLine(item_id=catalog_items["nut"].id, quantity=5, unit="pcs"),
            ),
            remarks="Monthly maintenance",
        )
    )


@pytest.fixture
def line_for():
    """Find the material request line that requests a given item."""
    def _line_for(material_request, item):
        return next(line for line in material_request.items if line.item_id == item.id)
    return _line_for


@pytest.fixture
def purchase_order(procurement, requester, material_request):
    """PO-001 ordering every line of MR-001 from one supplier."""
    return procurement.create_purchase_order(
        PurchaseOrderInput(
            created_by_id=requester.id,
            material_request_ids=(material_request.id,),
            items=tuple(
                PurchaseOrderLine(
                    material_request_item_id=line.id,
                    supplier="Acme Fasteners",
                    quantity=line.quantity,
                    price=Decimal("1.2500"),
                )
                for line in material_request.items
            ),
        )
    )


@pytest.fixture
def approve(procurement, deterministic_clock):
    """Approve a document with each of ``approvers``; returns the results."""
    def _approve(document_id, approvers, document="purchase_order"):
        method = (
            procurement.approve_purchase_order
            if document == "purchase_order"
            else procurement.approve_delivery_order
        )
        results = []
        for user in approvers:
            deterministic_clock.tick()
            results.append(method(document_id, user.id))
        return results
    return _approve
