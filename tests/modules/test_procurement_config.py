"""Tests for ProcurementConfig loading and its effect on ProcurementService."""

import pytest
import yaml

from warehouse_kernel.services.sequence_service import DocumentType
from warehouse_modules.procurement.config import ProcurementConfig
from warehouse_modules.procurement.models import (
    MaterialRequestInput,
    MaterialRequestLine,
    PurchaseOrderInput,
    PurchaseOrderLine,
)
from warehouse_modules.procurement.service import ProcurementService


class TestProcurementConfig:

    def test_defaults(self):
        config = ProcurementConfig.with_defaults()
        assert config.approval_quorum == 4
        assert config.number_width == 3
        assert config.default_po_status == "draft"
        assert config.default_po_item_status == "proses"
        assert config.prefixes[DocumentType.INCOMING_GOOD_RECEIPT] == "IGR"

    def test_from_dict(self):
        config = ProcurementConfig.from_dict({"approval_quorum": 2, "purchase_order_prefix": "PUR"})
        assert config.approval_quorum == 2
        assert config.prefixes[DocumentType.PURCHASE_ORDER] == "PUR"
        assert config.prefixes[DocumentType.MATERIAL_REQUEST] == "MR"

    def test_unknown_key_is_rejected(self):
        with pytest.raises(TypeError):
            ProcurementConfig.from_dict({"quorum": 2})

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"approval_quorum": 0},
            {"number_width": 0},
            {"default_po_status": "shipped"},
            {"default_po_item_status": "lost"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ProcurementConfig(**kwargs)

    def test_from_yaml_top_level(self, tmp_path):
        path = tmp_path / "procurement.yaml"
        path.write_text(yaml.safe_dump({"approval_quorum": 3, "number_width": 4}))
        config = ProcurementConfig.from_yaml(path)
        assert (config.approval_quorum, config.number_width) == (3, 4)

    def test_from_yaml_section(self, tmp_path):
        path = tmp_path / "warehouse.yaml"
        path.write_text(
            yaml.safe_dump({"procurement": {"receipt_prefix": "GRN"}, "inventory": {"unused": 1}})
        )
        config = ProcurementConfig.from_yaml(str(path))
        assert config.receipt_prefix == "GRN"
        assert config.approval_quorum == 4

    def test_from_yaml_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert ProcurementConfig.from_yaml(path) == ProcurementConfig()

    def test_from_yaml_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ProcurementConfig.from_yaml(tmp_path / "absent.yaml")


class TestConfiguredService:

    @pytest.fixture
    def small_quorum(self, session, deterministic_clock):
        config = ProcurementConfig(
            approval_quorum=2,
            number_width=4,
            material_request_prefix="REQ",
            purchase_order_prefix="PUR",
            receipt_prefix="GRN",
        )
        return ProcurementService(session, config=config, clock=deterministic_clock)

    def test_prefixes_width_and_quorum(
        self, small_quorum, requester, site, catalog_items, admins, empty_shelves, deterministic_clock,
    ):
        mr = small_quorum.create_material_request(
            MaterialRequestInput(
                created_by_id=requester.id,
                location_id=site.id,
                items=(MaterialRequestLine(item_id=catalog_items["bolt"].id, quantity=2),),
            )
        )
        assert mr.no_mr == "REQ-0001"

        po = small_quorum.create_purchase_order(
            PurchaseOrderInput(
                created_by_id=requester.id,
                material_request_ids=(mr.id,),
                items=(
                    PurchaseOrderLine(material_request_item_id=mr.items[0].id, supplier="Acme", quantity=2),
                ),
            )
        )
        assert po.no_po == "PUR-0001"

        deterministic_clock.tick()
        first = small_quorum.approve_purchase_order(po.id, admins[0].id)
        deterministic_clock.tick()
        second = small_quorum.approve_purchase_order(po.id, admins[1].id)
        assert (first.required, first.remaining) == (2, 1)
        assert second.quorum_newly_reached
        assert second.receipt_number == "GRN-0001"
