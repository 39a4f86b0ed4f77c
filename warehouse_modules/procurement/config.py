"""
Procurement Configuration Schema.

Defines the structure and defaults for procurement settings: the approval
quorum, document numbering and default purchase order statuses.  Values can
be overridden from a dict or a YAML file.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Self

import yaml

from warehouse_kernel.domain.approval import DEFAULT_APPROVAL_QUORUM
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.purchase_order import (
    PurchaseOrderItemStatus,
    PurchaseOrderStatus,
)
from warehouse_kernel.services.sequence_service import DocumentType

logger = get_logger("modules.procurement.config")


@dataclass
class ProcurementConfig:
    """
    Configuration schema for the procurement module.

    Override at instantiation with site-specific values:

        config = ProcurementConfig(approval_quorum=3, number_width=4)
    """

    # Approvals
    approval_quorum: int = DEFAULT_APPROVAL_QUORUM

    # Document numbering
    number_width: int = 3
    material_request_prefix: str = "MR"
    purchase_order_prefix: str = "PO"
    delivery_order_prefix: str = "DO"
    receipt_prefix: str = "IGR"

    # Purchase order defaults
    default_po_status: str = PurchaseOrderStatus.DRAFT.value
    default_po_item_status: str = PurchaseOrderItemStatus.PROSES.value

    def __post_init__(self):
        if self.approval_quorum < 1:
            raise ValueError(f"approval_quorum must be at least 1, got {self.approval_quorum}")
        if self.number_width < 1:
            raise ValueError(f"number_width must be at least 1, got {self.number_width}")
        # Raises ValueError on an unknown status
        PurchaseOrderStatus(self.default_po_status)
        PurchaseOrderItemStatus(self.default_po_item_status)

        logger.info(
            "procurement_config_initialized",
            extra={
                "approval_quorum": self.approval_quorum,
                "number_width": self.number_width,
                "default_po_status": self.default_po_status,
                "default_po_item_status": self.default_po_item_status,
            },
        )

    @property
    def prefixes(self) -> dict[DocumentType, str]:
        return {
            DocumentType.MATERIAL_REQUEST: self.material_request_prefix,
            DocumentType.PURCHASE_ORDER: self.purchase_order_prefix,
            DocumentType.DELIVERY_ORDER: self.delivery_order_prefix,
            DocumentType.INCOMING_GOOD_RECEIPT: self.receipt_prefix,
        }

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the standard defaults."""
        logger.info("procurement_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from database/file)."""
        logger.info(
            "procurement_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """
        Load config from a YAML file.

        The file may hold the settings at top level or under a
        ``procurement:`` section.

        Raises:
            FileNotFoundError: if the file does not exist.
            yaml.YAMLError: if the file contains invalid YAML.
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if "procurement" in data:
            data = data["procurement"] or {}
        logger.info("procurement_config_loading_from_yaml", extra={"path": str(path)})
        return cls.from_dict(data)
