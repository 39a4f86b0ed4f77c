"""
Module: warehouse_kernel.models.purchase_order
Responsibility: ORM persistence for purchase orders and their lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - no_po is unique.
    - A material request item is referenced by at most one purchase order
      line (UNIQUE material_request_item_id).
    - A purchase order has at most one incoming good receipt; once it
      exists the purchase order is immutable.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import TrackedBase


class PurchaseOrderStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PROSES = "proses"
    APPROVED = "approved"
    DONE = "done"


class PurchaseOrderItemStatus(str, Enum):
    PENDING = "pending"
    PROSES = "proses"
    DONE = "done"


class PurchaseOrder(TrackedBase):
    """
    An order to suppliers covering pending material request items.

    Guarantees:
        - status becomes APPROVED exactly once, when the approval quorum is
          first reached.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("no_po", name="uq_purchase_order_no_po"),
        Index("idx_purchase_order_status", "status"),
    )

    no_po: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PurchaseOrderStatus.DRAFT.value,
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)

    items: Mapped[list["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.created_at",
        lazy="selectin",
    )
    material_requests = relationship(
        "MaterialRequest",
        back_populates="purchase_order",
        order_by="MaterialRequest.created_at",
    )
    receipt = relationship(
        "IncomingGoodReceipt",
        back_populates="purchase_order",
        uselist=False,
    )
    created_by = relationship("User")

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.no_po} ({self.status})>"


class PurchaseOrderItem(TrackedBase):
    """A line ordering one material request item from a supplier."""

    __tablename__ = "purchase_order_items"

    __table_args__ = (
        UniqueConstraint(
            "material_request_item_id",
            name="uq_purchase_order_item_mr_item",
        ),
        Index("idx_po_item_order", "purchase_order_id"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"),
        nullable=False,
    )
    material_request_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("material_request_items.id"),
        nullable=False,
    )
    supplier: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    price: Mapped[Decimal | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PurchaseOrderItemStatus.PROSES.value,
    )

    purchase_order: Mapped["PurchaseOrder"] = relationship(
        "PurchaseOrder",
        back_populates="items",
    )
    material_request_item = relationship("MaterialRequestItem")

    def __repr__(self) -> str:
        return f"<PurchaseOrderItem {self.id} {self.supplier} qty={self.quantity}>"
