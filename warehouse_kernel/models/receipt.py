"""
Module: warehouse_kernel.models.receipt
Responsibility: ORM persistence for incoming good receipts (IGR) and their
    items.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One receipt per purchase order (UNIQUE purchase_order_id).
    - Receipts are created only when the purchase order's approval quorum is
      first reached.
    - Each item references the shelf chosen for it at creation.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import TrackedBase


class ReceiptItemStatus(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"
    REJECTED = "rejected"


class IncomingGoodReceipt(TrackedBase):
    __tablename__ = "incoming_good_receipts"

    __table_args__ = (
        UniqueConstraint("no_igr", name="uq_igr_no_igr"),
        UniqueConstraint("purchase_order_id", name="uq_igr_purchase_order"),
    )

    no_igr: Mapped[str] = mapped_column(String(50), nullable=False)
    received_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"),
        nullable=False,
    )

    items: Mapped[list["IncomingGoodReceiptItem"]] = relationship(
        "IncomingGoodReceiptItem",
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="IncomingGoodReceiptItem.created_at",
        lazy="selectin",
    )
    purchase_order = relationship("PurchaseOrder", back_populates="receipt")

    def __repr__(self) -> str:
        return f"<IncomingGoodReceipt {self.no_igr}>"


class IncomingGoodReceiptItem(TrackedBase):
    """
    One expected delivery line of a receipt.

    Guarantees:
        - status moves pending -> received or pending -> rejected only;
          the move to received adds quantity to the shelf stock once.
    """

    __tablename__ = "incoming_good_receipt_items"

    __table_args__ = (
        Index("idx_igr_item_receipt", "incoming_good_receipt_id"),
        Index("idx_igr_item_shelf", "shelf_id"),
    )

    incoming_good_receipt_id: Mapped[UUID] = mapped_column(
        ForeignKey("incoming_good_receipts.id"),
        nullable=False,
    )
    purchase_order_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_order_items.id"),
        nullable=False,
    )
    item_id: Mapped[UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    shelf_id: Mapped[UUID] = mapped_column(ForeignKey("shelves.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReceiptItemStatus.PENDING.value,
    )

    receipt: Mapped["IncomingGoodReceipt"] = relationship(
        "IncomingGoodReceipt",
        back_populates="items",
    )
    purchase_order_item = relationship("PurchaseOrderItem")
    item = relationship("Item")
    shelf = relationship("Shelf")

    def __repr__(self) -> str:
        return f"<IncomingGoodReceiptItem {self.id} qty={self.quantity} ({self.status})>"
