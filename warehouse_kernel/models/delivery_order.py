"""
Module: warehouse_kernel.models.delivery_order
Responsibility: ORM persistence for delivery orders and their lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - no_do is unique.
    - Lines reference items of the delivery order's own material request.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import TrackedBase


class DeliveryOrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DONE = "done"


class DeliveryOrder(TrackedBase):
    __tablename__ = "delivery_orders"

    __table_args__ = (
        UniqueConstraint("no_do", name="uq_delivery_order_no_do"),
        Index("idx_delivery_order_mr", "material_request_id"),
    )

    no_do: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DeliveryOrderStatus.PENDING.value,
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    material_request_id: Mapped[UUID] = mapped_column(
        ForeignKey("material_requests.id"),
        nullable=False,
    )
    created_by_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)

    items: Mapped[list["DeliveryOrderItem"]] = relationship(
        "DeliveryOrderItem",
        back_populates="delivery_order",
        cascade="all, delete-orphan",
        order_by="DeliveryOrderItem.created_at",
        lazy="selectin",
    )
    material_request = relationship("MaterialRequest")
    created_by = relationship("User")

    def __repr__(self) -> str:
        return f"<DeliveryOrder {self.no_do} ({self.status})>"


class DeliveryOrderItem(TrackedBase):
    __tablename__ = "delivery_order_items"

    __table_args__ = (
        Index("idx_do_item_order", "delivery_order_id"),
        Index("idx_do_item_mr_item", "material_request_item_id"),
    )

    delivery_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("delivery_orders.id"),
        nullable=False,
    )
    material_request_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("material_request_items.id"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(nullable=False)

    delivery_order: Mapped["DeliveryOrder"] = relationship(
        "DeliveryOrder",
        back_populates="items",
    )
    material_request_item = relationship("MaterialRequestItem")
