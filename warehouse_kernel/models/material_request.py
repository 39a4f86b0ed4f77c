"""
Module: warehouse_kernel.models.material_request
Responsibility: ORM persistence for material requests and their item lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - no_mr is unique and immutable once assigned.
    - MaterialRequest.status is derived from its items' statuses and is
      never set independently (see warehouse_kernel.domain.status).
    - Items belong to exactly one material request and are removed with it.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import TrackedBase


class MaterialRequestStatus(str, Enum):
    """Every literal a material request can carry.

    The set is the union of the derivation vocabularies; the purchase order
    context writes "partial done" with a space.
    """

    REQUESTED = "requested"
    PARTIAL = "partial"
    PENDING = "pending"
    PROSES = "proses"
    PARTIAL_DONE = "partial_done"
    PARTIAL_DONE_SPACED = "partial done"
    DONE = "done"
    CANCELLED = "cancelled"


class MaterialRequest(TrackedBase):
    """
    A request for items raised by a user for a location.

    Guarantees:
        - purchase_order_id is set while a purchase order links the request
          and cleared when the link is removed.
    """

    __tablename__ = "material_requests"

    __table_args__ = (
        UniqueConstraint("no_mr", name="uq_material_request_no_mr"),
        Index("idx_material_request_status", "status"),
        Index("idx_material_request_po", "purchase_order_id"),
    )

    no_mr: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=MaterialRequestStatus.REQUESTED.value,
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    location_id: Mapped[UUID] = mapped_column(ForeignKey("locations.id"), nullable=False)
    created_by_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    purchase_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_orders.id"),
        nullable=True,
    )

    items: Mapped[list["MaterialRequestItem"]] = relationship(
        "MaterialRequestItem",
        back_populates="material_request",
        cascade="all, delete-orphan",
        order_by="MaterialRequestItem.created_at",
        lazy="selectin",
    )
    location = relationship("Location")
    created_by = relationship("User")
    purchase_order = relationship(
        "PurchaseOrder",
        back_populates="material_requests",
    )

    def __repr__(self) -> str:
        return f"<MaterialRequest {self.no_mr} ({self.status})>"


class MaterialRequestItem(TrackedBase):
    """A single requested line: an item, a quantity and a duration."""

    __tablename__ = "material_request_items"

    __table_args__ = (
        Index("idx_mr_item_request", "material_request_id"),
    )

    material_request_id: Mapped[UUID] = mapped_column(
        ForeignKey("material_requests.id"),
        nullable=False,
    )
    item_id: Mapped[UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    duration: Mapped[int] = mapped_column(nullable=False, default=0)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    material_request: Mapped["MaterialRequest"] = relationship(
        "MaterialRequest",
        back_populates="items",
    )
    item = relationship("Item")

    def __repr__(self) -> str:
        return f"<MaterialRequestItem {self.id} qty={self.quantity} ({self.status})>"
