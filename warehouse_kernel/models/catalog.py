"""
Module: warehouse_kernel.models.catalog
Responsibility: ORM persistence for reference data: catalog items, locations,
    warehouses and storage shelves.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Item.code and Location.code are unique.
    - A shelf is identified by (location, position); the pair is unique.
    - Shelf.stock_qty is only mutated by the receipt transition
      pending -> received (see ProcurementService.update_receipt_item_status).

Failure modes:
    - IntegrityError on a duplicate (location, position) that slipped past
      the service-level check.
"""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import TrackedBase


class Item(TrackedBase):
    """A catalog item that can be requested, ordered, received and delivered."""

    __tablename__ = "items"

    __table_args__ = (
        UniqueConstraint("code", name="uq_item_code"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    part_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Item {self.code}: {self.name}>"


class Location(TrackedBase):
    """A site that raises material requests."""

    __tablename__ = "locations"

    __table_args__ = (
        UniqueConstraint("code", name="uq_location_code"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)

    def __repr__(self) -> str:
        return f"<Location {self.code}: {self.name}>"


class Warehouse(TrackedBase):
    __tablename__ = "warehouses"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact: Mapped[str | None] = mapped_column(String(255), nullable=True)

    shelves: Mapped[list["Shelf"]] = relationship(
        "Shelf",
        back_populates="warehouse",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Warehouse {self.name}>"


class Shelf(TrackedBase):
    """
    A storage slot inside a warehouse.

    Guarantees:
        - (location, position) is unique.
        - item_id is None until the shelf is claimed for an item, either by
          maintenance or by the shelf allocator picking an empty shelf.
    """

    __tablename__ = "shelves"

    __table_args__ = (
        UniqueConstraint("location", "position", name="uq_shelf_location_position"),
        Index("idx_shelf_item", "item_id"),
        Index("idx_shelf_created", "created_at"),
    )

    location: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[str] = mapped_column(String(100), nullable=False)
    stock_qty: Mapped[int] = mapped_column(nullable=False, default=0)
    item_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("items.id"),
        nullable=True,
    )
    warehouse_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("warehouses.id"),
        nullable=True,
    )

    item: Mapped[Item | None] = relationship("Item")
    warehouse: Mapped[Warehouse | None] = relationship(
        "Warehouse",
        back_populates="shelves",
    )

    def __repr__(self) -> str:
        return f"<Shelf {self.location}/{self.position} qty={self.stock_qty}>"
