"""
Module: warehouse_kernel.models.approval
Responsibility: ORM persistence for document approvals, the join entity
    between an approvable document and an approving user.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Approval uniqueness: UNIQUE(document_type, document_id, user_id) so the
      same user cannot be counted twice for one document, even under
      concurrent requests.

Failure modes:
    - IntegrityError on a duplicate approval that raced past the
      service-level check.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warehouse_kernel.db.base import Base, UUIDString


class ApprovableDocumentType(str, Enum):
    PURCHASE_ORDER = "purchase_order"
    DELIVERY_ORDER = "delivery_order"


class DocumentApproval(Base):
    """One user's approval of one document."""

    __tablename__ = "document_approvals"

    __table_args__ = (
        UniqueConstraint(
            "document_type", "document_id", "user_id",
            name="uq_document_approval_user",
        ),
        Index("idx_document_approval_document", "document_type", "document_id"),
    )

    document_type: Mapped[str] = mapped_column(String(50), nullable=False)
    document_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    approved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    user = relationship("User")

    def __repr__(self) -> str:
        return (
            f"<DocumentApproval {self.document_type}:{self.document_id} "
            f"by {self.user_id}>"
        )
