"""
Module: warehouse_kernel.models.user
Responsibility: ORM persistence for users, the identity and role source
    consulted by the approval quorum tracker.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - email is unique.
    - role is one of UserRole; only ADMIN may approve documents.
"""

from enum import Enum

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import TrackedBase


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class User(TrackedBase):
    """
    A person who raises requests and, when admin, approves documents.

    Credentials are managed outside the kernel; only identity and role
    are stored here.
    """

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        Index("idx_user_role", "role"),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.USER.value,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
