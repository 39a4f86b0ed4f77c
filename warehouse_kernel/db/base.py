"""
Module: warehouse_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention, the type annotation map for consistent
    column types, and the TrackedBase mixin for row timestamps.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  ALL model files import from here.  This module MUST NOT import
    from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - UUID primary keys: every model inherits a uuid4-generated primary key.
    - Timestamps: TrackedBase provides created_at (used as the "earliest
      created" ordering key by the shelf allocator) and updated_at.

Failure modes:
    - IntegrityError if a model attempts to INSERT a duplicate UUID.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Timezone-aware UTC now, used as the Python-side column default."""
    return datetime.now(UTC)


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Contract:
        Transparently converts between Python UUID objects and their
        36-character string representation.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
        - cache_ok=True enables SQLAlchemy statement caching.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - Decimal maps to Numeric(18, 4) -- prices on purchase order lines.
        - datetime maps to DateTime(timezone=True).
        - int maps to Integer -- quantities and stock counts.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 4),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: Integer,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with row timestamps.

    Guarantees:
        - created_at is set on INSERT (Python-side UTC now, server NOW() as
          fallback for raw SQL inserts) and never changes.
        - updated_at is set on INSERT and refreshed on every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


UUID = PyUUID
