"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    service in the kernel layer.  Concrete services receive a SQLAlchemy
    ``Session`` and use ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services.  The orchestrator facade in
    ``warehouse_modules.procurement.service`` owns commit and rollback.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from warehouse_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``; the caller controls transaction boundaries
          so a multi-step workflow stays atomic.
    """

    def __init__(self, session: Session):
        self.session = session
