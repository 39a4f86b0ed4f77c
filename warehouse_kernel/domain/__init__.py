"""
Pure domain layer.

Status derivation, workflow value objects and the clock abstraction.  Nothing
here touches the ORM or the database.
"""

from warehouse_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from warehouse_kernel.domain.status import (
    CreationDerivedStatus,
    DeliveryCoverageStatus,
    DerivationContext,
    MaterialRequestItemStatus,
    OrderDerivedStatus,
    UpdateDerivedStatus,
    derive_creation_status,
    derive_delivery_status,
    derive_parent_status,
    derive_update_status,
)
from warehouse_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
    # Status derivation
    "MaterialRequestItemStatus",
    "CreationDerivedStatus",
    "UpdateDerivedStatus",
    "OrderDerivedStatus",
    "DeliveryCoverageStatus",
    "DerivationContext",
    "derive_parent_status",
    "derive_creation_status",
    "derive_update_status",
    "derive_delivery_status",
    # Workflow
    "Guard",
    "Transition",
    "Workflow",
]
