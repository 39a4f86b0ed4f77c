"""Kernel services: sequence numbers, approval quorum and shelf allocation."""

from warehouse_kernel.services.approval_service import ApprovalService
from warehouse_kernel.services.sequence_service import (
    DocumentNumberService,
    DocumentType,
    SequenceService,
)
from warehouse_kernel.services.shelf_allocator import ShelfAllocator

__all__ = [
    "ApprovalService",
    "DocumentNumberService",
    "DocumentType",
    "SequenceService",
    "ShelfAllocator",
]
