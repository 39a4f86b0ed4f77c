"""Read-only selectors."""

from warehouse_kernel.selectors.approval_selector import (
    ApprovalSelector,
    ApprovalSummary,
    ApproverInfo,
)
from warehouse_kernel.selectors.document_selector import DocumentSelector

__all__ = [
    "ApprovalSelector",
    "ApprovalSummary",
    "ApproverInfo",
    "DocumentSelector",
]
