"""
Approval quorum -- pure evaluation of an approval count against a quorum.

Responsibility:
    Decides how many approvals remain and whether a new approval is the one
    that first reaches the quorum.  The service layer does the counting under
    a row lock; this module holds the rule.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - quorum_newly_reached is True for at most one approval per document:
      the count must be at or above the quorum AND the document must not
      already be in its quorum-reached state.
"""

from dataclasses import dataclass
from enum import Enum

DEFAULT_APPROVAL_QUORUM = 4


class ApprovalProgress(str, Enum):
    """Summary state reported to callers."""

    PENDING = "pending"
    PARTIALLY_APPROVED = "partially_approved"
    APPROVED = "approved"


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of recording one approval."""

    count: int
    quorum: int
    quorum_newly_reached: bool

    def __post_init__(self) -> None:
        if self.quorum < 1:
            raise ValueError("quorum must be at least 1")
        if self.count < 0:
            raise ValueError("count cannot be negative")

    @property
    def remaining(self) -> int:
        return max(0, self.quorum - self.count)

    @property
    def quorum_reached(self) -> bool:
        return self.count >= self.quorum


def evaluate_quorum(count: int, quorum: int, already_reached: bool) -> ApprovalOutcome:
    """Build the outcome for a document that now has ``count`` approvals."""
    return ApprovalOutcome(
        count=count,
        quorum=quorum,
        quorum_newly_reached=count >= quorum and not already_reached,
    )


def approval_progress(count: int, quorum: int) -> ApprovalProgress:
    if count >= quorum:
        return ApprovalProgress.APPROVED
    if count > 0:
        return ApprovalProgress.PARTIALLY_APPROVED
    return ApprovalProgress.PENDING
