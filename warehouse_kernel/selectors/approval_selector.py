"""
Module: warehouse_kernel.selectors.approval_selector
Responsibility: Read-only approval summaries for purchase and delivery orders.
Architecture position: Kernel > Selectors.  Read-only.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from warehouse_kernel.domain.approval import (
    DEFAULT_APPROVAL_QUORUM,
    ApprovalProgress,
    approval_progress,
)
from warehouse_kernel.models.approval import DocumentApproval
from warehouse_kernel.models.user import User
from warehouse_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ApproverInfo:
    sequence: int
    user_id: UUID
    email: str
    role: str
    approved_at: datetime


@dataclass(frozen=True)
class ApprovalSummary:
    """Approval state of one document."""

    document_type: str
    document_id: UUID
    total: int
    required: int
    remaining: int
    approval_status: ApprovalProgress
    approvers: tuple[ApproverInfo, ...]


class ApprovalSelector(BaseSelector[DocumentApproval]):
    """Summarises who approved a document and how many approvals remain."""

    def __init__(self, session, quorum: int = DEFAULT_APPROVAL_QUORUM):
        super().__init__(session)
        self._quorum = quorum

    def summary(self, document_type: str, document_id: UUID) -> ApprovalSummary:
        rows = self.session.execute(
            select(DocumentApproval, User)
            .join(User, User.id == DocumentApproval.user_id)
            .where(
                DocumentApproval.document_type == document_type,
                DocumentApproval.document_id == document_id,
            )
            .order_by(DocumentApproval.approved_at, DocumentApproval.id)
        ).all()

        approvers = tuple(
            ApproverInfo(
                sequence=index,
                user_id=user.id,
                email=user.email,
                role=user.role,
                approved_at=approval.approved_at,
            )
            for index, (approval, user) in enumerate(rows, start=1)
        )
        total = len(approvers)
        return ApprovalSummary(
            document_type=document_type,
            document_id=document_id,
            total=total,
            required=self._quorum,
            remaining=max(0, self._quorum - total),
            approval_status=approval_progress(total, self._quorum),
            approvers=approvers,
        )
