"""
warehouse_kernel.services.approval_service -- Approval quorum tracking.

Responsibility:
    Records distinct admin approvals against purchase orders and delivery
    orders and reports when the fixed quorum is reached.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Only users with role ``admin`` may approve.
    - Approval uniqueness: one approval per (document, user), checked in the
      service and backed by the UNIQUE constraint on document_approvals.
    - Quorum side effects fire once: ``quorum_newly_reached`` is only True
      when the caller reports the document was not already approved.  The
      caller must hold the document row lock while calling ``add_approval``.

Failure modes:
    - UserNotFoundError if the approver does not exist.
    - ForbiddenError if the approver is not an admin.
    - AlreadyApprovedError on a second approval by the same user.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from warehouse_kernel.domain.approval import (
    DEFAULT_APPROVAL_QUORUM,
    ApprovalOutcome,
    evaluate_quorum,
)
from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.exceptions import (
    AlreadyApprovedError,
    ForbiddenError,
    UserNotFoundError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.approval import DocumentApproval
from warehouse_kernel.models.user import User, UserRole

logger = get_logger("services.approval")


class ApprovalService:
    """Counts approvals per document against a quorum."""

    def __init__(
        self,
        session: Session,
        quorum: int = DEFAULT_APPROVAL_QUORUM,
        clock: Clock | None = None,
    ) -> None:
        if quorum < 1:
            raise ValueError("quorum must be at least 1")
        self._session = session
        self._quorum = quorum
        self._clock = clock or SystemClock()

    @property
    def quorum(self) -> int:
        return self._quorum

    def add_approval(
        self,
        document_type: str,
        document_id: UUID,
        user_id: UUID,
        already_reached: bool = False,
    ) -> ApprovalOutcome:
        """Record ``user_id``'s approval of a document.

        Args:
            document_type: ``purchase_order`` or ``delivery_order``.
            document_id: Id of the (already locked) document.
            user_id: Approving user.
            already_reached: True when the document is already in its
                quorum-reached state (e.g. a purchase order that is
                ``approved``); suppresses ``quorum_newly_reached``.
        """
        user = self._session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        if user.role != UserRole.ADMIN.value:
            logger.warning(
                "approval_forbidden",
                extra={
                    "document_type": document_type,
                    "document_id": str(document_id),
                    "user_id": str(user_id),
                    "role": user.role,
                },
            )
            raise ForbiddenError(str(user_id), user.role)

        existing = self._session.execute(
            select(DocumentApproval.id).where(
                DocumentApproval.document_type == document_type,
                DocumentApproval.document_id == document_id,
                DocumentApproval.user_id == user_id,
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise AlreadyApprovedError(document_type, str(document_id), str(user_id))

        savepoint = self._session.begin_nested()
        try:
            self._session.add(
                DocumentApproval(
                    document_type=document_type,
                    document_id=document_id,
                    user_id=user_id,
                    approved_at=self._clock.now(),
                )
            )
            self._session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            raise AlreadyApprovedError(
                document_type, str(document_id), str(user_id),
            ) from exc

        count = self.count_approvals(document_type, document_id)
        outcome = evaluate_quorum(count, self._quorum, already_reached)

        logger.info(
            "approval_recorded",
            extra={
                "document_type": document_type,
                "document_id": str(document_id),
                "user_id": str(user_id),
                "count": outcome.count,
                "quorum": outcome.quorum,
                "quorum_newly_reached": outcome.quorum_newly_reached,
            },
        )
        return outcome

    def count_approvals(self, document_type: str, document_id: UUID) -> int:
        return self._session.execute(
            select(func.count(DocumentApproval.id)).where(
                DocumentApproval.document_type == document_type,
                DocumentApproval.document_id == document_id,
            )
        ).scalar_one()

    def clear_approvals(self, document_type: str, document_id: UUID) -> int:
        """Remove every approval of a document.  Returns the number removed."""
        result = self._session.execute(
            delete(DocumentApproval).where(
                DocumentApproval.document_type == document_type,
                DocumentApproval.document_id == document_id,
            )
        )
        if result.rowcount:
            logger.info(
                "approvals_cleared",
                extra={
                    "document_type": document_type,
                    "document_id": str(document_id),
                    "removed": result.rowcount,
                },
            )
        return result.rowcount
