"""
Tests for ApprovalService.

Validates:
- Only admins may approve
- A user approves a document at most once
- The quorum is reported as newly reached exactly once
- Approvals are scoped per document
"""

from uuid import uuid4

import pytest

from warehouse_kernel.exceptions import (
    AlreadyApprovedError,
    ForbiddenError,
    UserNotFoundError,
)
from warehouse_kernel.services.approval_service import ApprovalService

PO = "purchase_order"


@pytest.fixture
def approvals(session, deterministic_clock):
    return ApprovalService(session, quorum=4, clock=deterministic_clock)


def test_first_approval_counts_one(approvals, admin):
    document_id = uuid4()
    outcome = approvals.add_approval(PO, document_id, admin.id)
    assert outcome.count == 1
    assert outcome.remaining == 3
    assert not outcome.quorum_newly_reached


def test_non_admin_is_forbidden(approvals, requester):
    with pytest.raises(ForbiddenError) as exc_info:
        approvals.add_approval(PO, uuid4(), requester.id)
    assert exc_info.value.role == "user"
    assert exc_info.value.code == "FORBIDDEN"


def test_unknown_user(approvals):
    with pytest.raises(UserNotFoundError):
        approvals.add_approval(PO, uuid4(), uuid4())


def test_second_approval_by_same_user_is_rejected(approvals, admin):
    document_id = uuid4()
    approvals.add_approval(PO, document_id, admin.id)
    with pytest.raises(AlreadyApprovedError):
        approvals.add_approval(PO, document_id, admin.id)
    assert approvals.count_approvals(PO, document_id) == 1


def test_quorum_newly_reached_once(approvals, admins, session):
    from warehouse_kernel.models.user import User

    fifth = User(email="admin5@example.com", role="admin")
    session.add(fifth)
    session.flush()

    document_id = uuid4()
    reached = False
    flags = []
    for user in [*admins, fifth]:
        outcome = approvals.add_approval(PO, document_id, user.id, already_reached=reached)
        flags.append(outcome.quorum_newly_reached)
        reached = reached or outcome.quorum_newly_reached
    assert flags == [False, False, False, True, False]


def test_same_user_may_approve_different_documents(approvals, admin):
    approvals.add_approval(PO, uuid4(), admin.id)
    outcome = approvals.add_approval("delivery_order", uuid4(), admin.id)
    assert outcome.count == 1


def test_clear_approvals(approvals, admins):
    document_id = uuid4()
    for user in admins[:2]:
        approvals.add_approval(PO, document_id, user.id)
    assert approvals.clear_approvals(PO, document_id) == 2
    assert approvals.count_approvals(PO, document_id) == 0


def test_quorum_must_be_positive(session):
    with pytest.raises(ValueError):
        ApprovalService(session, quorum=0)


def test_approval_is_logged(approvals, admin, captured_logs):
    approvals.add_approval(PO, uuid4(), admin.id)
    records = [r for r in captured_logs() if r["message"] == "approval_recorded"]
    assert len(records) == 1
    assert records[0]["user_id"] == str(admin.id)
    assert records[0]["count"] == 1
