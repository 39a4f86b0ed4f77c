"""
Tests for SequenceService and DocumentNumberService.

Validates:
- Strict monotonicity over 100 allocations
- Independent counters per document type
- Seeding a missing counter from the latest stored document number
- Number parsing and formatting
"""

import pytest

from warehouse_kernel.models.material_request import MaterialRequest
from warehouse_kernel.services.sequence_service import (
    DocumentNumberService,
    DocumentType,
    SequenceService,
    format_document_number,
    parse_document_number,
)


class TestSequenceService:

    def test_starts_at_one(self, session):
        assert SequenceService(session).next_value("test_seq") == 1

    def test_hundred_values_strictly_increase(self, session):
        service = SequenceService(session)
        values = [service.next_value("test_seq") for _ in range(100)]
        assert values == list(range(1, 101))

    def test_counters_are_independent(self, session):
        service = SequenceService(session)
        service.next_value("a")
        service.next_value("a")
        assert service.next_value("b") == 1
        assert service.current_value("a") == 2

    def test_seed_is_used_only_for_a_missing_counter(self, session):
        service = SequenceService(session)
        calls = []

        def seed():
            calls.append(1)
            return 41

        assert service.next_value("seeded", seed=seed) == 42
        assert service.next_value("seeded", seed=seed) == 43
        assert len(calls) == 1

    def test_current_value_of_unknown_sequence(self, session):
        assert SequenceService(session).current_value("missing") is None

    def test_reset(self, session):
        service = SequenceService(session)
        service.next_value("r")
        service.reset("r", 10)
        assert service.next_value("r") == 11


class TestDocumentNumberService:

    def test_hundred_purchase_order_numbers(self, session):
        numbers = DocumentNumberService(session)
        issued = [numbers.next_document_number(DocumentType.PURCHASE_ORDER) for _ in range(100)]
        assert issued[0] == "PO-001"
        assert issued[98] == "PO-099"
        assert issued[99] == "PO-100"
        assert len(set(issued)) == 100

    def test_each_type_has_its_own_prefix_and_counter(self, session):
        numbers = DocumentNumberService(session)
        assert numbers.next_document_number(DocumentType.MATERIAL_REQUEST) == "MR-001"
        assert numbers.next_document_number(DocumentType.MATERIAL_REQUEST) == "MR-002"
        assert numbers.next_document_number(DocumentType.PURCHASE_ORDER) == "PO-001"
        assert numbers.next_document_number(DocumentType.DELIVERY_ORDER) == "DO-001"
        assert numbers.next_document_number(DocumentType.INCOMING_GOOD_RECEIPT) == "IGR-001"

    def test_accepts_the_counter_name(self, session):
        assert DocumentNumberService(session).next_document_number("delivery_order") == "DO-001"

    def test_custom_prefix_and_width(self, session):
        numbers = DocumentNumberService(
            session, prefixes={DocumentType.PURCHASE_ORDER: "WPO"}, width=5,
        )
        assert numbers.next_document_number(DocumentType.PURCHASE_ORDER) == "WPO-00001"
        assert numbers.next_document_number(DocumentType.MATERIAL_REQUEST) == "MR-00001"

    def test_seeds_from_latest_existing_document(self, session, requester, site):
        session.add(MaterialRequest(
            no_mr="MR-041", status="requested", location_id=site.id, created_by_id=requester.id,
        ))
        session.flush()
        numbers = DocumentNumberService(session)
        assert numbers.next_document_number(DocumentType.MATERIAL_REQUEST) == "MR-042"

    def test_unparseable_latest_number_seeds_zero(self, session, requester, site):
        session.add(MaterialRequest(
            no_mr="MR-LEGACY", status="requested", location_id=site.id, created_by_id=requester.id,
        ))
        session.flush()
        numbers = DocumentNumberService(session)
        assert numbers.next_document_number(DocumentType.MATERIAL_REQUEST) == "MR-001"


@pytest.mark.parametrize(
    "number, expected",
    [("PO-007", 7), ("IGR-120", 120), ("PO-X", 0), ("", 0), (None, 0), ("12", 12)],
)
def test_parse_document_number(number, expected):
    assert parse_document_number(number) == expected


def test_format_document_number_pads_and_grows():
    assert format_document_number("MR", 1) == "MR-001"
    assert format_document_number("MR", 1000) == "MR-1000"
    assert format_document_number("MR", 7, width=5) == "MR-00007"
