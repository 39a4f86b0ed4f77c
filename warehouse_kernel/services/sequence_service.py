"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing sequence numbers per document type and
    formats them as document numbers (``MR-001``, ``PO-001``, ``DO-001``,
    ``IGR-001``).  Uses a dedicated counter table with row-level locking
    (``SELECT ... FOR UPDATE``) so concurrent creations never receive the
    same number.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by the procurement orchestrator inside its creating transaction.

Invariants enforced:
    - The locked counter row is the sole source of truth for the next value.
      Reading the latest document and adding one is used only once, to seed
      a counter that does not exist yet.
    - Transactional: the increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry).
"""

from collections.abc import Callable, Mapping
from enum import Enum

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from warehouse_kernel.db.base import Base
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.delivery_order import DeliveryOrder
from warehouse_kernel.models.material_request import MaterialRequest
from warehouse_kernel.models.purchase_order import PurchaseOrder
from warehouse_kernel.models.receipt import IncomingGoodReceipt

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    Row-level locking ensures monotonicity under concurrency.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Guarantees:
        - Strictly monotonic sequences via locked counter row.
        - Gap-safe under normal operation; a rolled-back transaction does
          not consume its value.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session):
        self._session = session

    def _lock_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(
        self,
        sequence_name: str,
        seed: Callable[[], int] | None = None,
    ) -> int:
        """
        Get the next value for a named sequence.

        Preconditions:
            - The caller is within an active database transaction.

        Postconditions:
            - Returns an integer strictly greater than any previously
              returned value for this sequence name.
            - The counter row is locked until the transaction completes.

        Args:
            sequence_name: Name of the sequence.
            seed: Called once, when the counter does not exist yet, to get
                the value the new counter starts after.
        """
        counter = self._lock_counter(sequence_name)

        if counter is None:
            start_after = seed() if seed is not None else 0
            # Savepoint so a lost creation race does not roll back the caller
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(
                    name=sequence_name,
                    current_value=start_after + 1,
                )
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={
                        "sequence_name": sequence_name,
                        "value": counter.current_value,
                        "seeded_from": start_after,
                    },
                )
                return counter.current_value
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._lock_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Reset a sequence to a specific value.

        WARNING: This should only be used in tests or migration scripts.
        """
        counter = self._lock_counter(sequence_name)

        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=value)
            self._session.add(counter)
        else:
            counter.current_value = value

        self._session.flush()


class DocumentType(str, Enum):
    """Numbered document types.  The value is the counter name."""

    MATERIAL_REQUEST = "material_request"
    PURCHASE_ORDER = "purchase_order"
    DELIVERY_ORDER = "delivery_order"
    INCOMING_GOOD_RECEIPT = "incoming_good_receipt"


DEFAULT_PREFIXES: dict[DocumentType, str] = {
    DocumentType.MATERIAL_REQUEST: "MR",
    DocumentType.PURCHASE_ORDER: "PO",
    DocumentType.DELIVERY_ORDER: "DO",
    DocumentType.INCOMING_GOOD_RECEIPT: "IGR",
}

# Number column of each document table, used to seed a missing counter
_NUMBER_COLUMNS = {
    DocumentType.MATERIAL_REQUEST: MaterialRequest.no_mr,
    DocumentType.PURCHASE_ORDER: PurchaseOrder.no_po,
    DocumentType.DELIVERY_ORDER: DeliveryOrder.no_do,
    DocumentType.INCOMING_GOOD_RECEIPT: IncomingGoodReceipt.no_igr,
}


def parse_document_number(number: str | None) -> int:
    """
    Numeric suffix of a document number, ``0`` when it cannot be parsed.

    ``parse_document_number("PO-007") == 7``; ``parse_document_number("PO-X") == 0``.
    """
    if not number:
        return 0
    try:
        return int(number.rsplit("-", 1)[-1])
    except ValueError:
        return 0


def format_document_number(prefix: str, value: int, width: int = 3) -> str:
    return f"{prefix}-{value:0{width}d}"


class DocumentNumberService:
    """
    Allocates human-readable document numbers.

    Contract:
        ``next_document_number(DocumentType.PURCHASE_ORDER)`` returns
        ``PO-001`` on an empty store and ``PO-<N+1>`` afterwards.  A counter
        created for a store that already holds documents starts after the
        numerically parsed suffix of the latest number; an unparseable suffix
        seeds 0, so ``<PREFIX>-001`` is issued again.
    """

    def __init__(
        self,
        session: Session,
        prefixes: Mapping[DocumentType, str] | None = None,
        width: int = 3,
    ):
        self._session = session
        self._sequences = SequenceService(session)
        self._prefixes = {**DEFAULT_PREFIXES, **(prefixes or {})}
        self._width = width

    def _latest_number(self, document_type: DocumentType) -> int:
        column = _NUMBER_COLUMNS[document_type]
        latest = self._session.execute(
            select(column).order_by(column.desc()).limit(1)
        ).scalar_one_or_none()
        return parse_document_number(latest)

    def next_document_number(self, document_type: DocumentType) -> str:
        document_type = DocumentType(document_type)
        value = self._sequences.next_value(
            document_type.value,
            seed=lambda: self._latest_number(document_type),
        )
        number = format_document_number(
            self._prefixes[document_type], value, self._width,
        )
        logger.info(
            "document_number_assigned",
            extra={"document_type": document_type.value, "number": number},
        )
        return number
