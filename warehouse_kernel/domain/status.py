"""
Status derivation -- parent status as a pure function of child statuses.

Responsibility:
    Computes the status of a material request from the statuses of its
    items.  Three vocabularies coexist (creation, update and purchase-order
    driven recomputation) plus the delivery coverage rule; each is an explicit
    enum so callers cannot mix literals from different contexts.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Deterministic and order-independent: every function looks only at the
      multiset of child statuses.
    - Empty input returns ``None``; the caller skips recomputation.
"""

from collections.abc import Collection, Iterable
from enum import Enum


class MaterialRequestItemStatus(str, Enum):
    """Lifecycle of a single material request line."""

    PENDING = "pending"
    PROSES = "proses"
    DONE = "done"


class CreationDerivedStatus(str, Enum):
    """Vocabulary used when a material request is first created."""

    REQUESTED = "requested"
    PARTIAL = "partial"
    DONE = "done"


class UpdateDerivedStatus(str, Enum):
    """Vocabulary used when a material request's items are replaced."""

    PENDING = "pending"
    PROSES = "proses"
    PARTIAL_DONE = "partial_done"
    DONE = "done"


class OrderDerivedStatus(str, Enum):
    """Vocabulary used when purchase order activity recomputes a request.

    The purchase order context spells partial completion with a space.
    """

    PENDING = "pending"
    PROSES = "proses"
    PARTIAL_DONE = "partial_done"
    PARTIAL_DONE_SPACED = "partial done"
    DONE = "done"


class DeliveryCoverageStatus(str, Enum):
    DONE = "done"
    PARTIAL_DONE = "partial_done"


class DerivationContext(str, Enum):
    MATERIAL_REQUEST = "material_request"
    PURCHASE_ORDER = "purchase_order"


def _normalize(child_statuses: Iterable[str]) -> list[str]:
    return [str(getattr(s, "value", s)) for s in child_statuses]


def derive_parent_status(
    child_statuses: Iterable[str],
    context: DerivationContext = DerivationContext.PURCHASE_ORDER,
) -> OrderDerivedStatus | None:
    """
    Recompute a material request after purchase order lines touched it.

    Precedence: all done -> done; some done -> partial done; some proses ->
    proses; all pending -> pending; anything else -> proses.
    """
    statuses = _normalize(child_statuses)
    if not statuses:
        return None

    done = MaterialRequestItemStatus.DONE.value
    if all(s == done for s in statuses):
        return OrderDerivedStatus.DONE
    if any(s == done for s in statuses):
        if context == DerivationContext.PURCHASE_ORDER:
            return OrderDerivedStatus.PARTIAL_DONE_SPACED
        return OrderDerivedStatus.PARTIAL_DONE
    if any(s == MaterialRequestItemStatus.PROSES.value for s in statuses):
        return OrderDerivedStatus.PROSES
    if all(s == MaterialRequestItemStatus.PENDING.value for s in statuses):
        return OrderDerivedStatus.PENDING
    return OrderDerivedStatus.PROSES


def derive_creation_status(child_statuses: Iterable[str]) -> CreationDerivedStatus | None:
    statuses = _normalize(child_statuses)
    if not statuses:
        return None
    if all(s == MaterialRequestItemStatus.DONE.value for s in statuses):
        return CreationDerivedStatus.DONE
    if all(s == MaterialRequestItemStatus.PENDING.value for s in statuses):
        return CreationDerivedStatus.REQUESTED
    return CreationDerivedStatus.PARTIAL


def derive_update_status(child_statuses: Iterable[str]) -> UpdateDerivedStatus | None:
    statuses = _normalize(child_statuses)
    if not statuses:
        return None
    if all(s == MaterialRequestItemStatus.PENDING.value for s in statuses):
        return UpdateDerivedStatus.PENDING
    if all(s == MaterialRequestItemStatus.DONE.value for s in statuses):
        return UpdateDerivedStatus.DONE
    if any(s == MaterialRequestItemStatus.DONE.value for s in statuses):
        return UpdateDerivedStatus.PARTIAL_DONE
    if any(s == MaterialRequestItemStatus.PROSES.value for s in statuses):
        return UpdateDerivedStatus.PROSES
    return UpdateDerivedStatus.PENDING


def derive_delivery_status(
    all_item_ids: Collection,
    covered_item_ids: Collection,
) -> DeliveryCoverageStatus | None:
    """
    Delivery coverage of a material request.

    ``covered_item_ids`` are the request item ids that appear on lines of
    approved delivery orders.
    """
    if not all_item_ids:
        return None
    covered = set(covered_item_ids)
    if all(item_id in covered for item_id in all_item_ids):
        return DeliveryCoverageStatus.DONE
    return DeliveryCoverageStatus.PARTIAL_DONE
