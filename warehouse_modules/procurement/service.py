"""
Procurement Module Service (``warehouse_modules.procurement.service``).

Responsibility
--------------
Orchestrates the procurement workflow (material requests, purchase
orders, approvals, incoming good receipts and delivery orders) by
composing the kernel services: ``DocumentNumberService`` for document
numbers, ``ApprovalService`` for the approval quorum, ``ShelfAllocator``
for receipt storage, and the pure status derivation functions.

Architecture position
---------------------
**Modules layer** -- ``ProcurementService`` is the sole public entry point
for procurement operations.  Kernel services flush; this facade owns the
transaction.

Invariants enforced
-------------------
* Each public method owns the transaction boundary: ``commit`` on success,
  ``rollback`` and re-raise on any exception.  No partial writes survive a
  failed operation.
* A material request's status is recomputed from its items whenever a
  purchase order or delivery order touches them; it is never set directly.
* Approvals lock the document row (``SELECT ... FOR UPDATE``) before
  counting, so quorum side effects (purchase order approval and receipt
  creation, delivery order approval) run exactly once.
* A purchase order with an incoming good receipt is immutable.

Failure modes
-------------
* Domain failures raise ``WarehouseKernelError`` subclasses after rollback;
  ``WorkflowResult.capture`` converts them for the request layer.
* Unexpected exceptions roll back and propagate unchanged.

Usage::

    service = ProcurementService(session, config=ProcurementConfig.with_defaults())
    mr = service.create_material_request(MaterialRequestInput(
        created_by_id=user.id,
        location_id=site.id,
        items=(MaterialRequestLine(item_id=bolt.id, quantity=10, duration=3),),
    ))
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.domain.status import (
    DerivationContext,
    MaterialRequestItemStatus,
    derive_creation_status,
    derive_delivery_status,
    derive_parent_status,
    derive_update_status,
)
from warehouse_kernel.exceptions import (
    DeliveryItemsNotProcuredError,
    DeliveryOrderNotFoundError,
    InvalidPurchaseOrderTransitionError,
    InvalidReceiptTransitionError,
    ItemsNotFoundError,
    LocationNotFoundError,
    MaterialRequestCancelledError,
    MaterialRequestItemAlreadyOrderedError,
    MaterialRequestItemMismatchError,
    MaterialRequestItemNotFoundError,
    MaterialRequestItemNotPendingError,
    MaterialRequestNotFoundError,
    MaterialRequestReferencedError,
    PurchaseOrderItemNotFoundError,
    PurchaseOrderNotFoundError,
    ReceiptItemNotFoundError,
    ReceiptNotFoundError,
    ReceivingStartedError,
    UserNotFoundError,
    ValidationError,
)
from warehouse_kernel.logging_config import LogContext, get_logger
from warehouse_kernel.models.approval import ApprovableDocumentType
from warehouse_kernel.models.catalog import Item, Location, Shelf
from warehouse_kernel.models.delivery_order import (
    DeliveryOrder,
    DeliveryOrderItem,
    DeliveryOrderStatus,
)
from warehouse_kernel.models.material_request import (
    MaterialRequest,
    MaterialRequestItem,
    MaterialRequestStatus,
)
from warehouse_kernel.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderStatus,
)
from warehouse_kernel.models.receipt import (
    IncomingGoodReceipt,
    IncomingGoodReceiptItem,
    ReceiptItemStatus,
)
from warehouse_kernel.models.user import User
from warehouse_kernel.selectors.approval_selector import ApprovalSelector, ApprovalSummary
from warehouse_kernel.services.approval_service import ApprovalService
from warehouse_kernel.services.sequence_service import DocumentNumberService, DocumentType
from warehouse_kernel.services.shelf_allocator import ShelfAllocator
from warehouse_modules.procurement.config import ProcurementConfig
from warehouse_modules.procurement.models import (
    ApprovalResult,
    DeliveryOrderInput,
    MaterialRequestInput,
    MaterialRequestUpdate,
    PurchaseOrderInput,
    PurchaseOrderLine,
    PurchaseOrderUpdate,
    ReceiptItemStatusChange,
)
from warehouse_modules.procurement.workflows import (
    DELIVERY_ORDER_WORKFLOW,
    PURCHASE_ORDER_WORKFLOW,
    RECEIPT_ITEM_WORKFLOW,
)

logger = get_logger("modules.procurement.service")

_PENDING = MaterialRequestItemStatus.PENDING.value
_PROSES = MaterialRequestItemStatus.PROSES.value


def _unique(values: Iterable[Any]) -> list[Any]:
    """Deduplicate, keeping first-seen order."""
    return list(dict.fromkeys(values))


class ProcurementService:
    """
    Orchestrates procurement operations through the kernel services.

    Contract
    --------
    * Every mutating method runs in one transaction and returns the affected
      ORM entity or a frozen result dataclass.
    * Failures raise typed ``WarehouseKernelError`` subclasses after the
      session has been rolled back.

    Guarantees
    ----------
    * Session is committed only when the whole operation succeeds.
    * Clock is injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT authenticate callers; ``approver_id``/``created_by_id`` are
      trusted identities resolved against the ``users`` table.
    """

    def __init__(
        self,
        session: Session,
        config: ProcurementConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config or ProcurementConfig.with_defaults()
        self._clock = clock or SystemClock()

        self._numbers = DocumentNumberService(
            session,
            prefixes=self._config.prefixes,
            width=self._config.number_width,
        )
        self._approvals = ApprovalService(
            session,
            quorum=self._config.approval_quorum,
            clock=self._clock,
        )
        self._shelves = ShelfAllocator(session)

    @contextmanager
    def _transaction(
        self,
        operation: str,
        document_type: str,
        document_id: UUID | None = None,
        actor_id: UUID | None = None,
        **context: Any,
    ) -> Iterator[None]:
        fields = {"operation": operation, **{k: str(v) for k, v in context.items()}}
        with LogContext.bind(
            actor_id=actor_id,
            document_type=document_type,
            document_id=document_id,
        ):
            logger.info("procurement_operation_started", extra=fields)
            try:
                yield
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning("procurement_operation_rolled_back", extra=fields, exc_info=True)
                raise
            logger.info("procurement_operation_committed", extra=fields)

    # =========================================================================
    # Lookups
    # =========================================================================

    def _require_user(self, user_id: UUID) -> User:
        user = self._session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    def _require_location(self, location_id: UUID) -> Location:
        location = self._session.get(Location, location_id)
        if location is None:
            raise LocationNotFoundError(str(location_id))
        return location

    def _require_items(self, item_ids: Iterable[UUID]) -> None:
        wanted = _unique(item_ids)
        found = set(
            self._session.execute(select(Item.id).where(Item.id.in_(wanted))).scalars()
        )
        missing = [str(item_id) for item_id in wanted if item_id not in found]
        if missing:
            raise ItemsNotFoundError(missing)

    def _require_material_request(self, material_request_id: UUID) -> MaterialRequest:
        mr = self._session.get(MaterialRequest, material_request_id)
        if mr is None:
            raise MaterialRequestNotFoundError(str(material_request_id))
        return mr

    def _lock(self, model: type, entity_id: UUID, not_found: type[Exception]):
        """Load a row under ``SELECT ... FOR UPDATE`` or raise ``not_found``."""
        entity = self._session.execute(
            select(model)
            .where(model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if entity is None:
            raise not_found(str(entity_id))
        return entity

    def _lock_mr_item(self, material_request_item_id: UUID) -> MaterialRequestItem:
        mr_item = self._session.execute(
            select(MaterialRequestItem)
            .where(MaterialRequestItem.id == material_request_item_id)
            .with_for_update()
        ).scalar_one_or_none()
        if mr_item is None:
            raise MaterialRequestItemNotFoundError(str(material_request_item_id))
        return mr_item

    def _check_orderable(
        self,
        mr_item: MaterialRequestItem,
        exclude_line_id: UUID | None = None,
    ) -> None:
        if mr_item.status != _PENDING:
            raise MaterialRequestItemNotPendingError(str(mr_item.id), mr_item.status)
        query = select(PurchaseOrderItem.purchase_order_id).where(
            PurchaseOrderItem.material_request_item_id == mr_item.id,
        )
        if exclude_line_id is not None:
            query = query.where(PurchaseOrderItem.id != exclude_line_id)
        holder = self._session.execute(query.limit(1)).scalar_one_or_none()
        if holder is not None:
            raise MaterialRequestItemAlreadyOrderedError(str(mr_item.id), str(holder))

    def _linked_request_ids(self, purchase_order_id: UUID) -> list[UUID]:
        return list(
            self._session.execute(
                select(MaterialRequest.id)
                .where(MaterialRequest.purchase_order_id == purchase_order_id)
                .order_by(MaterialRequest.created_at)
            ).scalars()
        )

    def _requests_on_lines(self, po: PurchaseOrder) -> set[UUID]:
        """Material requests owning the items on ``po``'s lines."""
        return set(
            self._session.execute(
                select(MaterialRequestItem.material_request_id)
                .join(
                    PurchaseOrderItem,
                    PurchaseOrderItem.material_request_item_id == MaterialRequestItem.id,
                )
                .where(PurchaseOrderItem.purchase_order_id == po.id)
            ).scalars()
        )

    def _check_edit_transition(self, po: PurchaseOrder, requested: str) -> None:
        transition = PURCHASE_ORDER_WORKFLOW.find_transition(po.status, requested)
        if transition is None or transition.requires_approval:
            raise InvalidPurchaseOrderTransitionError(str(po.id), po.status, requested)
        logger.debug(
            "purchase_order_transition_checked",
            extra={
                "purchase_order_id": str(po.id),
                "from_status": po.status,
                "to_status": requested,
                "action": transition.action,
                "guard": transition.guard.name if transition.guard else None,
            },
        )

    def _receipt_for(self, purchase_order_id: UUID) -> IncomingGoodReceipt | None:
        return self._session.execute(
            select(IncomingGoodReceipt).where(
                IncomingGoodReceipt.purchase_order_id == purchase_order_id,
            )
        ).scalar_one_or_none()

    # =========================================================================
    # Status recomputation
    # =========================================================================

    def _recompute_from_orders(self, material_request_id: UUID) -> MaterialRequest:
        mr = self._require_material_request(material_request_id)
        statuses = self._session.execute(
            select(MaterialRequestItem.status).where(
                MaterialRequestItem.material_request_id == material_request_id,
            )
        ).scalars().all()
        derived = derive_parent_status(statuses, DerivationContext.PURCHASE_ORDER)
        if derived is not None and mr.status != derived.value:
            logger.info(
                "material_request_status_derived",
                extra={
                    "material_request_id": str(mr.id),
                    "no_mr": mr.no_mr,
                    "from_status": mr.status,
                    "to_status": derived.value,
                },
            )
            mr.status = derived.value
        return mr

    def _recompute_delivery_coverage(self, material_request_id: UUID) -> MaterialRequest:
        mr = self._require_material_request(material_request_id)
        all_item_ids = self._session.execute(
            select(MaterialRequestItem.id).where(
                MaterialRequestItem.material_request_id == material_request_id,
            )
        ).scalars().all()
        covered = self._session.execute(
            select(DeliveryOrderItem.material_request_item_id)
            .join(DeliveryOrder, DeliveryOrder.id == DeliveryOrderItem.delivery_order_id)
            .where(
                DeliveryOrder.material_request_id == material_request_id,
                DeliveryOrder.status.in_(
                    (DeliveryOrderStatus.APPROVED.value, DeliveryOrderStatus.DONE.value)
                ),
            )
        ).scalars().all()
        derived = derive_delivery_status(all_item_ids, covered)
        if derived is not None:
            logger.info(
                "material_request_delivery_status_derived",
                extra={
                    "material_request_id": str(mr.id),
                    "no_mr": mr.no_mr,
                    "from_status": mr.status,
                    "to_status": derived.value,
                },
            )
            mr.status = derived.value
        return mr

    # =========================================================================
    # Material Requests
    # =========================================================================

    def create_material_request(self, data: MaterialRequestInput) -> MaterialRequest:
        """Create a material request; every item starts ``pending``."""
        with self._transaction(
            "create_material_request",
            DocumentType.MATERIAL_REQUEST.value,
            actor_id=data.created_by_id,
            line_count=len(data.items),
        ):
            self._require_user(data.created_by_id)
            self._require_location(data.location_id)
            self._require_items(line.item_id for line in data.items)

            statuses = [_PENDING] * len(data.items)
            mr = MaterialRequest(
                no_mr=self._numbers.next_document_number(DocumentType.MATERIAL_REQUEST),
                status=derive_creation_status(statuses).value,
                remarks=data.remarks,
                location_id=data.location_id,
                created_by_id=data.created_by_id,
            )
            mr.items = [
                MaterialRequestItem(
                    item_id=line.item_id,
                    quantity=line.quantity,
                    duration=line.duration,
                    unit=line.unit,
                    notes=line.notes,
                    status=_PENDING,
                )
                for line in data.items
            ]
            self._session.add(mr)
            self._session.flush()

            logger.info(
                "material_request_created",
                extra={
                    "material_request_id": str(mr.id),
                    "no_mr": mr.no_mr,
                    "status": mr.status,
                    "line_count": len(mr.items),
                },
            )
        return mr

    def _assert_not_referenced(self, mr: MaterialRequest) -> None:
        item_ids = select(MaterialRequestItem.id).where(
            MaterialRequestItem.material_request_id == mr.id,
        )
        po_id = self._session.execute(
            select(PurchaseOrderItem.purchase_order_id)
            .where(PurchaseOrderItem.material_request_item_id.in_(item_ids))
            .limit(1)
        ).scalar_one_or_none()
        if po_id is not None:
            raise MaterialRequestReferencedError(str(mr.id), f"purchase order {po_id}")

        do_id = self._session.execute(
            select(DeliveryOrder.id)
            .where(DeliveryOrder.material_request_id == mr.id)
            .limit(1)
        ).scalar_one_or_none()
        if do_id is None:
            do_id = self._session.execute(
                select(DeliveryOrderItem.delivery_order_id)
                .where(DeliveryOrderItem.material_request_item_id.in_(item_ids))
                .limit(1)
            ).scalar_one_or_none()
        if do_id is not None:
            raise MaterialRequestReferencedError(str(mr.id), f"delivery order {do_id}")

    def update_material_request(
        self,
        material_request_id: UUID,
        data: MaterialRequestUpdate,
    ) -> MaterialRequest:
        """
        Replace the item set of a material request.

        The status is derived from the submitted item statuses (missing
        statuses count as ``pending``).  ``no_mr`` never changes.
        """
        with self._transaction(
            "update_material_request",
            DocumentType.MATERIAL_REQUEST.value,
            document_id=material_request_id,
            line_count=len(data.items),
        ):
            mr = self._lock(MaterialRequest, material_request_id, MaterialRequestNotFoundError)
            self._assert_not_referenced(mr)
            if data.location_id is not None:
                self._require_location(data.location_id)
                mr.location_id = data.location_id
            if data.remarks is not None:
                mr.remarks = data.remarks
            self._require_items(line.item_id for line in data.items)

            # delete-orphan removes the previous lines on flush
            mr.items.clear()
            self._session.flush()

            statuses = [line.status or _PENDING for line in data.items]
            mr.items.extend(
                MaterialRequestItem(
                    item_id=line.item_id,
                    quantity=line.quantity,
                    duration=line.duration,
                    unit=line.unit,
                    notes=line.notes,
                    status=status,
                )
                for line, status in zip(data.items, statuses)
            )
            mr.status = derive_update_status(statuses).value
            self._session.flush()

            logger.info(
                "material_request_updated",
                extra={
                    "material_request_id": str(mr.id),
                    "no_mr": mr.no_mr,
                    "status": mr.status,
                    "line_count": len(statuses),
                },
            )
        return mr

    def delete_material_request(self, material_request_id: UUID) -> None:
        with self._transaction(
            "delete_material_request",
            DocumentType.MATERIAL_REQUEST.value,
            document_id=material_request_id,
        ):
            mr = self._lock(MaterialRequest, material_request_id, MaterialRequestNotFoundError)
            self._assert_not_referenced(mr)
            no_mr = mr.no_mr
            self._session.delete(mr)
            self._session.flush()
            logger.info(
                "material_request_deleted",
                extra={"material_request_id": str(material_request_id), "no_mr": no_mr},
            )

    # =========================================================================
    # Purchase Orders
    # =========================================================================

    def _line_status(self, line: PurchaseOrderLine) -> str:
        return line.status or self._config.default_po_item_status

    def create_purchase_order(self, data: PurchaseOrderInput) -> PurchaseOrder:
        """
        Create a purchase order from pending material request items.

        Each line's material request item must be ``pending`` and not on any
        other purchase order line.  Lines in ``proses`` flip their item to
        ``proses``; every touched material request is recomputed and linked,
        listed-but-untouched requests are linked without a status change.
        """
        with self._transaction(
            "create_purchase_order",
            DocumentType.PURCHASE_ORDER.value,
            actor_id=data.created_by_id,
            line_count=len(data.items),
        ):
            self._require_user(data.created_by_id)
            for mr_id in data.material_request_ids:
                self._require_material_request(mr_id)

            po = PurchaseOrder(
                no_po=self._numbers.next_document_number(DocumentType.PURCHASE_ORDER),
                status=data.status or self._config.default_po_status,
                remarks=data.remarks,
                created_by_id=data.created_by_id,
            )
            self._session.add(po)
            self._session.flush()

            touched: dict[UUID, None] = {}
            for line in data.items:
                mr_item = self._lock_mr_item(line.material_request_item_id)
                self._check_orderable(mr_item)
                touched[mr_item.material_request_id] = None

                status = self._line_status(line)
                po.items.append(
                    PurchaseOrderItem(
                        material_request_item_id=mr_item.id,
                        supplier=line.supplier,
                        quantity=line.quantity,
                        price=line.price,
                        status=status,
                    )
                )
                if status == _PROSES:
                    mr_item.status = _PROSES
                self._session.flush()

            for mr_id in touched:
                mr = self._recompute_from_orders(mr_id)
                mr.purchase_order_id = po.id
            for mr_id in data.material_request_ids:
                if mr_id not in touched:
                    self._require_material_request(mr_id).purchase_order_id = po.id
            self._session.flush()

            logger.info(
                "purchase_order_created",
                extra={
                    "purchase_order_id": str(po.id),
                    "no_po": po.no_po,
                    "status": po.status,
                    "line_count": len(data.items),
                    "material_request_count": len(
                        _unique([*touched, *data.material_request_ids])
                    ),
                },
            )
        return po

    def update_purchase_order(
        self,
        purchase_order_id: UUID,
        data: PurchaseOrderUpdate,
    ) -> PurchaseOrder:
        """
        Update a purchase order until receiving starts.

        When ``items`` is given the line set is diffed against the stored
        lines: removed lines revert their material request item to
        ``pending``; a retargeted line reverts its old item before the new
        item is checked; new lines follow the creation rules.  Requests no
        longer referenced by any line are recomputed and unlinked.

        ``status`` must be an edit transition of ``PURCHASE_ORDER_WORKFLOW``;
        an approved order keeps its status.  ``material_request_ids`` links
        the listed requests and unlinks previously linked ones that have no
        items left on the order.
        """
        with self._transaction(
            "update_purchase_order",
            DocumentType.PURCHASE_ORDER.value,
            document_id=purchase_order_id,
        ):
            po = self._lock(PurchaseOrder, purchase_order_id, PurchaseOrderNotFoundError)
            receipt = self._receipt_for(po.id)
            if receipt is not None:
                raise ReceivingStartedError(str(po.id), receipt.no_igr)

            if data.status is not None and data.status != po.status:
                self._check_edit_transition(po, data.status)
            if data.material_request_ids is not None:
                for mr_id in data.material_request_ids:
                    self._require_material_request(mr_id)
            if data.status is not None:
                po.status = data.status
            if data.remarks is not None:
                po.remarks = data.remarks

            linked_before = self._linked_request_ids(po.id)
            if data.items is not None:
                self._replace_lines(po, data.items)

            if data.material_request_ids is not None:
                listed = set(data.material_request_ids)
                on_lines = self._requests_on_lines(po)
                for mr_id in linked_before:
                    if mr_id in listed or mr_id in on_lines:
                        continue
                    mr = self._require_material_request(mr_id)
                    if mr.purchase_order_id == po.id:
                        mr.purchase_order_id = None
                        logger.info(
                            "material_request_unlinked",
                            extra={"material_request_id": str(mr.id), "purchase_order_id": str(po.id)},
                        )
                for mr_id in data.material_request_ids:
                    self._require_material_request(mr_id).purchase_order_id = po.id
            self._session.flush()

            logger.info(
                "purchase_order_updated",
                extra={
                    "purchase_order_id": str(po.id),
                    "no_po": po.no_po,
                    "status": po.status,
                    "line_count": len(po.items),
                },
            )
        return po

    def _replace_lines(self, po: PurchaseOrder, lines: tuple[PurchaseOrderLine, ...]) -> None:
        previously_linked = self._linked_request_ids(po.id)
        existing = {line.id: line for line in po.items}
        submitted_ids = {line.id for line in lines if line.id is not None}
        for line_id in submitted_ids:
            if line_id not in existing:
                raise PurchaseOrderItemNotFoundError(str(line_id))

        reverted: dict[UUID, None] = {}

        for line_id, stored in existing.items():
            if line_id in submitted_ids:
                continue
            old_item = self._lock_mr_item(stored.material_request_item_id)
            old_item.status = _PENDING
            reverted[old_item.material_request_id] = None
            po.items.remove(stored)
            logger.debug(
                "purchase_order_line_removed",
                extra={"purchase_order_id": str(po.id), "line_id": str(line_id)},
            )
        self._session.flush()

        touched: dict[UUID, None] = {}
        for line in lines:
            mr_item = self._lock_mr_item(line.material_request_item_id)
            touched[mr_item.material_request_id] = None
            status = self._line_status(line)

            if line.id is not None:
                stored = existing[line.id]
                if stored.material_request_item_id != line.material_request_item_id:
                    # Old target is released before the new one is checked
                    old_item = self._lock_mr_item(stored.material_request_item_id)
                    old_item.status = _PENDING
                    reverted[old_item.material_request_id] = None
                    self._session.flush()
                    self._check_orderable(mr_item, exclude_line_id=stored.id)
                stored.material_request_item_id = mr_item.id
                stored.supplier = line.supplier
                stored.quantity = line.quantity
                stored.price = line.price
                stored.status = status
            else:
                self._check_orderable(mr_item)
                po.items.append(
                    PurchaseOrderItem(
                        material_request_item_id=mr_item.id,
                        supplier=line.supplier,
                        quantity=line.quantity,
                        price=line.price,
                        status=status,
                    )
                )
            if status == _PROSES:
                mr_item.status = _PROSES
            self._session.flush()

        for mr_id in touched:
            mr = self._recompute_from_orders(mr_id)
            mr.purchase_order_id = po.id

        for mr_id in _unique([*previously_linked, *reverted]):
            if mr_id in touched:
                continue
            mr = self._recompute_from_orders(mr_id)
            if mr.purchase_order_id == po.id:
                mr.purchase_order_id = None
                logger.info(
                    "material_request_unlinked",
                    extra={"material_request_id": str(mr.id), "purchase_order_id": str(po.id)},
                )
        self._session.flush()

    def delete_purchase_order(self, purchase_order_id: UUID) -> None:
        """
        Delete a purchase order and undo its effects.

        Receipt items, the receipt and the lines go first.  The items the
        lines referenced go back to ``pending``; their requests and the
        linked ones are unlinked, reset and recomputed.  Approvals are
        cleared, then the order is deleted.
        Shelf stock already received is not reversed.
        """
        with self._transaction(
            "delete_purchase_order",
            DocumentType.PURCHASE_ORDER.value,
            document_id=purchase_order_id,
        ):
            po = self._lock(PurchaseOrder, purchase_order_id, PurchaseOrderNotFoundError)
            no_po = po.no_po

            receipt = self._receipt_for(po.id)
            if receipt is not None:
                self._session.delete(receipt)
                self._session.flush()

            mr_item_ids = [line.material_request_item_id for line in po.items]
            linked = self._linked_request_ids(po.id)
            po.items.clear()
            self._session.flush()

            touched: dict[UUID, None] = {}
            for mr_item_id in mr_item_ids:
                mr_item = self._session.get(MaterialRequestItem, mr_item_id)
                if mr_item is not None:
                    mr_item.status = _PENDING
                    touched[mr_item.material_request_id] = None
            self._session.flush()

            for mr_id in _unique([*linked, *touched]):
                mr = self._require_material_request(mr_id)
                if mr.purchase_order_id == po.id:
                    mr.purchase_order_id = None
                mr.status = MaterialRequestStatus.PENDING.value
                # items still on other orders keep their request out of pending
                self._recompute_from_orders(mr_id)

            self._approvals.clear_approvals(ApprovableDocumentType.PURCHASE_ORDER.value, po.id)
            self._session.flush()

            self._session.delete(po)
            self._session.flush()

            logger.info(
                "purchase_order_deleted",
                extra={
                    "purchase_order_id": str(purchase_order_id),
                    "no_po": no_po,
                    "reset_item_count": len(mr_item_ids),
                    "had_receipt": receipt is not None,
                },
            )

    def approve_purchase_order(self, purchase_order_id: UUID, approver_id: UUID) -> ApprovalResult:
        """
        Record an admin approval.

        When the quorum is first reached the order becomes ``approved`` and
        its incoming good receipt is opened: one ``pending`` receipt item per
        line, each stored on an allocated shelf.
        """
        with self._transaction(
            "approve_purchase_order",
            DocumentType.PURCHASE_ORDER.value,
            document_id=purchase_order_id,
            actor_id=approver_id,
        ):
            po = self._lock(PurchaseOrder, purchase_order_id, PurchaseOrderNotFoundError)
            outcome = self._approvals.add_approval(
                ApprovableDocumentType.PURCHASE_ORDER.value,
                po.id,
                approver_id,
                already_reached=not PURCHASE_ORDER_WORKFLOW.can_transition(
                    po.status, PurchaseOrderStatus.APPROVED.value,
                ),
            )

            receipt = None
            if outcome.quorum_newly_reached:
                po.status = PurchaseOrderStatus.APPROVED.value
                self._session.flush()
                receipt = self._open_receipt(po)
                logger.info(
                    "purchase_order_approved",
                    extra={
                        "purchase_order_id": str(po.id),
                        "no_po": po.no_po,
                        "no_igr": receipt.no_igr,
                        "approvals": outcome.count,
                    },
                )

            result = ApprovalResult(
                document_type=ApprovableDocumentType.PURCHASE_ORDER.value,
                document_id=po.id,
                document_status=po.status,
                approvals_count=outcome.count,
                required=outcome.quorum,
                remaining=outcome.remaining,
                quorum_newly_reached=outcome.quorum_newly_reached,
                receipt_id=receipt.id if receipt is not None else None,
                receipt_number=receipt.no_igr if receipt is not None else None,
            )
        return result

    def _open_receipt(self, po: PurchaseOrder) -> IncomingGoodReceipt:
        receipt = IncomingGoodReceipt(
            no_igr=self._numbers.next_document_number(DocumentType.INCOMING_GOOD_RECEIPT),
            received_date=self._clock.now(),
            purchase_order_id=po.id,
        )
        self._session.add(receipt)
        self._session.flush()

        for line in po.items:
            mr_item = self._session.get(MaterialRequestItem, line.material_request_item_id)
            shelf = self._shelves.allocate_shelf(mr_item.item_id)
            receipt.items.append(
                IncomingGoodReceiptItem(
                    purchase_order_item_id=line.id,
                    item_id=mr_item.item_id,
                    shelf_id=shelf.id,
                    quantity=line.quantity,
                    status=ReceiptItemStatus.PENDING.value,
                )
            )
            self._session.flush()

        logger.info(
            "receipt_opened",
            extra={
                "receipt_id": str(receipt.id),
                "no_igr": receipt.no_igr,
                "purchase_order_id": str(po.id),
                "line_count": len(receipt.items),
            },
        )
        return receipt

    # =========================================================================
    # Incoming Good Receipts
    # =========================================================================

    def update_receipt_item_status(
        self,
        receipt_item_id: UUID,
        status: str,
    ) -> ReceiptItemStatusChange:
        """
        Move a receipt item to ``received`` or ``rejected``.

        Re-submitting the current status is a no-op.  Receiving adds the
        item quantity to its shelf's stock, under the shelf row lock.
        """
        with self._transaction(
            "update_receipt_item_status",
            "incoming_good_receipt_item",
            document_id=receipt_item_id,
            requested_status=status,
        ):
            try:
                requested = ReceiptItemStatus(status).value
            except ValueError:
                raise ValidationError(
                    "receipt_item",
                    [{
                        "field": "status",
                        "value": status,
                        "message": f"must be one of {[s.value for s in ReceiptItemStatus]}",
                    }],
                ) from None

            item = self._lock(IncomingGoodReceiptItem, receipt_item_id, ReceiptItemNotFoundError)
            previous = item.status
            changed = previous != requested

            if changed:
                if not RECEIPT_ITEM_WORKFLOW.can_transition(previous, requested):
                    raise InvalidReceiptTransitionError(str(item.id), previous, requested)
                item.status = requested
                if requested == ReceiptItemStatus.RECEIVED.value:
                    shelf = self._session.execute(
                        select(Shelf)
                        .where(Shelf.id == item.shelf_id)
                        .with_for_update()
                        .execution_options(populate_existing=True)
                    ).scalar_one()
                    shelf.stock_qty += item.quantity
                    logger.info(
                        "shelf_stock_incremented",
                        extra={
                            "shelf_id": str(shelf.id),
                            "item_id": str(item.item_id),
                            "quantity": item.quantity,
                            "stock_qty": shelf.stock_qty,
                        },
                    )
                self._session.flush()

            shelf = self._session.get(Shelf, item.shelf_id)
            result = ReceiptItemStatusChange(
                receipt_item_id=item.id,
                previous_status=previous,
                status=item.status,
                changed=changed,
                shelf_id=shelf.id,
                shelf_stock_qty=shelf.stock_qty,
            )
        return result

    def delete_incoming_good_receipt(self, receipt_id: UUID) -> None:
        """Delete a receipt and its items.  Received stock stays on the shelves."""
        with self._transaction(
            "delete_incoming_good_receipt",
            DocumentType.INCOMING_GOOD_RECEIPT.value,
            document_id=receipt_id,
        ):
            receipt = self._lock(IncomingGoodReceipt, receipt_id, ReceiptNotFoundError)
            no_igr = receipt.no_igr
            item_count = len(receipt.items)
            self._session.delete(receipt)
            self._session.flush()
            logger.info(
                "receipt_deleted",
                extra={
                    "receipt_id": str(receipt_id),
                    "no_igr": no_igr,
                    "item_count": item_count,
                },
            )

    # =========================================================================
    # Delivery Orders
    # =========================================================================

    def create_delivery_order(self, data: DeliveryOrderInput) -> DeliveryOrder:
        """
        Create a delivery order for items of one material request.

        Every delivered item must already be on a purchase order line and
        belong to the delivery order's material request.
        """
        with self._transaction(
            "create_delivery_order",
            DocumentType.DELIVERY_ORDER.value,
            actor_id=data.created_by_id,
            material_request_id=data.material_request_id,
            line_count=len(data.items),
        ):
            self._require_user(data.created_by_id)
            mr = self._require_material_request(data.material_request_id)
            if mr.status == MaterialRequestStatus.CANCELLED.value:
                raise MaterialRequestCancelledError(str(mr.id), mr.no_mr, mr.status)

            item_ids = _unique(line.material_request_item_id for line in data.items)
            found = {
                mr_item.id: mr_item
                for mr_item in self._session.execute(
                    select(MaterialRequestItem).where(MaterialRequestItem.id.in_(item_ids))
                ).scalars()
            }
            for item_id in item_ids:
                if item_id not in found:
                    raise MaterialRequestItemNotFoundError(str(item_id))

            procured = set(
                self._session.execute(
                    select(PurchaseOrderItem.material_request_item_id).where(
                        PurchaseOrderItem.material_request_item_id.in_(item_ids),
                    )
                ).scalars()
            )
            invalid = [str(item_id) for item_id in item_ids if item_id not in procured]
            if invalid:
                raise DeliveryItemsNotProcuredError(invalid)

            foreign = [
                str(item_id) for item_id in item_ids
                if found[item_id].material_request_id != mr.id
            ]
            if foreign:
                raise MaterialRequestItemMismatchError(str(mr.id), foreign)

            do = DeliveryOrder(
                no_do=self._numbers.next_document_number(DocumentType.DELIVERY_ORDER),
                status=DeliveryOrderStatus.PENDING.value,
                remarks=data.remarks,
                material_request_id=mr.id,
                created_by_id=data.created_by_id,
            )
            do.items = [
                DeliveryOrderItem(
                    material_request_item_id=line.material_request_item_id,
                    quantity=line.quantity,
                )
                for line in data.items
            ]
            self._session.add(do)
            self._session.flush()

            logger.info(
                "delivery_order_created",
                extra={
                    "delivery_order_id": str(do.id),
                    "no_do": do.no_do,
                    "no_mr": mr.no_mr,
                    "line_count": len(data.items),
                },
            )
        return do

    def approve_delivery_order(self, delivery_order_id: UUID, approver_id: UUID) -> ApprovalResult:
        """
        Record an admin approval.

        When the quorum is first reached the delivery order becomes
        ``approved`` and its material request is recomputed: ``done`` when
        approved delivery lines cover all of its items, else ``partial_done``.
        """
        with self._transaction(
            "approve_delivery_order",
            DocumentType.DELIVERY_ORDER.value,
            document_id=delivery_order_id,
            actor_id=approver_id,
        ):
            do = self._lock(DeliveryOrder, delivery_order_id, DeliveryOrderNotFoundError)
            outcome = self._approvals.add_approval(
                ApprovableDocumentType.DELIVERY_ORDER.value,
                do.id,
                approver_id,
                already_reached=not DELIVERY_ORDER_WORKFLOW.can_transition(
                    do.status, DeliveryOrderStatus.APPROVED.value,
                ),
            )

            if outcome.quorum_newly_reached:
                do.status = DeliveryOrderStatus.APPROVED.value
                self._session.flush()
                mr = self._recompute_delivery_coverage(do.material_request_id)
                logger.info(
                    "delivery_order_approved",
                    extra={
                        "delivery_order_id": str(do.id),
                        "no_do": do.no_do,
                        "no_mr": mr.no_mr,
                        "material_request_status": mr.status,
                        "approvals": outcome.count,
                    },
                )
                self._session.flush()

            result = ApprovalResult(
                document_type=ApprovableDocumentType.DELIVERY_ORDER.value,
                document_id=do.id,
                document_status=do.status,
                approvals_count=outcome.count,
                required=outcome.quorum,
                remaining=outcome.remaining,
                quorum_newly_reached=outcome.quorum_newly_reached,
            )
        return result

    # =========================================================================
    # Queries
    # =========================================================================

    def approval_summary(self, document_type: str, document_id: UUID) -> ApprovalSummary:
        """Read-only approval summary; does not touch the transaction."""
        try:
            approvable = ApprovableDocumentType(document_type)
        except ValueError:
            raise ValidationError(
                "approval_summary",
                [{
                    "field": "document_type",
                    "value": document_type,
                    "message": f"must be one of {[t.value for t in ApprovableDocumentType]}",
                }],
            ) from None
        selector = ApprovalSelector(self._session, quorum=self._config.approval_quorum)
        return selector.summary(approvable.value, document_id)
