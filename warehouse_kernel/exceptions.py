"""
Typed Exception Hierarchy for the Warehouse Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The request layer in front of the kernel has to turn every failure into a
precise response.  Parsing exception messages for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (offending ids, current vs required
     state) instead of only a message string

Example:
    try:
        service.create_purchase_order(order)
    except MaterialRequestItemNotPendingError as e:
        respond(code=e.code, item=e.material_request_item_id,
                current=e.current_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from WarehouseKernelError:

    WarehouseKernelError (base)
    |
    +-- ValidationError
    |   +-- MaterialRequestItemMismatchError
    |
    +-- NotFoundError
    |   +-- UserNotFoundError
    |   +-- LocationNotFoundError
    |   +-- ItemsNotFoundError
    |   +-- WarehouseNotFoundError
    |   +-- ShelfNotFoundError
    |   +-- MaterialRequestNotFoundError
    |   +-- MaterialRequestItemNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- PurchaseOrderItemNotFoundError
    |   +-- ReceiptNotFoundError
    |   +-- ReceiptItemNotFoundError
    |   +-- DeliveryOrderNotFoundError
    |
    +-- ConflictError
    |   +-- AlreadyApprovedError
    |   +-- DuplicateShelfPositionError
    |   +-- MaterialRequestItemAlreadyOrderedError
    |
    +-- StateError
    |   +-- MaterialRequestItemNotPendingError
    |   +-- ReceivingStartedError
    |   +-- MaterialRequestCancelledError
    |   +-- DeliveryItemsNotProcuredError
    |   +-- InvalidReceiptTransitionError
    |   +-- InvalidPurchaseOrderTransitionError
    |   +-- MaterialRequestReferencedError
    |   +-- ShelfInUseError
    |
    +-- DependencyError
    |   +-- NoShelfAvailableError
    |
    +-- AuthorizationError
        +-- ForbiddenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                            | When Raised
--------------|---------------------------------|-------------------------------------
Validation    | VALIDATION_ERROR                | Malformed or missing input fields
              | MR_ITEM_MISMATCH                | DO line targets another MR's item
--------------|---------------------------------|-------------------------------------
Not found     | USER_NOT_FOUND                  | Creator / approver id unknown
              | ITEMS_NOT_FOUND                 | One or more catalog items unknown
              | MATERIAL_REQUEST_NOT_FOUND      | MR id unknown
              | PURCHASE_ORDER_NOT_FOUND        | PO id unknown
              | ...                             | one code per entity
--------------|---------------------------------|-------------------------------------
Conflict      | ALREADY_APPROVED                | Same user approves a document twice
              | DUPLICATE_SHELF_POSITION        | Shelf location+position reused
              | MR_ITEM_ALREADY_ORDERED         | MR item already on a PO line
--------------|---------------------------------|-------------------------------------
State         | MR_ITEM_NOT_PENDING             | PO line targets a non-pending MR item
              | RECEIVING_STARTED               | PO has an IGR and is immutable
              | MATERIAL_REQUEST_CANCELLED      | DO against a cancelled MR
              | MR_ITEM_NOT_IN_PO               | DO line before procurement started
              | INVALID_RECEIPT_TRANSITION      | IGR item transition not allowed
              | INVALID_PURCHASE_ORDER_TRANSITION | PO status edit not allowed
              | MATERIAL_REQUEST_REFERENCED     | MR items referenced by PO/DO lines
              | SHELF_IN_USE                    | Shelf referenced by receipt items
--------------|---------------------------------|-------------------------------------
Dependency    | NO_SHELF_AVAILABLE              | Warehouse has no shelves at all
--------------|---------------------------------|-------------------------------------
Authorization | FORBIDDEN                       | Non-admin attempts an approval

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Inherit from Exception, not ValueError/LookupError, so domain errors are
   catchable as a group and never mixed up with programming errors.
2. ``code`` is a class attribute: static per type, usable without an
   instance.
3. All context is stored as attributes so that logs (see
   ``logging_config.StructuredFormatter``) and ``WorkflowResult`` can
   serialise it.
"""

from collections.abc import Sequence


class WarehouseKernelError(Exception):
    """
    Base exception for all warehouse kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "WAREHOUSE_KERNEL_ERROR"


# =============================================================================
# Validation
# =============================================================================


class ValidationError(WarehouseKernelError):
    """Malformed or missing input.  Raised before any mutation is attempted."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, subject: str, field_errors: Sequence[dict]):
        self.subject = subject
        self.field_errors = list(field_errors)
        super().__init__(
            f"Validation failed for {subject}: {len(self.field_errors)} error(s)"
        )


class MaterialRequestItemMismatchError(ValidationError):
    """Delivery order lines must belong to the delivery order's material request."""

    code: str = "MR_ITEM_MISMATCH"

    def __init__(self, material_request_id: str, foreign_item_ids: Sequence[str]):
        self.material_request_id = material_request_id
        self.foreign_item_ids = list(foreign_item_ids)
        super().__init__(
            "delivery_order",
            [
                {
                    "field": "items.material_request_item_id",
                    "value": item_id,
                    "message": f"does not belong to material request {material_request_id}",
                }
                for item_id in self.foreign_item_ids
            ],
        )


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(WarehouseKernelError):
    """A referenced entity does not exist."""

    code: str = "NOT_FOUND"
    entity_type: str = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class UserNotFoundError(NotFoundError):
    code: str = "USER_NOT_FOUND"
    entity_type: str = "User"


class LocationNotFoundError(NotFoundError):
    code: str = "LOCATION_NOT_FOUND"
    entity_type: str = "Location"


class WarehouseNotFoundError(NotFoundError):
    code: str = "WAREHOUSE_NOT_FOUND"
    entity_type: str = "Warehouse"


class ShelfNotFoundError(NotFoundError):
    code: str = "SHELF_NOT_FOUND"
    entity_type: str = "Shelf"


class MaterialRequestNotFoundError(NotFoundError):
    code: str = "MATERIAL_REQUEST_NOT_FOUND"
    entity_type: str = "MaterialRequest"


class MaterialRequestItemNotFoundError(NotFoundError):
    code: str = "MATERIAL_REQUEST_ITEM_NOT_FOUND"
    entity_type: str = "MaterialRequestItem"


class PurchaseOrderNotFoundError(NotFoundError):
    code: str = "PURCHASE_ORDER_NOT_FOUND"
    entity_type: str = "PurchaseOrder"


class PurchaseOrderItemNotFoundError(NotFoundError):
    code: str = "PURCHASE_ORDER_ITEM_NOT_FOUND"
    entity_type: str = "PurchaseOrderItem"


class ReceiptNotFoundError(NotFoundError):
    code: str = "RECEIPT_NOT_FOUND"
    entity_type: str = "IncomingGoodReceipt"


class ReceiptItemNotFoundError(NotFoundError):
    code: str = "RECEIPT_ITEM_NOT_FOUND"
    entity_type: str = "IncomingGoodReceiptItem"


class DeliveryOrderNotFoundError(NotFoundError):
    code: str = "DELIVERY_ORDER_NOT_FOUND"
    entity_type: str = "DeliveryOrder"


class ItemsNotFoundError(NotFoundError):
    """One or more catalog items referenced by a request do not exist."""

    code: str = "ITEMS_NOT_FOUND"
    entity_type: str = "Item"

    def __init__(self, missing_ids: Sequence[str]):
        self.missing_ids = list(missing_ids)
        super().__init__(", ".join(self.missing_ids))


# =============================================================================
# Conflict
# =============================================================================


class ConflictError(WarehouseKernelError):
    """A uniqueness rule would be violated."""

    code: str = "CONFLICT"


class AlreadyApprovedError(ConflictError):
    """The user already approved this document; approvals are not re-counted."""

    code: str = "ALREADY_APPROVED"

    def __init__(self, document_type: str, document_id: str, user_id: str):
        self.document_type = document_type
        self.document_id = document_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} already approved {document_type} {document_id}"
        )


class DuplicateShelfPositionError(ConflictError):
    """Another shelf already occupies this location and position."""

    code: str = "DUPLICATE_SHELF_POSITION"

    def __init__(self, location: str, position: str):
        self.location = location
        self.position = position
        super().__init__(
            f"Shelf location {location!r} position {position!r} is already in use"
        )


class MaterialRequestItemAlreadyOrderedError(ConflictError):
    """A material request item can sit on at most one purchase order line."""

    code: str = "MR_ITEM_ALREADY_ORDERED"

    def __init__(self, material_request_item_id: str, purchase_order_id: str):
        self.material_request_item_id = material_request_item_id
        self.purchase_order_id = purchase_order_id
        super().__init__(
            f"Material request item {material_request_item_id} is already on "
            f"purchase order {purchase_order_id}"
        )


# =============================================================================
# State
# =============================================================================


class StateError(WarehouseKernelError):
    """An entity is not in the state the operation requires."""

    code: str = "STATE_ERROR"


class MaterialRequestItemNotPendingError(StateError):
    """Only pending material request items can be put on a purchase order."""

    code: str = "MR_ITEM_NOT_PENDING"

    def __init__(self, material_request_item_id: str, current_status: str):
        self.material_request_item_id = material_request_item_id
        self.current_status = current_status
        self.required_status = "pending"
        super().__init__(
            f"Material request item {material_request_item_id} cannot be used: "
            f"status is '{current_status}', only 'pending' items are eligible"
        )


class ReceivingStartedError(StateError):
    """A purchase order with an incoming good receipt is immutable."""

    code: str = "RECEIVING_STARTED"

    def __init__(self, purchase_order_id: str, receipt_number: str):
        self.purchase_order_id = purchase_order_id
        self.receipt_number = receipt_number
        super().__init__(
            f"Purchase order {purchase_order_id} already has incoming good "
            f"receipt {receipt_number} and cannot be modified"
        )


class MaterialRequestCancelledError(StateError):
    code: str = "MATERIAL_REQUEST_CANCELLED"

    def __init__(self, material_request_id: str, no_mr: str, current_status: str):
        self.material_request_id = material_request_id
        self.no_mr = no_mr
        self.current_status = current_status
        super().__init__(
            f"Cannot deliver against material request {no_mr}: status is '{current_status}'"
        )


class DeliveryItemsNotProcuredError(StateError):
    """Delivery lines require procurement to have started for their MR items."""

    code: str = "MR_ITEM_NOT_IN_PO"

    def __init__(self, invalid_ids: Sequence[str]):
        self.invalid_ids = list(invalid_ids)
        self.required_state = "on a purchase order"
        super().__init__(
            "Material request items not yet on a purchase order: "
            + ", ".join(self.invalid_ids)
        )


class InvalidReceiptTransitionError(StateError):
    code: str = "INVALID_RECEIPT_TRANSITION"

    def __init__(self, receipt_item_id: str, current_status: str, requested_status: str):
        self.receipt_item_id = receipt_item_id
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Receipt item {receipt_item_id} cannot move from "
            f"'{current_status}' to '{requested_status}'"
        )


class InvalidPurchaseOrderTransitionError(StateError):
    """Approved purchase orders are final; status edits cannot leave or enter ``approved``."""

    code: str = "INVALID_PURCHASE_ORDER_TRANSITION"

    def __init__(self, purchase_order_id: str, current_status: str, requested_status: str):
        self.purchase_order_id = purchase_order_id
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Purchase order {purchase_order_id} cannot move from "
            f"'{current_status}' to '{requested_status}'"
        )


class MaterialRequestReferencedError(StateError):
    """Material request rows cannot be removed while downstream lines point at them."""

    code: str = "MATERIAL_REQUEST_REFERENCED"

    def __init__(self, material_request_id: str, referenced_by: str):
        self.material_request_id = material_request_id
        self.referenced_by = referenced_by
        super().__init__(
            f"Material request {material_request_id} is referenced by {referenced_by}"
        )


class ShelfInUseError(StateError):
    code: str = "SHELF_IN_USE"

    def __init__(self, shelf_id: str, receipt_item_count: int):
        self.shelf_id = shelf_id
        self.receipt_item_count = receipt_item_count
        super().__init__(
            f"Shelf {shelf_id} is referenced by {receipt_item_count} receipt item(s)"
        )


# =============================================================================
# Dependency
# =============================================================================


class DependencyError(WarehouseKernelError):
    """A required collaborator or resource is unavailable.  Aborts the transaction."""

    code: str = "DEPENDENCY_ERROR"


class NoShelfAvailableError(DependencyError):
    code: str = "NO_SHELF_AVAILABLE"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"No shelf is defined to store item {item_id}")


# =============================================================================
# Authorization
# =============================================================================


class AuthorizationError(WarehouseKernelError):
    code: str = "AUTHORIZATION_ERROR"


class ForbiddenError(AuthorizationError):
    """Only admins may approve purchase and delivery orders."""

    code: str = "FORBIDDEN"

    def __init__(self, user_id: str, role: str, required_role: str = "admin"):
        self.user_id = user_id
        self.role = role
        self.required_role = required_role
        super().__init__(
            f"User {user_id} with role '{role}' may not approve; "
            f"role '{required_role}' required"
        )
