"""
Procurement Workflows.

State machines for purchase orders, delivery orders and incoming good
receipt items.  ``ProcurementService`` consults them before every status
change.  Material request status is not a workflow: it is derived from its
items (see ``warehouse_kernel.domain.status``).
"""

from itertools import permutations

from warehouse_kernel.domain.workflow import Guard, Transition, Workflow
from warehouse_kernel.logging_config import get_logger

logger = get_logger("modules.procurement.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

APPROVAL_QUORUM_REACHED = Guard(
    name="approval_quorum_reached",
    description="The required number of distinct admin approvals is recorded",
)

NO_RECEIPT_STARTED = Guard(
    name="no_receipt_started",
    description="No incoming good receipt exists for the purchase order",
)

logger.info(
    "procurement_workflow_guards_defined",
    extra={
        "guards": [
            APPROVAL_QUORUM_REACHED.name,
            NO_RECEIPT_STARTED.name,
        ],
    },
)


# -----------------------------------------------------------------------------
# Purchase Order Workflow
# -----------------------------------------------------------------------------

# Statuses a purchase order can be edited between before approval
PURCHASE_ORDER_EDITABLE_STATES = ("draft", "pending", "proses", "done")

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order lifecycle; edits are allowed until approval",
    initial_state="draft",
    states=(*PURCHASE_ORDER_EDITABLE_STATES, "approved"),
    transitions=(
        *(
            Transition(source, target, action="edit", guard=NO_RECEIPT_STARTED)
            for source, target in permutations(PURCHASE_ORDER_EDITABLE_STATES, 2)
        ),
        *(
            Transition(source, "approved", action="approve",
                       guard=APPROVAL_QUORUM_REACHED, requires_approval=True)
            for source in PURCHASE_ORDER_EDITABLE_STATES
        ),
    ),
    terminal_states=("approved",),
)

logger.info(
    "procurement_purchase_order_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
        "initial_state": PURCHASE_ORDER_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Delivery Order Workflow
# -----------------------------------------------------------------------------

DELIVERY_ORDER_WORKFLOW = Workflow(
    name="delivery_order",
    description="Delivery order lifecycle",
    initial_state="pending",
    states=(
        "pending",
        "approved",
        "done",
    ),
    transitions=(
        Transition("pending", "approved", action="approve",
                   guard=APPROVAL_QUORUM_REACHED, requires_approval=True),
        Transition("approved", "done", action="complete"),
    ),
    terminal_states=("done",),
)

logger.info(
    "procurement_delivery_order_workflow_registered",
    extra={
        "workflow_name": DELIVERY_ORDER_WORKFLOW.name,
        "state_count": len(DELIVERY_ORDER_WORKFLOW.states),
        "transition_count": len(DELIVERY_ORDER_WORKFLOW.transitions),
        "initial_state": DELIVERY_ORDER_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Receipt Item Workflow
# -----------------------------------------------------------------------------

# received and rejected are final; receiving adds stock exactly once
RECEIPT_ITEM_WORKFLOW = Workflow(
    name="receipt_item",
    description="Incoming good receipt item inspection",
    initial_state="pending",
    states=(
        "pending",
        "received",
        "rejected",
    ),
    transitions=(
        Transition("pending", "received", action="receive"),
        Transition("pending", "rejected", action="reject"),
    ),
    terminal_states=("received", "rejected"),
)

logger.info(
    "procurement_receipt_item_workflow_registered",
    extra={
        "workflow_name": RECEIPT_ITEM_WORKFLOW.name,
        "state_count": len(RECEIPT_ITEM_WORKFLOW.states),
        "transition_count": len(RECEIPT_ITEM_WORKFLOW.transitions),
        "initial_state": RECEIPT_ITEM_WORKFLOW.initial_state,
    },
)
