"""
Purchasing Workflows (``erp_modules.purchasing.workflows``).

Declares the payment-status and approval state machines of a vendor bill
and the receipt state machine of a purchase order.
``PurchasingService`` resolves every status change through these
definitions.
"""

from erp_kernel.domain.workflow import Guard, Transition, Workflow
from erp_kernel.logging_config import get_logger

logger = get_logger("modules.purchasing.workflows")


OPEN_AND_UNPAID = Guard(
    name="open_and_unpaid",
    description="Bill is OPEN with no payment applied (edit and delete)",
)

ADMIN_ONLY = Guard(
    name="admin_only",
    description="Only an administrator may approve or reject a bill",
)


BILL_WORKFLOW = Workflow(
    name="vendor_bill",
    description="Vendor bill payment lifecycle",
    initial_state="OPEN",
    states=("OPEN", "PARTIAL", "PAID"),
    terminal_states=("PAID",),
    transitions=(
        Transition("OPEN", "PARTIAL", action="pay_partial", posts_entry=True),
        Transition("OPEN", "PAID", action="pay_full", posts_entry=True),
        Transition("PARTIAL", "PARTIAL", action="pay_partial", posts_entry=True),
        Transition("PARTIAL", "PAID", action="pay_full", posts_entry=True),
    ),
)

BILL_APPROVAL_WORKFLOW = Workflow(
    name="vendor_bill_approval",
    description="Approval gate for bills above the approval threshold",
    initial_state="PENDING",
    states=("NOT_REQUIRED", "PENDING", "APPROVED", "REJECTED"),
    terminal_states=("NOT_REQUIRED", "APPROVED", "REJECTED"),
    transitions=(
        Transition(
            "PENDING", "APPROVED", action="approve",
            guard=ADMIN_ONLY, posts_entry=True, requires_role="ADMIN",
        ),
        Transition("PENDING", "REJECTED", action="reject", guard=ADMIN_ONLY, requires_role="ADMIN"),
    ),
)

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order receipt lifecycle",
    initial_state="OPEN",
    states=("OPEN", "PARTIAL", "CLOSED"),
    terminal_states=("CLOSED",),
    transitions=(
        Transition("OPEN", "PARTIAL", action="receive_partial", posts_entry=True),
        Transition("OPEN", "CLOSED", action="receive_full", posts_entry=True),
        Transition("PARTIAL", "PARTIAL", action="receive_partial", posts_entry=True),
        Transition("PARTIAL", "CLOSED", action="receive_full", posts_entry=True),
        Transition("OPEN", "CLOSED", action="close"),
        Transition("PARTIAL", "CLOSED", action="close"),
    ),
)

logger.info(
    "purchasing_workflows_registered",
    extra={
        "workflows": [BILL_WORKFLOW.name, BILL_APPROVAL_WORKFLOW.name, PURCHASE_ORDER_WORKFLOW.name],
        "transition_count": sum(
            len(w.transitions)
            for w in (BILL_WORKFLOW, BILL_APPROVAL_WORKFLOW, PURCHASE_ORDER_WORKFLOW)
        ),
    },
)
