"""
Sales Workflows (``erp_modules.sales.workflows``).

Invoice payment lifecycle: OPEN -> PARTIAL -> PAID.  Only OPEN invoices
without payments may be edited or deleted.
"""

from erp_kernel.domain.workflow import Guard, Transition, Workflow
from erp_kernel.logging_config import get_logger

logger = get_logger("modules.sales.workflows")


OPEN_AND_UNPAID = Guard(
    name="open_and_unpaid",
    description="Invoice is OPEN with no payment applied (edit and delete)",
)


INVOICE_WORKFLOW = Workflow(
    name="sales_invoice",
    description="Customer invoice payment lifecycle",
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

logger.info(
    "sales_invoice_workflow_registered",
    extra={
        "workflow": INVOICE_WORKFLOW.name,
        "transitions": len(INVOICE_WORKFLOW.transitions),
    },
)
