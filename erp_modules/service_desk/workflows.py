"""
Service Desk Workflows (``erp_modules.service_desk.workflows``).

Ticket lifecycle: OPEN -> SCHEDULED -> IN_PROGRESS -> COMPLETED, with
CANCELLED reachable from OPEN and SCHEDULED.  Work may also start on an
OPEN ticket without scheduling it first.
"""

from erp_kernel.domain.workflow import Guard, Transition, Workflow
from erp_kernel.logging_config import get_logger

logger = get_logger("modules.service_desk.workflows")


VISIT_DATE_SET = Guard(
    name="visit_date_set",
    description="A scheduled visit date is supplied",
)


TICKET_WORKFLOW = Workflow(
    name="service_ticket",
    description="Field service ticket lifecycle",
    initial_state="OPEN",
    states=("OPEN", "SCHEDULED", "IN_PROGRESS", "COMPLETED", "CANCELLED"),
    terminal_states=("COMPLETED", "CANCELLED"),
    transitions=(
        Transition("OPEN", "SCHEDULED", action="schedule", guard=VISIT_DATE_SET),
        Transition("OPEN", "IN_PROGRESS", action="start"),
        Transition("OPEN", "CANCELLED", action="cancel"),
        Transition("SCHEDULED", "SCHEDULED", action="schedule", guard=VISIT_DATE_SET),
        Transition("SCHEDULED", "IN_PROGRESS", action="start"),
        Transition("SCHEDULED", "CANCELLED", action="cancel"),
        Transition("IN_PROGRESS", "COMPLETED", action="complete"),
    ),
)

logger.info(
    "service_ticket_workflow_registered",
    extra={
        "workflow": TICKET_WORKFLOW.name,
        "states": len(TICKET_WORKFLOW.states),
        "transitions": len(TICKET_WORKFLOW.transitions),
    },
)
