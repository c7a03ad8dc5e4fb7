"""
Service Desk Module Service (``erp_modules.service_desk.service``).

Responsibility
--------------
Moves service tickets through ``TICKET_WORKFLOW`` and keeps the linked
customer assets in step: completing an installation ticket activates its
assets.

Invariants enforced
-------------------
* Every status change goes through the declared workflow; an action that is
  not defined from the current state raises ``InvalidTransitionError``.
* Each public method owns the transaction boundary.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_kernel.domain.actor import Actor
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.exceptions import DocumentNotFoundError, ValidationError
from erp_kernel.logging_config import get_logger
from erp_modules.service_desk.models import (
    AssetStatus,
    TicketSnapshot,
    TicketStatus,
    TicketType,
)
from erp_modules.service_desk.orm import ServiceTicket
from erp_modules.service_desk.workflows import TICKET_WORKFLOW

logger = get_logger("modules.service_desk.service")


class ServiceDeskService:
    """Ticket lifecycle over the declared workflow."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def transition_ticket(
        self,
        ticket_id: int,
        action: str,
        actor: Actor,
        *,
        scheduled_for: datetime | None = None,
        notes: str | None = None,
    ) -> TicketSnapshot:
        """
        Apply ``action`` (schedule, start, complete, cancel) to a ticket.

        Raises:
            DocumentNotFoundError: unknown ticket.
            InvalidTransitionError: action not allowed from the current state.
            ValidationError: ``schedule`` without a visit date.
        """
        try:
            ticket = self._session.get(ServiceTicket, ticket_id, with_for_update=True)
            if ticket is None:
                raise DocumentNotFoundError("ServiceTicket", ticket_id)

            previous = TicketStatus(ticket.status)
            transition = TICKET_WORKFLOW.transition(previous, action)
            if transition.guard is not None and scheduled_for is None:
                raise ValidationError("scheduled_for", "a visit date is required to schedule a ticket")

            now = self._clock.now()
            ticket.status = TicketStatus(transition.to_state)
            ticket.updated_by = actor.user_id
            if action == "schedule":
                ticket.scheduled_for = scheduled_for
            elif action == "start":
                ticket.started_at = now
            elif action == "complete":
                ticket.completed_at = now
                ticket.completion_notes = notes
                if ticket.ticket_type == TicketType.INSTALLATION:
                    for link in ticket.asset_links:
                        link.asset.status = AssetStatus.ACTIVE
                        link.asset.installation_date = now
                        link.asset.updated_by = actor.user_id
            elif action == "cancel" and notes:
                ticket.completion_notes = notes

            self._session.commit()
            logger.info("service_ticket_transitioned", extra={
                "ticket_id": ticket.id,
                "ticket_number": ticket.ticket_number,
                "from_state": previous.value,
                "to_state": ticket.status.value,
                "action": action,
            })
            return ticket.to_snapshot()

        except Exception:
            self._session.rollback()
            raise

    def get_ticket(self, ticket_id: int) -> TicketSnapshot:
        ticket = self._session.get(ServiceTicket, ticket_id)
        if ticket is None:
            raise DocumentNotFoundError("ServiceTicket", ticket_id)
        return ticket.to_snapshot()

    def tickets_for_invoice(self, invoice_id: int) -> list[TicketSnapshot]:
        tickets = self._session.scalars(
            select(ServiceTicket)
            .where(ServiceTicket.invoice_id == invoice_id)
            .order_by(ServiceTicket.id)
        ).all()
        return [t.to_snapshot() for t in tickets]
