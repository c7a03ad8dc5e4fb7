"""
Invoice post-processing chain (``erp_modules.sales.post_processing``).

Responsibility
--------------
An ordered tuple of steps that ``SalesService`` runs inside the invoice
transaction after the journal entry is posted.  Each step can ``apply``
its side effect to a freshly written invoice and ``revert`` it before the
invoice is edited or deleted.

Invariants enforced
-------------------
* Steps run in declaration order, inside the caller's transaction.  A step
  that raises aborts the whole invoice: the writer rolls back the document,
  the inventory movements and the journal entry with it.
* ``InstallationTicketStep`` leaves exactly one INSTALLATION ticket per
  invoice with at least one qualifying line, and exactly one customer asset
  per qualifying line, whatever the line quantity.

Failure modes
-------------
* ``DocumentLockedError`` from ``revert`` when an installation ticket has
  already moved past OPEN (the work is scheduled or done).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from erp_kernel.domain.actor import Actor
from erp_kernel.domain.clock import Clock
from erp_kernel.exceptions import DocumentLockedError
from erp_kernel.logging_config import get_logger
from erp_modules.sales.models import InvoiceStatus
from erp_modules.sales.orm import Invoice
from erp_modules.service_desk.models import (
    AssetStatus,
    TicketPriority,
    TicketStatus,
    TicketType,
)
from erp_modules.service_desk.numbering import next_asset_number, next_ticket_number
from erp_modules.service_desk.orm import CustomerAsset, ServiceTicket, TicketAsset

logger = get_logger("modules.sales.post_processing")


@dataclass(frozen=True)
class PostProcessingContext:
    """What a step may see and touch."""
    session: Session
    invoice: Invoice
    actor: Actor
    clock: Clock


@runtime_checkable
class PostProcessingStep(Protocol):
    """One side effect chained onto invoice writes."""

    name: str

    def apply(self, context: PostProcessingContext) -> None: ...

    def revert(self, context: PostProcessingContext) -> None: ...


class InstallationTicketStep:
    """
    Opens an installation ticket for invoices that sell installable items.

    Contract:
        ``apply`` is called once per invoice write, after the lines exist.
        ``revert`` removes the ticket, its asset links and the assets so
        the invoice can be rewritten or deleted.
    """

    name = "installation_ticket"

    def apply(self, context: PostProcessingContext) -> None:
        invoice = context.invoice
        qualifying = [line for line in invoice.lines if line.item.requires_installation]
        if not qualifying:
            return

        session = context.session
        year = context.clock.today().year
        actor_id = context.actor.user_id

        ticket = session.scalars(
            select(ServiceTicket).where(
                ServiceTicket.invoice_id == invoice.id,
                ServiceTicket.ticket_type == TicketType.INSTALLATION,
            )
        ).first()
        if ticket is None:
            ticket = ServiceTicket(
                ticket_number=next_ticket_number(session, year),
                customer_id=invoice.customer_id,
                invoice_id=invoice.id,
                ticket_type=TicketType.INSTALLATION,
                priority=TicketPriority.MEDIUM,
                status=TicketStatus.OPEN,
                title=f"Installation for Invoice {invoice.invoice_number}",
                description="Install: " + ", ".join(
                    f"{line.item.name} x{line.quantity}" for line in qualifying
                ),
                created_by=actor_id,
            )
            session.add(ticket)
            session.flush()

        for line in qualifying:
            asset = CustomerAsset(
                asset_number=next_asset_number(session, year),
                customer_id=invoice.customer_id,
                item_id=line.item_id,
                invoice_id=invoice.id,
                invoice_line_id=line.id,
                status=AssetStatus.PENDING_INSTALLATION,
                created_by=actor_id,
            )
            session.add(asset)
            session.flush()
            ticket.asset_links.append(
                TicketAsset(asset_id=asset.id, created_by=actor_id)
            )
        session.flush()

        logger.info("installation_ticket_created", extra={
            "invoice_id": invoice.id,
            "ticket_id": ticket.id,
            "ticket_number": ticket.ticket_number,
            "asset_count": len(qualifying),
        })

    def revert(self, context: PostProcessingContext) -> None:
        session = context.session
        invoice = context.invoice
        tickets = session.scalars(
            select(ServiceTicket).where(
                ServiceTicket.invoice_id == invoice.id,
                ServiceTicket.ticket_type == TicketType.INSTALLATION,
            )
        ).all()
        for ticket in tickets:
            if ticket.status != TicketStatus.OPEN:
                raise DocumentLockedError(
                    "Invoice",
                    invoice.id,
                    InvoiceStatus(invoice.status).value,
                    reason=f"installation ticket {ticket.ticket_number} is {ticket.status.value}",
                )

        for ticket in tickets:
            session.delete(ticket)
        session.flush()
        removed = session.execute(
            delete(CustomerAsset).where(CustomerAsset.invoice_id == invoice.id)
        ).rowcount
        session.flush()

        if tickets:
            logger.info("installation_ticket_removed", extra={
                "invoice_id": invoice.id,
                "tickets_removed": len(tickets),
                "assets_removed": removed,
            })


DEFAULT_POST_PROCESSING: tuple[PostProcessingStep, ...] = (InstallationTicketStep(),)


def run_steps(
    steps: tuple[PostProcessingStep, ...],
    context: PostProcessingContext,
) -> None:
    for step in steps:
        logger.debug("post_processing_step_started", extra={
            "step": step.name,
            "invoice_id": context.invoice.id,
        })
        step.apply(context)


def revert_steps(
    steps: tuple[PostProcessingStep, ...],
    context: PostProcessingContext,
) -> None:
    for step in reversed(steps):
        step.revert(context)
