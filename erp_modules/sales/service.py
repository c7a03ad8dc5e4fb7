"""
Sales Module Service (``erp_modules.sales.service``).

Responsibility
--------------
Customer invoices and customer payments.  An invoice issues its stock lines
from inventory (FIFO), posts one balanced journal entry covering revenue,
discounts, tax and cost of goods sold, then runs the post-processing chain
(installation tickets) inside the same transaction.

Architecture position
---------------------
**Modules layer** -- thin ERP glue over ``InventoryLedger``,
``GeneralLedgerPoster``, ``erp_engines.document_totals`` and
``erp_engines.allocation``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (``commit`` on success,
  ``rollback`` and re-raise on any exception).  A failing ticket step rolls
  back the invoice, its stock issues and its journal entry.
* Invoice entry: Dr AR (total); Cr Sales (subtotal); Dr Sales Discounts
  (discount_total); Cr Sales Tax (tax_total); Dr COGS / Cr inventory per
  item class for stock lines.  Zero lines are omitted.
* Edit and delete require an OPEN invoice with no payment; prior effects
  are reversed exactly once before the new line set is applied.

Failure modes
-------------
* ``InsufficientStockError`` when a line asks for more than is on hand.
* ``DocumentLockedError`` when the invoice is paid or its installation
  ticket has progressed.
* ``DocumentNotFoundError`` for unknown customers or invoices.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_engines.allocation import OpenDocument, allocate_explicit, allocate_oldest_first
from erp_engines.document_totals import LineInput, compute_document_totals
from erp_kernel.domain.actor import Actor
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.dtos import PostingLineBuilder
from erp_kernel.domain.payment import PaymentMethod
from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import (
    DocumentNotFoundError,
    ItemNotFoundError,
    ValidationError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.item import Item
from erp_kernel.services.journal_poster import GeneralLedgerPoster
from erp_modules._numbering import next_document_number
from erp_modules._posting_helpers import ensure_editable, post_builder, resolve_asset_account
from erp_modules.sales.config import SalesConfig
from erp_modules.sales.models import (
    CustomerPaymentResult,
    InvoiceAllocationResult,
    InvoiceLineInput,
    InvoiceResult,
    InvoiceStatus,
)
from erp_modules.sales.orm import (
    Customer,
    CustomerPayment,
    Invoice,
    InvoiceLine,
    PaymentAllocation,
)
from erp_modules.sales.post_processing import (
    DEFAULT_POST_PROCESSING,
    PostProcessingContext,
    PostProcessingStep,
    revert_steps,
    run_steps,
)
from erp_modules.sales.workflows import INVOICE_WORKFLOW
from erp_modules.service_desk.orm import ServiceTicket
from erp_services.inventory_ledger import InventoryLedger

logger = get_logger("modules.sales.service")


class SalesService:
    """
    Orchestrates invoices and customer receipts.

    Contract:
        Receives a Session, an optional SalesConfig, Clock and the ordered
        post-processing steps via constructor injection.
    Guarantees:
        - A committed invoice has exactly one POSTED journal entry for its
          current line set, and the side effects of every step.
        - A failed call leaves no invoice, stock movement, journal entry,
          ticket or asset behind.
    """

    def __init__(
        self,
        session: Session,
        config: SalesConfig | None = None,
        clock: Clock | None = None,
        post_processing: tuple[PostProcessingStep, ...] = DEFAULT_POST_PROCESSING,
    ):
        self._session = session
        self._config = config or SalesConfig()
        self._clock = clock or SystemClock()
        self._steps = tuple(post_processing)
        self._ledger = InventoryLedger(session, self._clock)
        self._poster = GeneralLedgerPoster(session, self._clock)

    # =========================================================================
    # Invoices
    # =========================================================================

    def create_invoice(
        self,
        *,
        customer_id: int,
        lines: Sequence[InvoiceLineInput],
        actor: Actor,
        invoice_date: date | None = None,
        due_date: date | None = None,
        invoice_number: str | None = None,
        notes: str | None = None,
    ) -> InvoiceResult:
        """
        Write an invoice as one atomic unit.

        Order: validate, write header, issue stock and price lines, post the
        journal entry, run post-processing, commit.

        Raises:
            Exception: re-raised after rollback.
        """
        try:
            if not lines:
                raise ValidationError("lines", "an invoice needs at least one line")
            customer = self._session.get(Customer, customer_id)
            if customer is None:
                raise DocumentNotFoundError("Customer", customer_id)
            items = self._load_items(lines)

            invoice_date = invoice_date or self._clock.today()
            logger.info("sales_create_invoice_started", extra={
                "customer_id": customer_id,
                "line_count": len(lines),
                "actor_id": actor.user_id,
            })

            invoice = Invoice(
                customer_id=customer.id,
                invoice_number=invoice_number or next_document_number(
                    self._session, Invoice.invoice_number,
                    self._config.invoice_number_prefix, invoice_date.year,
                ),
                invoice_date=invoice_date,
                due_date=due_date or invoice_date + timedelta(days=self._config.payment_terms_days),
                status=InvoiceStatus.OPEN,
                paid_amount=0,
                notes=notes,
                created_by=actor.user_id,
            )
            self._session.add(invoice)
            self._session.flush()

            entry_id, ticket_ids = self._apply_lines(invoice, lines, items, actor)

            self._session.commit()
            logger.info("sales_create_invoice_committed", extra={
                "invoice_id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "total_amount": invoice.total_amount,
                "cost_of_goods": invoice.cost_of_goods,
                "ticket_count": len(ticket_ids),
            })
            return invoice.to_result(entry_id, ticket_ids)

        except Exception:
            self._session.rollback()
            raise

    def update_invoice(
        self,
        invoice_id: int,
        *,
        lines: Sequence[InvoiceLineInput],
        actor: Actor,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> InvoiceResult:
        """
        Replace the line set of an OPEN, unpaid invoice.

        Post-processing effects, stock issues and the journal entry of the
        previous line set are reversed first, in the same transaction.
        """
        try:
            if not lines:
                raise ValidationError("lines", "an invoice needs at least one line")
            invoice = self._load_invoice(invoice_id)
            ensure_editable("Invoice", invoice.id, invoice.status, invoice.paid_amount)
            items = self._load_items(lines)

            logger.info("sales_update_invoice_started", extra={
                "invoice_id": invoice.id,
                "previous_total": invoice.total_amount,
                "line_count": len(lines),
            })

            self._reverse_effects(invoice, actor, reason=f"Invoice {invoice.invoice_number} updated")
            invoice.lines.clear()
            self._session.flush()
            if due_date is not None:
                invoice.due_date = due_date
            if notes is not None:
                invoice.notes = notes
            invoice.updated_by = actor.user_id

            entry_id, ticket_ids = self._apply_lines(invoice, lines, items, actor)

            self._session.commit()
            logger.info("sales_update_invoice_committed", extra={
                "invoice_id": invoice.id,
                "total_amount": invoice.total_amount,
                "ticket_count": len(ticket_ids),
            })
            return invoice.to_result(entry_id, ticket_ids)

        except Exception:
            self._session.rollback()
            raise

    def delete_invoice(self, invoice_id: int, actor: Actor) -> None:
        """Reverse an OPEN, unpaid invoice's effects and remove it."""
        try:
            invoice = self._load_invoice(invoice_id)
            ensure_editable("Invoice", invoice.id, invoice.status, invoice.paid_amount)

            self._reverse_effects(invoice, actor, reason=f"Invoice {invoice.invoice_number} deleted")
            invoice_number = invoice.invoice_number
            self._session.delete(invoice)

            self._session.commit()
            logger.info("sales_delete_invoice_committed", extra={
                "invoice_id": invoice_id,
                "invoice_number": invoice_number,
                "actor_id": actor.user_id,
            })

        except Exception:
            self._session.rollback()
            raise

    def get_invoice(self, invoice_id: int) -> InvoiceResult:
        invoice = self._session.get(Invoice, invoice_id)
        if invoice is None:
            raise DocumentNotFoundError("Invoice", invoice_id)
        ticket_ids = tuple(
            self._session.scalars(
                select(ServiceTicket.id)
                .where(ServiceTicket.invoice_id == invoice.id)
                .order_by(ServiceTicket.id)
            ).all()
        )
        return invoice.to_result(ticket_ids=ticket_ids)

    # =========================================================================
    # Payments
    # =========================================================================

    def receive_payment(
        self,
        *,
        customer_id: int,
        amount: int,
        actor: Actor,
        payment_date: date | None = None,
        method: PaymentMethod = PaymentMethod.CASH,
        allocations: Mapping[int, int] | None = None,
        reference: str | None = None,
    ) -> CustomerPaymentResult:
        """
        Record money received and settle invoices.

        Bank transfers are deposited to the bank account, everything else to
        undeposited funds.  Posts Dr deposit account / Cr AR.

        Raises:
            ValidationError: the amount exceeds what the invoices still owe.
        """
        try:
            customer = self._session.get(Customer, customer_id)
            if customer is None:
                raise DocumentNotFoundError("Customer", customer_id)

            open_invoices = self._session.scalars(
                select(Invoice)
                .where(
                    Invoice.customer_id == customer_id,
                    Invoice.status.in_([InvoiceStatus.OPEN, InvoiceStatus.PARTIAL]),
                )
                .order_by(Invoice.invoice_date, Invoice.id)
                .with_for_update()
            ).all()
            documents = [
                OpenDocument(
                    document_id=inv.id,
                    document_date=inv.invoice_date,
                    open_balance=inv.balance_remaining,
                )
                for inv in open_invoices
            ]
            if allocations:
                plan = allocate_explicit(amount=amount, documents=documents, requested=allocations)
            else:
                plan = allocate_oldest_first(amount=amount, documents=documents)
            if plan.unallocated:
                raise ValidationError(
                    "amount",
                    f"payment {amount} exceeds the {plan.allocated} owed on open invoices",
                )

            payment_date = payment_date or self._clock.today()
            deposit_account = (
                self._config.bank_account
                if method == PaymentMethod.BANK_TRANSFER
                else self._config.undeposited_funds_account
            )
            payment = CustomerPayment(
                customer_id=customer_id,
                payment_date=payment_date,
                amount=amount,
                method=method,
                reference=reference,
                created_by=actor.user_id,
            )
            self._session.add(payment)

            by_id = {inv.id: inv for inv in open_invoices}
            results: list[InvoiceAllocationResult] = []
            for line in plan.lines:
                invoice = by_id[line.document_id]
                action = "pay_full" if line.fully_paid else "pay_partial"
                invoice.status = InvoiceStatus(
                    INVOICE_WORKFLOW.transition(invoice.status, action).to_state
                )
                invoice.paid_amount += line.amount
                invoice.updated_by = actor.user_id
                payment.allocations.append(
                    PaymentAllocation(
                        invoice_id=invoice.id, amount=line.amount, created_by=actor.user_id,
                    )
                )
                results.append(
                    InvoiceAllocationResult(
                        invoice_id=invoice.id, amount=line.amount, new_status=invoice.status,
                    )
                )
            self._session.flush()

            builder = PostingLineBuilder()
            builder.debit(deposit_account, amount, "Customer payment")
            builder.credit(self._config.accounts_receivable_account, amount, "Customer payment")
            entry = post_builder(
                self._poster,
                builder,
                actor=actor,
                entry_date=payment_date,
                description=f"Payment from {customer.name}",
                source_type=SourceType.CUSTOMER_PAYMENT,
                source_id=payment.id,
                reference=reference,
            )

            self._session.commit()
            logger.info("sales_customer_payment_committed", extra={
                "payment_id": payment.id,
                "customer_id": customer_id,
                "amount": amount,
                "method": method.value,
                "invoices_settled": len(results),
            })
            return CustomerPaymentResult(
                payment_id=payment.id,
                customer_id=customer_id,
                amount=amount,
                payment_date=payment_date,
                deposit_account=deposit_account,
                allocations=tuple(results),
                journal_entry_id=entry.id if entry else None,
            )

        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Internals
    # =========================================================================

    def _load_invoice(self, invoice_id: int) -> Invoice:
        invoice = self._session.get(Invoice, invoice_id, with_for_update=True)
        if invoice is None:
            raise DocumentNotFoundError("Invoice", invoice_id)
        return invoice

    def _load_items(self, lines: Sequence[InvoiceLineInput]) -> dict[int, Item]:
        items: dict[int, Item] = {}
        for line in lines:
            item = self._session.get(Item, line.item_id)
            if item is None:
                raise ItemNotFoundError(line.item_id)
            if not item.is_active:
                raise ValidationError("item_id", f"item {item.sku} is inactive")
            items[item.id] = item
        return items

    def _apply_lines(
        self,
        invoice: Invoice,
        lines: Sequence[InvoiceLineInput],
        items: dict[int, Item],
        actor: Actor,
    ) -> tuple[int | None, tuple[int, ...]]:
        """Issue stock, price lines, post the entry and run the steps."""
        pricing = [
            LineInput(
                quantity=line.quantity,
                unit_price=items[line.item_id].sales_price if line.unit_price is None else line.unit_price,
                discount_amount=line.discount_amount,
                discount_rate_bps=line.discount_rate_bps,
                tax_rate_bps=line.tax_rate_bps,
            )
            for line in lines
        ]
        totals = compute_document_totals(pricing)

        builder = PostingLineBuilder()
        for seq, (line, priced, amounts) in enumerate(zip(lines, pricing, totals.lines)):
            item = items[line.item_id]
            cost_total = 0
            asset_account = None
            if item.is_stocked:
                issue = self._ledger.issue_stock(
                    item.id,
                    line.quantity,
                    source_type=SourceType.INVOICE,
                    source_id=invoice.id,
                    actor=actor,
                )
                cost_total = issue.total_cost
                asset_account = resolve_asset_account(
                    item, self._config.item_class_accounts, self._config.fallback_asset_account,
                )
                builder.debit(self._config.cost_of_goods_sold_account, cost_total, "Cost of goods sold")
                builder.credit(asset_account, cost_total, "Inventory issued")

            invoice.lines.append(
                InvoiceLine(
                    item_id=item.id,
                    line_seq=seq,
                    description=line.description or item.name,
                    quantity=line.quantity,
                    unit_price=priced.unit_price,
                    discount_rate_bps=line.discount_rate_bps,
                    tax_rate_bps=line.tax_rate_bps,
                    gross_amount=amounts.gross,
                    discount_amount=amounts.discount,
                    net_amount=amounts.net,
                    tax_amount=amounts.tax,
                    line_total=amounts.total,
                    cost_total=cost_total,
                    asset_account_code=asset_account,
                    created_by=actor.user_id,
                )
            )

        invoice.subtotal = totals.subtotal
        invoice.discount_total = totals.discount_total
        invoice.tax_total = totals.tax_total
        invoice.total_amount = totals.total_amount
        self._session.flush()

        reference = invoice.invoice_number
        builder.debit(self._config.accounts_receivable_account, totals.total_amount, f"Invoice {reference}")
        builder.credit(self._config.sales_revenue_account, totals.subtotal, f"Invoice {reference}")
        builder.debit(self._config.sales_discounts_account, totals.discount_total, "Sales discounts")
        builder.credit(self._config.sales_tax_payable_account, totals.tax_total, "Sales tax")

        entry = post_builder(
            self._poster,
            builder,
            actor=actor,
            entry_date=invoice.invoice_date,
            description=f"Customer invoice {reference}",
            source_type=SourceType.INVOICE,
            source_id=invoice.id,
            reference=reference,
        )

        run_steps(self._steps, self._context(invoice, actor))
        ticket_ids = tuple(
            self._session.scalars(
                select(ServiceTicket.id)
                .where(ServiceTicket.invoice_id == invoice.id)
                .order_by(ServiceTicket.id)
            ).all()
        )
        return (entry.id if entry else None), ticket_ids

    def _reverse_effects(self, invoice: Invoice, actor: Actor, reason: str) -> None:
        revert_steps(self._steps, self._context(invoice, actor))
        inventory = self._ledger.reverse_source(SourceType.INVOICE, invoice.id, actor)
        entries = self._poster.reverse_source(SourceType.INVOICE, invoice.id, actor, reason)
        logger.info("sales_invoice_effects_reversed", extra={
            "invoice_id": invoice.id,
            "consumptions_reversed": inventory.consumptions_reversed,
            "entries_reversed": len(entries),
        })

    def _context(self, invoice: Invoice, actor: Actor) -> PostProcessingContext:
        return PostProcessingContext(
            session=self._session, invoice=invoice, actor=actor, clock=self._clock,
        )
