"""
Purchasing Module Service (``erp_modules.purchasing.service``).

Responsibility
--------------
Purchase orders, vendor bills and vendor payments.  A goods receipt against
a purchase order creates layers at the ordered cost and posts Dr inventory /
Cr goods received not invoiced.  A bill receives its stock lines into
inventory layers and posts Dr inventory / Cr accounts payable; a payment
settles bills oldest first and posts Dr accounts payable / Cr bank.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  ``PurchasingService`` composes the
``InventoryLedger`` (layers), the kernel ``GeneralLedgerPoster`` (journal)
and the pure engines for approval and payment allocation.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (``commit`` on success,
  ``rollback`` and re-raise on any exception).
* Bills above the approval threshold entered by a non-administrator stay
  PENDING and touch neither inventory nor the journal until approved.
* Edit and delete require an OPEN bill with no payment.  The previous
  inventory and journal effects are reversed exactly once inside the same
  transaction before the new line set is applied.
* Layers received from a bill carry batch number ``BILL-{bill_id}-{item_id}``.
* A purchase order can be edited or deleted only while OPEN with nothing
  received.  Receipts never exceed the ordered quantity of a line.

Failure modes
-------------
* ``DocumentNotFoundError`` for unknown vendors, orders or bills.
* ``DocumentLockedError`` when editing or deleting a paid or partially paid bill.
  Also for a purchase order that has received goods or is CLOSED.
* ``LayerConsumedError`` when the bill's stock was already sold or consumed.
* ``PermissionDeniedError`` / ``InvalidApprovalTransitionError`` on approval.
* ``ValidationError`` on empty documents, over-receipts and payments that
  exceed open balances.

Audit relevance
---------------
Structured log events at start and commit of every public method, carrying
bill ids, numbers, totals and approval state.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_engines.allocation import OpenDocument, allocate_explicit, allocate_oldest_first
from erp_engines.approval import evaluate_bill_approval
from erp_kernel.domain.actor import Actor
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.dtos import PostingLineBuilder
from erp_kernel.domain.payment import PaymentMethod
from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import (
    DocumentLockedError,
    DocumentNotFoundError,
    InvalidApprovalTransitionError,
    ItemNotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.item import Item
from erp_kernel.services.journal_poster import GeneralLedgerPoster
from erp_modules._numbering import next_document_number
from erp_modules._posting_helpers import ensure_editable, post_builder, resolve_asset_account
from erp_modules.purchasing.config import PurchasingConfig
from erp_modules.purchasing.models import (
    ApprovalStatus,
    BillAllocationResult,
    BillLineInput,
    BillResult,
    BillStatus,
    GoodsReceiptResult,
    PurchaseOrderLineInput,
    PurchaseOrderResult,
    PurchaseOrderStatus,
    ReceiptLineInput,
    VendorPaymentResult,
)
from erp_modules.purchasing.orm import (
    BillPaymentAllocation,
    PurchaseOrder,
    PurchaseOrderLine,
    Vendor,
    VendorBill,
    VendorBillLine,
    VendorPayment,
)
from erp_modules.purchasing.workflows import (
    BILL_APPROVAL_WORKFLOW,
    BILL_WORKFLOW,
    PURCHASE_ORDER_WORKFLOW,
)
from erp_services.inventory_ledger import InventoryLedger

logger = get_logger("modules.purchasing.service")


class PurchasingService:
    """
    Orchestrates purchase orders, vendor bills and payments.

    Contract:
        Receives a Session, an optional PurchasingConfig and Clock via
        constructor injection.
    Guarantees:
        - A committed bill that allows posting has exactly one POSTED
          journal entry for its current line set.
        - A failed call leaves no order, bill, layer or journal row behind.
    Non-goals:
        - Matching bills against receipts; a bill posts its own stock and
          does not clear goods received not invoiced.
    """

    def __init__(
        self,
        session: Session,
        config: PurchasingConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config or PurchasingConfig()
        self._clock = clock or SystemClock()
        self._ledger = InventoryLedger(session, self._clock)
        self._poster = GeneralLedgerPoster(session, self._clock)

    # =========================================================================
    # Bills
    # =========================================================================

    def create_bill(
        self,
        *,
        vendor_id: int,
        lines: Sequence[BillLineInput],
        actor: Actor,
        bill_date: date | None = None,
        due_date: date | None = None,
        bill_number: str | None = None,
        notes: str | None = None,
    ) -> BillResult:
        """
        Record a vendor bill.

        Postconditions:
            - Bill persisted OPEN.  Unless approval is pending, one layer per
              stock line and one journal entry (Dr inventory / Cr AP).
        Raises:
            Exception: re-raised after rollback.
        """
        try:
            if not lines:
                raise ValidationError("lines", "a bill needs at least one line")
            vendor = self._session.get(Vendor, vendor_id)
            if vendor is None:
                raise DocumentNotFoundError("Vendor", vendor_id)

            bill_date = bill_date or self._clock.today()
            logger.info("purchasing_create_bill_started", extra={
                "vendor_id": vendor_id,
                "line_count": len(lines),
                "actor_id": actor.user_id,
            })

            bill = VendorBill(
                vendor_id=vendor.id,
                bill_number=bill_number or next_document_number(
                    self._session, VendorBill.bill_number,
                    self._config.bill_number_prefix, bill_date.year,
                ),
                bill_date=bill_date,
                due_date=due_date or bill_date + timedelta(days=self._config.payment_terms_days),
                status=BillStatus.OPEN,
                approval_status=ApprovalStatus.NOT_REQUIRED,
                total_amount=0,
                amount_paid=0,
                notes=notes,
                created_by=actor.user_id,
            )
            self._session.add(bill)
            self._attach_lines(bill, lines, actor)
            self._apply_approval_policy(bill, actor)
            self._session.flush()

            entry_id = None
            if bill.approval_status.allows_posting:
                entry_id = self._apply_effects(bill, actor)

            self._session.commit()
            logger.info("purchasing_create_bill_committed", extra={
                "bill_id": bill.id,
                "bill_number": bill.bill_number,
                "total_amount": bill.total_amount,
                "approval_status": bill.approval_status.value,
                "journal_entry_id": entry_id,
            })
            return bill.to_result(entry_id)

        except Exception:
            self._session.rollback()
            raise

    def update_bill(
        self,
        bill_id: int,
        *,
        lines: Sequence[BillLineInput],
        actor: Actor,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> BillResult:
        """
        Replace the line set of an OPEN, unpaid bill.

        The previous layers and journal entry are reversed before the new
        lines are received and posted, in one transaction.
        """
        try:
            if not lines:
                raise ValidationError("lines", "a bill needs at least one line")
            bill = self._load_bill(bill_id)
            ensure_editable("VendorBill", bill.id, bill.status, bill.amount_paid)

            logger.info("purchasing_update_bill_started", extra={
                "bill_id": bill.id,
                "previous_total": bill.total_amount,
                "line_count": len(lines),
            })

            self._reverse_effects(bill, actor, reason=f"Bill {bill.bill_number} updated")

            bill.lines.clear()
            self._session.flush()
            if due_date is not None:
                bill.due_date = due_date
            if notes is not None:
                bill.notes = notes
            bill.updated_by = actor.user_id
            self._attach_lines(bill, lines, actor)
            self._apply_approval_policy(bill, actor)
            self._session.flush()

            entry_id = None
            if bill.approval_status.allows_posting:
                entry_id = self._apply_effects(bill, actor)

            self._session.commit()
            logger.info("purchasing_update_bill_committed", extra={
                "bill_id": bill.id,
                "total_amount": bill.total_amount,
                "approval_status": bill.approval_status.value,
            })
            return bill.to_result(entry_id)

        except Exception:
            self._session.rollback()
            raise

    def delete_bill(self, bill_id: int, actor: Actor) -> None:
        """Reverse an OPEN, unpaid bill's effects and remove it."""
        try:
            bill = self._load_bill(bill_id)
            ensure_editable("VendorBill", bill.id, bill.status, bill.amount_paid)

            self._reverse_effects(bill, actor, reason=f"Bill {bill.bill_number} deleted")
            bill_number = bill.bill_number
            self._session.delete(bill)

            self._session.commit()
            logger.info("purchasing_delete_bill_committed", extra={
                "bill_id": bill_id,
                "bill_number": bill_number,
                "actor_id": actor.user_id,
            })

        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Approval
    # =========================================================================

    def approve_bill(self, bill_id: int, actor: Actor) -> BillResult:
        """PENDING -> APPROVED; receives the stock and posts the bill."""
        try:
            bill = self._decide(bill_id, actor, action="approve")
            bill.approved_by = actor.user_id
            bill.approved_at = self._clock.now()
            entry_id = self._apply_effects(bill, actor)

            self._session.commit()
            logger.info("purchasing_bill_approved", extra={
                "bill_id": bill.id,
                "approved_by": actor.user_id,
                "journal_entry_id": entry_id,
            })
            return bill.to_result(entry_id)

        except Exception:
            self._session.rollback()
            raise

    def reject_bill(self, bill_id: int, actor: Actor) -> BillResult:
        """PENDING -> REJECTED; the bill stays unposted."""
        try:
            bill = self._decide(bill_id, actor, action="reject")
            self._session.commit()
            logger.info("purchasing_bill_rejected", extra={
                "bill_id": bill.id,
                "rejected_by": actor.user_id,
            })
            return bill.to_result()

        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Payments
    # =========================================================================

    def pay_vendor_bills(
        self,
        *,
        vendor_id: int,
        amount: int,
        actor: Actor,
        payment_date: date | None = None,
        method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
        allocations: Mapping[int, int] | None = None,
        reference: str | None = None,
    ) -> VendorPaymentResult:
        """
        Pay a vendor and settle its open bills.

        Without explicit ``allocations`` the amount is applied to the
        vendor's posted bills oldest first.  Posts Dr AP / Cr bank.

        Raises:
            ValidationError: the amount exceeds what the bills still owe.
        """
        try:
            vendor = self._session.get(Vendor, vendor_id)
            if vendor is None:
                raise DocumentNotFoundError("Vendor", vendor_id)

            open_bills = self._session.scalars(
                select(VendorBill)
                .where(
                    VendorBill.vendor_id == vendor_id,
                    VendorBill.status.in_([BillStatus.OPEN, BillStatus.PARTIAL]),
                    VendorBill.approval_status.in_(
                        [ApprovalStatus.NOT_REQUIRED, ApprovalStatus.APPROVED]
                    ),
                )
                .order_by(VendorBill.bill_date, VendorBill.id)
                .with_for_update()
            ).all()
            documents = [
                OpenDocument(
                    document_id=b.id,
                    document_date=b.bill_date,
                    open_balance=b.balance_remaining,
                )
                for b in open_bills
            ]
            if allocations:
                plan = allocate_explicit(amount=amount, documents=documents, requested=allocations)
            else:
                plan = allocate_oldest_first(amount=amount, documents=documents)
            if plan.unallocated:
                raise ValidationError(
                    "amount",
                    f"payment {amount} exceeds the {plan.allocated} owed on open bills",
                )

            payment_date = payment_date or self._clock.today()
            payment = VendorPayment(
                vendor_id=vendor_id,
                payment_date=payment_date,
                amount=amount,
                method=method,
                reference=reference,
                created_by=actor.user_id,
            )
            self._session.add(payment)

            by_id = {b.id: b for b in open_bills}
            results: list[BillAllocationResult] = []
            for line in plan.lines:
                bill = by_id[line.document_id]
                action = "pay_full" if line.fully_paid else "pay_partial"
                bill.status = BillStatus(BILL_WORKFLOW.transition(bill.status, action).to_state)
                bill.amount_paid += line.amount
                bill.updated_by = actor.user_id
                payment.allocations.append(
                    BillPaymentAllocation(
                        bill_id=bill.id, amount=line.amount, created_by=actor.user_id,
                    )
                )
                results.append(
                    BillAllocationResult(bill_id=bill.id, amount=line.amount, new_status=bill.status)
                )
            self._session.flush()

            builder = PostingLineBuilder()
            builder.debit(self._config.accounts_payable_account, amount, "Vendor payment")
            builder.credit(self._config.bank_account, amount, "Vendor payment")
            entry = post_builder(
                self._poster,
                builder,
                actor=actor,
                entry_date=payment_date,
                description=f"Payment to {vendor.name}",
                source_type=SourceType.VENDOR_PAYMENT,
                source_id=payment.id,
                reference=reference,
            )

            self._session.commit()
            logger.info("purchasing_vendor_payment_committed", extra={
                "payment_id": payment.id,
                "vendor_id": vendor_id,
                "amount": amount,
                "bills_settled": len(results),
            })
            return VendorPaymentResult(
                payment_id=payment.id,
                vendor_id=vendor_id,
                amount=amount,
                payment_date=payment_date,
                allocations=tuple(results),
                journal_entry_id=entry.id if entry else None,
            )

        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Purchase orders
    # =========================================================================

    def create_purchase_order(
        self,
        *,
        vendor_id: int,
        lines: Sequence[PurchaseOrderLineInput],
        actor: Actor,
        order_date: date | None = None,
        order_number: str | None = None,
        notes: str | None = None,
    ) -> PurchaseOrderResult:
        """Record an OPEN purchase order.  Touches neither inventory nor the journal."""
        try:
            if not lines:
                raise ValidationError("lines", "a purchase order needs at least one line")
            vendor = self._session.get(Vendor, vendor_id)
            if vendor is None:
                raise DocumentNotFoundError("Vendor", vendor_id)

            order_date = order_date or self._clock.today()
            order = PurchaseOrder(
                vendor_id=vendor.id,
                order_number=order_number or next_document_number(
                    self._session, PurchaseOrder.order_number,
                    self._config.purchase_order_number_prefix, order_date.year,
                ),
                order_date=order_date,
                status=PurchaseOrderStatus.OPEN,
                total_amount=0,
                notes=notes,
                created_by=actor.user_id,
            )
            self._session.add(order)
            self._attach_order_lines(order, lines, actor)
            self._session.flush()

            self._session.commit()
            logger.info("purchasing_create_purchase_order_committed", extra={
                "purchase_order_id": order.id,
                "order_number": order.order_number,
                "vendor_id": vendor.id,
                "total_amount": order.total_amount,
                "line_count": len(lines),
            })
            return order.to_result()

        except Exception:
            self._session.rollback()
            raise

    def update_purchase_order(
        self,
        purchase_order_id: int,
        *,
        lines: Sequence[PurchaseOrderLineInput],
        actor: Actor,
        order_date: date | None = None,
        notes: str | None = None,
    ) -> PurchaseOrderResult:
        """Replace the lines of an OPEN order that has received nothing."""
        try:
            if not lines:
                raise ValidationError("lines", "a purchase order needs at least one line")
            order = self._load_order(purchase_order_id)
            self._ensure_order_editable(order)

            order.lines.clear()
            self._session.flush()
            if order_date is not None:
                order.order_date = order_date
            if notes is not None:
                order.notes = notes
            order.updated_by = actor.user_id
            self._attach_order_lines(order, lines, actor)
            self._session.flush()

            self._session.commit()
            logger.info("purchasing_update_purchase_order_committed", extra={
                "purchase_order_id": order.id,
                "total_amount": order.total_amount,
                "line_count": len(lines),
            })
            return order.to_result()

        except Exception:
            self._session.rollback()
            raise

    def delete_purchase_order(self, purchase_order_id: int, actor: Actor) -> None:
        """Remove an OPEN order that has received nothing."""
        try:
            order = self._load_order(purchase_order_id)
            self._ensure_order_editable(order)
            order_number = order.order_number
            self._session.delete(order)

            self._session.commit()
            logger.info("purchasing_delete_purchase_order_committed", extra={
                "purchase_order_id": purchase_order_id,
                "order_number": order_number,
                "actor_id": actor.user_id,
            })

        except Exception:
            self._session.rollback()
            raise

    def receive_purchase_order(
        self,
        purchase_order_id: int,
        *,
        lines: Sequence[ReceiptLineInput],
        actor: Actor,
        receipt_date: date | None = None,
        warehouse_id: int | None = None,
    ) -> GoodsReceiptResult:
        """
        Receive goods against an order.

        Postconditions:
            - One layer per received stock line at the ordered unit cost,
              batch ``PO-{order_id}-{item_id}``.
            - One journal entry Dr inventory / Cr goods received not
              invoiced for the received value.
            - The order moves to PARTIAL, or CLOSED once every line is
              fully received.
        Raises:
            DocumentLockedError: the order is CLOSED.
            ValidationError: a line is unknown or would be over-received.
        """
        try:
            if not lines:
                raise ValidationError("lines", "a receipt needs at least one line")
            order = self._load_order(purchase_order_id)
            status = PurchaseOrderStatus(order.status)
            if status == PurchaseOrderStatus.CLOSED:
                raise DocumentLockedError("PurchaseOrder", order.id, status.value)

            logger.info("purchasing_receive_purchase_order_started", extra={
                "purchase_order_id": order.id,
                "line_count": len(lines),
                "actor_id": actor.user_id,
            })

            by_id = {line.id: line for line in order.lines}
            receipt_date = receipt_date or self._clock.today()
            builder = PostingLineBuilder()
            layer_ids: list[int] = []
            received_value = 0
            for receipt in lines:
                line = by_id.get(receipt.line_id)
                if line is None:
                    raise ValidationError(
                        "line_id", f"line {receipt.line_id} is not on order {order.order_number}",
                    )
                if receipt.quantity > line.quantity_outstanding:
                    raise ValidationError(
                        "quantity",
                        f"line {line.id} has {line.quantity_outstanding} outstanding, "
                        f"cannot receive {receipt.quantity}",
                    )
                item = self._session.get(Item, line.item_id)
                line.quantity_received += receipt.quantity
                line.updated_by = actor.user_id
                value = receipt.quantity * line.unit_cost
                received_value += value
                if item.is_stocked:
                    layer = self._ledger.receive_stock(
                        item.id,
                        receipt.quantity,
                        line.unit_cost,
                        source_type=SourceType.PURCHASE_RECEIPT,
                        source_id=order.id,
                        warehouse_id=warehouse_id,
                        batch_number=f"PO-{order.id}-{item.id}",
                        reason=f"Receipt {order.order_number}",
                        actor=actor,
                    )
                    layer_ids.append(layer.id)
                builder.debit(
                    resolve_asset_account(
                        item, self._config.item_class_accounts, self._config.fallback_asset_account,
                    ),
                    value,
                    f"Receipt {order.order_number}",
                )
            builder.credit(
                self._config.goods_received_account, received_value, f"Receipt {order.order_number}",
            )

            action = "receive_full" if all(
                line.quantity_outstanding == 0 for line in order.lines
            ) else "receive_partial"
            order.status = PurchaseOrderStatus(
                PURCHASE_ORDER_WORKFLOW.transition(status, action).to_state
            )
            order.updated_by = actor.user_id
            self._session.flush()

            entry = post_builder(
                self._poster,
                builder,
                actor=actor,
                entry_date=receipt_date,
                description=f"Goods received on {order.order_number}",
                source_type=SourceType.PURCHASE_RECEIPT,
                source_id=order.id,
                reference=order.order_number,
            )

            self._session.commit()
            logger.info("purchasing_receive_purchase_order_committed", extra={
                "purchase_order_id": order.id,
                "order_number": order.order_number,
                "status": order.status.value,
                "received_value": received_value,
                "layer_count": len(layer_ids),
                "journal_entry_id": entry.id if entry else None,
            })
            return GoodsReceiptResult(
                purchase_order_id=order.id,
                order_number=order.order_number,
                status=PurchaseOrderStatus(order.status),
                received_value=received_value,
                layer_ids=tuple(layer_ids),
                journal_entry_id=entry.id if entry else None,
            )

        except Exception:
            self._session.rollback()
            raise

    def close_purchase_order(self, purchase_order_id: int, actor: Actor) -> PurchaseOrderResult:
        """Close an order short; outstanding quantities are no longer expected."""
        try:
            order = self._load_order(purchase_order_id)
            order.status = PurchaseOrderStatus(
                PURCHASE_ORDER_WORKFLOW.transition(order.status, "close").to_state
            )
            order.updated_by = actor.user_id

            self._session.commit()
            logger.info("purchasing_purchase_order_closed", extra={
                "purchase_order_id": order.id,
                "received_value": order.to_result().received_value,
                "actor_id": actor.user_id,
            })
            return order.to_result()

        except Exception:
            self._session.rollback()
            raise

    def get_purchase_order(self, purchase_order_id: int) -> PurchaseOrderResult:
        order = self._session.get(PurchaseOrder, purchase_order_id)
        if order is None:
            raise DocumentNotFoundError("PurchaseOrder", purchase_order_id)
        return order.to_result()

    def get_bill(self, bill_id: int) -> BillResult:
        bill = self._session.get(VendorBill, bill_id)
        if bill is None:
            raise DocumentNotFoundError("VendorBill", bill_id)
        return bill.to_result()

    # =========================================================================
    # Internals
    # =========================================================================

    def _load_bill(self, bill_id: int) -> VendorBill:
        bill = self._session.get(VendorBill, bill_id, with_for_update=True)
        if bill is None:
            raise DocumentNotFoundError("VendorBill", bill_id)
        return bill

    def _load_order(self, purchase_order_id: int) -> PurchaseOrder:
        order = self._session.get(PurchaseOrder, purchase_order_id, with_for_update=True)
        if order is None:
            raise DocumentNotFoundError("PurchaseOrder", purchase_order_id)
        return order

    @staticmethod
    def _ensure_order_editable(order: PurchaseOrder) -> None:
        status = PurchaseOrderStatus(order.status)
        if status != PurchaseOrderStatus.OPEN:
            raise DocumentLockedError("PurchaseOrder", order.id, status.value)
        if order.has_receipts:
            raise DocumentLockedError(
                "PurchaseOrder", order.id, status.value, reason="items have been received",
            )

    def _attach_order_lines(
        self, order: PurchaseOrder, lines: Sequence[PurchaseOrderLineInput], actor: Actor,
    ) -> None:
        total = 0
        for seq, line in enumerate(lines):
            item = self._session.get(Item, line.item_id)
            if item is None:
                raise ItemNotFoundError(line.item_id)
            order.lines.append(
                PurchaseOrderLine(
                    item_id=item.id,
                    line_seq=seq,
                    description=line.description or item.name,
                    quantity_ordered=line.quantity,
                    quantity_received=0,
                    unit_cost=line.unit_cost,
                    created_by=actor.user_id,
                )
            )
            total += line.amount
        order.total_amount = total

    def _attach_lines(
        self, bill: VendorBill, lines: Sequence[BillLineInput], actor: Actor,
    ) -> None:
        total = 0
        for seq, line in enumerate(lines):
            item = self._session.get(Item, line.item_id)
            if item is None:
                raise ItemNotFoundError(line.item_id)
            bill.lines.append(
                VendorBillLine(
                    item_id=item.id,
                    line_seq=seq,
                    description=line.description or item.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    amount=line.amount,
                    asset_account_code=resolve_asset_account(
                        item,
                        self._config.item_class_accounts,
                        self._config.fallback_asset_account,
                    ),
                    created_by=actor.user_id,
                )
            )
            total += line.amount
        bill.total_amount = total

    def _apply_approval_policy(self, bill: VendorBill, actor: Actor) -> None:
        decision = evaluate_bill_approval(
            total_amount=bill.total_amount,
            actor=actor,
            enabled=self._config.approval_enabled,
            threshold=self._config.approval_threshold,
        )
        bill.approval_status = (
            ApprovalStatus.PENDING if decision.requires_approval else ApprovalStatus.NOT_REQUIRED
        )
        if decision.requires_approval:
            logger.info("purchasing_bill_pending_approval", extra={
                "bill_number": bill.bill_number,
                "total_amount": bill.total_amount,
                "reason": decision.reason,
            })

    def _apply_effects(self, bill: VendorBill, actor: Actor) -> int | None:
        """Receive stock lines and post the bill.  Returns the entry id."""
        builder = PostingLineBuilder()
        for line in bill.lines:
            item = self._session.get(Item, line.item_id)
            if item.is_stocked:
                self._ledger.receive_stock(
                    item.id,
                    line.quantity,
                    line.unit_price,
                    source_type=SourceType.BILL,
                    source_id=bill.id,
                    batch_number=f"BILL-{bill.id}-{item.id}",
                    reason=f"Bill {bill.bill_number}",
                    actor=actor,
                )
            builder.debit(line.asset_account_code, line.amount, f"Bill {bill.bill_number}")
        builder.credit(self._config.accounts_payable_account, bill.total_amount, f"Bill {bill.bill_number}")

        entry = post_builder(
            self._poster,
            builder,
            actor=actor,
            entry_date=bill.bill_date,
            description=f"Vendor bill {bill.bill_number}",
            source_type=SourceType.BILL,
            source_id=bill.id,
            reference=bill.bill_number,
        )
        return entry.id if entry else None

    def _reverse_effects(self, bill: VendorBill, actor: Actor, reason: str) -> None:
        inventory = self._ledger.reverse_source(SourceType.BILL, bill.id, actor)
        entries = self._poster.reverse_source(SourceType.BILL, bill.id, actor, reason)
        logger.info("purchasing_bill_effects_reversed", extra={
            "bill_id": bill.id,
            "layers_removed": inventory.layers_removed,
            "entries_reversed": len(entries),
        })

    def _decide(self, bill_id: int, actor: Actor, action: str) -> VendorBill:
        if not actor.is_admin:
            logger.warning("purchasing_approval_denied", extra={
                "bill_id": bill_id,
                "actor_id": actor.user_id,
                "role": actor.role.value,
            })
            raise PermissionDeniedError(actor.user_id, actor.role.value, f"{action}_bill")
        bill = self._load_bill(bill_id)
        current = ApprovalStatus(bill.approval_status)
        transition = BILL_APPROVAL_WORKFLOW.find(current, action)
        if transition is None:
            raise InvalidApprovalTransitionError("VendorBill", bill.id, current.value)
        bill.approval_status = ApprovalStatus(transition.to_state)
        bill.updated_by = actor.user_id
        return bill
