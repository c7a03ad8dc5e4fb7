"""
Tests for purchase orders and goods receipts.

Tests cover:
- Orders are numbered, totalled and post nothing
- Receipts create layers at the ordered cost and accrue Dr inventory / Cr GRNI
- OPEN -> PARTIAL -> CLOSED, including closing short
- Over-receipt and receipt against a CLOSED order
- Edit and delete only while OPEN with nothing received
"""

import pytest
from sqlalchemy import select

from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import (
    DocumentLockedError,
    DocumentNotFoundError,
    InvalidTransitionError,
    ValidationError,
)
from erp_kernel.models.item import ItemClass
from erp_kernel.selectors.ledger_selector import LedgerSelector
from erp_modules.purchasing import (
    PurchaseOrderLineInput,
    PurchaseOrderStatus,
    PurchasingService,
    ReceiptLineInput,
)
from erp_modules.purchasing.orm import PurchaseOrderLine
from erp_services.inventory_ledger import InventoryLedger
from erp_services.reconciliation_service import InventoryReconciliationService


@pytest.fixture
def purchasing(session, clock):
    return PurchasingService(session, clock=clock)


@pytest.fixture
def resin(make_item):
    return make_item("RM-RESIN")


@pytest.fixture
def order(purchasing, vendor, resin, make_item, clerk):
    pigment = make_item("RM-PIGMENT")
    return purchasing.create_purchase_order(
        vendor_id=vendor.id,
        lines=[PurchaseOrderLineInput(resin.id, 10, 1_000), PurchaseOrderLineInput(pigment.id, 4, 250)],
        actor=clerk,
    )


def _balance(session, code):
    return LedgerSelector(session).account_balance(code)


class TestCreatePurchaseOrder:

    def test_numbered_and_unposted(self, session, order, resin):
        assert order.order_number == "PO-2025-00001"
        assert order.status == PurchaseOrderStatus.OPEN
        assert order.total_amount == 11_000
        assert [line.quantity_outstanding for line in order.lines] == [10, 4]
        assert InventoryLedger(session).layers_for_item(resin.id) == []
        assert LedgerSelector(session).entries_for_source(
            SourceType.PURCHASE_RECEIPT, order.purchase_order_id,
        ) == []

    def test_empty_order_rejected(self, purchasing, vendor, clerk):
        with pytest.raises(ValidationError):
            purchasing.create_purchase_order(vendor_id=vendor.id, lines=[], actor=clerk)

    def test_unknown_vendor(self, purchasing, resin, clerk):
        with pytest.raises(DocumentNotFoundError):
            purchasing.create_purchase_order(
                vendor_id=999, lines=[PurchaseOrderLineInput(resin.id, 1, 1)], actor=clerk,
            )


class TestReceivePurchaseOrder:

    def test_partial_receipt_creates_layer_and_accrual(self, session, purchasing, order, resin, clerk):
        resin_line = order.lines[0]

        receipt = purchasing.receive_purchase_order(
            order.purchase_order_id,
            lines=[ReceiptLineInput(resin_line.line_id, 6)],
            actor=clerk,
        )

        assert receipt.status == PurchaseOrderStatus.PARTIAL
        assert receipt.received_value == 6_000
        (layer,) = InventoryLedger(session).layers_for_item(resin.id)
        assert layer.id == receipt.layer_ids[0]
        assert layer.batch_number == f"PO-{order.purchase_order_id}-{resin.id}"
        assert (layer.initial_qty, layer.unit_cost) == (6, 1_000)
        assert layer.source_type == SourceType.PURCHASE_RECEIPT
        assert resin.quantity_on_hand == 6
        assert _balance(session, "1310") == 6_000
        assert _balance(session, "2110") == 6_000
        assert purchasing.get_purchase_order(order.purchase_order_id).lines[0].quantity_received == 6

    def test_full_receipt_closes_order(self, session, purchasing, order, clerk):
        first, second = order.lines
        purchasing.receive_purchase_order(
            order.purchase_order_id, lines=[ReceiptLineInput(first.line_id, 4)], actor=clerk,
        )

        receipt = purchasing.receive_purchase_order(
            order.purchase_order_id,
            lines=[ReceiptLineInput(first.line_id, 6), ReceiptLineInput(second.line_id, 4)],
            actor=clerk,
        )

        assert receipt.status == PurchaseOrderStatus.CLOSED
        result = purchasing.get_purchase_order(order.purchase_order_id)
        assert result.received_value == result.total_amount == 11_000
        assert _balance(session, "2110") == 11_000
        assert len(LedgerSelector(session).entries_for_source(
            SourceType.PURCHASE_RECEIPT, order.purchase_order_id,
        )) == 2

    def test_over_receipt_rejected(self, session, purchasing, order, resin, clerk):
        line = order.lines[0]
        purchasing.receive_purchase_order(
            order.purchase_order_id, lines=[ReceiptLineInput(line.line_id, 8)], actor=clerk,
        )

        with pytest.raises(ValidationError):
            purchasing.receive_purchase_order(
                order.purchase_order_id, lines=[ReceiptLineInput(line.line_id, 3)], actor=clerk,
            )

        assert resin.quantity_on_hand == 8
        assert _balance(session, "2110") == 8_000

    def test_repeated_line_cannot_exceed_order(self, purchasing, order, clerk):
        line = order.lines[0]
        with pytest.raises(ValidationError):
            purchasing.receive_purchase_order(
                order.purchase_order_id,
                lines=[ReceiptLineInput(line.line_id, 6), ReceiptLineInput(line.line_id, 6)],
                actor=clerk,
            )

    def test_line_from_other_order_rejected(self, purchasing, order, vendor, resin, clerk):
        other = purchasing.create_purchase_order(
            vendor_id=vendor.id, lines=[PurchaseOrderLineInput(resin.id, 1, 10)], actor=clerk,
        )
        with pytest.raises(ValidationError):
            purchasing.receive_purchase_order(
                order.purchase_order_id,
                lines=[ReceiptLineInput(other.lines[0].line_id, 1)],
                actor=clerk,
            )

    def test_closed_order_locked(self, purchasing, order, clerk):
        purchasing.close_purchase_order(order.purchase_order_id, clerk)

        with pytest.raises(DocumentLockedError):
            purchasing.receive_purchase_order(
                order.purchase_order_id,
                lines=[ReceiptLineInput(order.lines[0].line_id, 1)],
                actor=clerk,
            )

    def test_service_line_accrues_without_layer(self, session, purchasing, vendor, make_item, clerk):
        freight = make_item("SVC-FREIGHT", item_class=ItemClass.SERVICE)
        po = purchasing.create_purchase_order(
            vendor_id=vendor.id, lines=[PurchaseOrderLineInput(freight.id, 1, 500)], actor=clerk,
        )

        receipt = purchasing.receive_purchase_order(
            po.purchase_order_id, lines=[ReceiptLineInput(po.lines[0].line_id, 1)], actor=clerk,
        )

        assert receipt.layer_ids == ()
        assert _balance(session, "5100") == 500
        assert _balance(session, "2110") == 500

    def test_receipts_keep_gl_reconciled(self, session, purchasing, order, clerk):
        purchasing.receive_purchase_order(
            order.purchase_order_id,
            lines=[ReceiptLineInput(line.line_id, 3) for line in order.lines],
            actor=clerk,
        )

        summary = InventoryReconciliationService(session, tolerance=0).check_inventory_gl_reconciliation()

        assert summary.layer_total == 3_750
        assert summary.is_reconciled


class TestClosePurchaseOrder:

    def test_close_short_after_partial(self, purchasing, order, clerk):
        purchasing.receive_purchase_order(
            order.purchase_order_id, lines=[ReceiptLineInput(order.lines[0].line_id, 2)], actor=clerk,
        )

        result = purchasing.close_purchase_order(order.purchase_order_id, clerk)

        assert result.status == PurchaseOrderStatus.CLOSED
        assert result.lines[0].quantity_outstanding == 8

    def test_close_twice_rejected(self, purchasing, order, clerk):
        purchasing.close_purchase_order(order.purchase_order_id, clerk)
        with pytest.raises(InvalidTransitionError):
            purchasing.close_purchase_order(order.purchase_order_id, clerk)


class TestEditPurchaseOrder:

    def test_update_replaces_lines(self, session, purchasing, order, resin, clerk):
        result = purchasing.update_purchase_order(
            order.purchase_order_id,
            lines=[PurchaseOrderLineInput(resin.id, 5, 1_200)],
            actor=clerk,
            notes="Revised",
        )

        assert result.total_amount == 6_000
        assert len(result.lines) == 1
        remaining = session.scalars(
            select(PurchaseOrderLine).where(PurchaseOrderLine.order_id == order.purchase_order_id)
        ).all()
        assert [line.quantity_ordered for line in remaining] == [5]

    def test_update_after_receipt_locked(self, purchasing, order, resin, clerk):
        purchasing.receive_purchase_order(
            order.purchase_order_id, lines=[ReceiptLineInput(order.lines[0].line_id, 1)], actor=clerk,
        )

        with pytest.raises(DocumentLockedError) as exc:
            purchasing.update_purchase_order(
                order.purchase_order_id,
                lines=[PurchaseOrderLineInput(resin.id, 5, 1_200)],
                actor=clerk,
            )
        assert exc.value.status == "PARTIAL"

    def test_delete_open_order(self, session, purchasing, order, clerk):
        purchasing.delete_purchase_order(order.purchase_order_id, clerk)

        with pytest.raises(DocumentNotFoundError):
            purchasing.get_purchase_order(order.purchase_order_id)
        assert session.scalars(select(PurchaseOrderLine)).all() == []

    def test_delete_closed_order_locked(self, purchasing, order, clerk):
        purchasing.close_purchase_order(order.purchase_order_id, clerk)

        with pytest.raises(DocumentLockedError):
            purchasing.delete_purchase_order(order.purchase_order_id, clerk)
