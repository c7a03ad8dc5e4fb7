"""
Tests for customer invoices and customer payments.

Tests cover:
- One balanced entry per invoice: AR, revenue, discounts, tax, COGS
- Default pricing from the item, service lines without stock
- Shortage rolls the whole invoice back
- Edit and delete restore stock and reverse the entry once
- Payments: deposit account by method, oldest first, overpayment
"""

from datetime import date

import pytest
from sqlalchemy import func, select

from erp_kernel.domain.payment import PaymentMethod
from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import (
    DocumentLockedError,
    InsufficientStockError,
    ItemNotFoundError,
    ValidationError,
)
from erp_kernel.models.item import ItemClass
from erp_kernel.selectors.ledger_selector import LedgerSelector
from erp_modules.sales import InvoiceLineInput, InvoiceStatus, SalesService
from erp_modules.sales.orm import Invoice
from erp_services.inventory_ledger import InventoryLedger


@pytest.fixture
def sales(session, clock):
    return SalesService(session, clock=clock)


@pytest.fixture
def printer(session, clock, make_item):
    item = make_item("FG-PRINTER", item_class=ItemClass.FINISHED_GOODS, sales_price=1_000)
    InventoryLedger(session, clock).receive_stock(
        item.id, 10, 600, source_type=SourceType.OPENING_BALANCE, source_id=1,
    )
    session.commit()
    return item


def _movement(session, invoice_id):
    return LedgerSelector(session).net_movement_for_source(SourceType.INVOICE, invoice_id)


class TestCreateInvoice:

    def test_posts_one_entry_with_cogs(self, session, sales, customer, printer, clerk):
        result = sales.create_invoice(
            customer_id=customer.id,
            lines=[InvoiceLineInput(printer.id, 2, discount_rate_bps=1_000, tax_rate_bps=1_200)],
            actor=clerk,
        )

        assert result.invoice_number == "INV-2025-00001"
        assert (result.subtotal, result.discount_total, result.tax_total) == (2_000, 200, 216)
        assert result.total_amount == 2_016
        assert result.cost_of_goods == 1_200
        assert result.gross_margin == 600
        assert len(LedgerSelector(session).entries_for_source(SourceType.INVOICE, result.invoice_id)) == 1
        assert _movement(session, result.invoice_id) == {
            "1200": 2_016,
            "4100": -2_000,
            "4200": 200,
            "2200": -216,
            "5100": 1_200,
            "1340": -1_200,
        }
        assert printer.quantity_on_hand == 8

    def test_explicit_price_and_service_line(self, session, sales, customer, printer, make_item, clerk):
        setup = make_item("SVC-SETUP", item_class=ItemClass.SERVICE, sales_price=300)

        result = sales.create_invoice(
            customer_id=customer.id,
            lines=[InvoiceLineInput(printer.id, 1, unit_price=1_500), InvoiceLineInput(setup.id, 1)],
            actor=clerk,
        )

        assert result.subtotal == 1_800
        assert result.cost_of_goods == 600
        assert "4200" not in _movement(session, result.invoice_id)

    def test_shortage_rolls_back_everything(self, session, sales, customer, printer, clerk):
        with pytest.raises(InsufficientStockError):
            sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(printer.id, 11)], actor=clerk)

        assert session.scalar(select(func.count()).select_from(Invoice)) == 0
        assert printer.quantity_on_hand == 10
        assert LedgerSelector(session).account_balance("1200") == 0

    def test_inactive_item_rejected(self, sales, customer, make_item, clerk):
        retired = make_item("FG-OLD", is_active=False)
        with pytest.raises(ValidationError):
            sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(retired.id, 1, 5)], actor=clerk)

    def test_unknown_item(self, sales, customer, clerk):
        with pytest.raises(ItemNotFoundError):
            sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(999, 1, 5)], actor=clerk)


class TestEditAndDelete:

    def test_update_restores_then_reissues(self, session, sales, customer, printer, clerk):
        invoice = sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(printer.id, 5)], actor=clerk)

        updated = sales.update_invoice(invoice.invoice_id, lines=[InvoiceLineInput(printer.id, 3)], actor=clerk)

        assert updated.total_amount == 3_000
        assert printer.quantity_on_hand == 7
        assert _movement(session, invoice.invoice_id)["1200"] == 3_000
        assert LedgerSelector(session).account_balance("1200") == 3_000
        assert LedgerSelector(session).trial_balance().is_balanced

    def test_delete_restores_stock(self, session, sales, customer, printer, clerk):
        invoice = sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(printer.id, 4)], actor=clerk)

        sales.delete_invoice(invoice.invoice_id, clerk)

        assert printer.quantity_on_hand == 10
        assert printer.average_cost == 600
        assert set(_movement(session, invoice.invoice_id).values()) == {0}

    def test_partially_paid_invoice_locked(self, sales, customer, printer, clerk):
        invoice = sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(printer.id, 1)], actor=clerk)
        sales.receive_payment(customer_id=customer.id, amount=400, actor=clerk)

        with pytest.raises(DocumentLockedError):
            sales.update_invoice(invoice.invoice_id, lines=[InvoiceLineInput(printer.id, 2)], actor=clerk)
        with pytest.raises(DocumentLockedError):
            sales.delete_invoice(invoice.invoice_id, clerk)


class TestCustomerPayments:

    def test_cash_goes_to_undeposited_funds(self, session, sales, customer, printer, clerk):
        older = sales.create_invoice(
            customer_id=customer.id, lines=[InvoiceLineInput(printer.id, 1)], actor=clerk,
            invoice_date=date(2025, 2, 1),
        )
        newer = sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(printer.id, 2)], actor=clerk)

        payment = sales.receive_payment(customer_id=customer.id, amount=1_500, actor=clerk)

        assert payment.deposit_account == "1105"
        assert [(a.invoice_id, a.amount, a.new_status) for a in payment.allocations] == [
            (older.invoice_id, 1_000, InvoiceStatus.PAID),
            (newer.invoice_id, 500, InvoiceStatus.PARTIAL),
        ]
        assert LedgerSelector(session).account_balance("1105") == 1_500
        assert LedgerSelector(session).account_balance("1200") == 1_500

    def test_bank_transfer_goes_to_bank(self, session, sales, customer, printer, clerk):
        invoice = sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(printer.id, 1)], actor=clerk)

        payment = sales.receive_payment(
            customer_id=customer.id, amount=1_000, actor=clerk, method=PaymentMethod.BANK_TRANSFER,
        )

        assert payment.deposit_account == "1110"
        assert sales.get_invoice(invoice.invoice_id).status == InvoiceStatus.PAID

    def test_overpayment_rejected(self, sales, customer, printer, clerk):
        sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(printer.id, 1)], actor=clerk)
        with pytest.raises(ValidationError):
            sales.receive_payment(customer_id=customer.id, amount=1_001, actor=clerk)
