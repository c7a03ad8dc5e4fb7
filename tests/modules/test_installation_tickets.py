"""
Tests for the installation ticket created alongside invoices.

Tests cover:
- One ticket per invoice, one asset per qualifying line
- No ticket when nothing needs installation
- A failing post-processing step rolls back the whole invoice
- Edits recreate the ticket while it is OPEN and are refused afterwards
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import DocumentLockedError
from erp_kernel.models.item import ItemClass
from erp_kernel.selectors.ledger_selector import LedgerSelector
from erp_modules.sales import InstallationTicketStep, InvoiceLineInput, SalesService
from erp_modules.sales.orm import Invoice
from erp_modules.service_desk import AssetStatus, ServiceDeskService, TicketStatus, TicketType
from erp_modules.service_desk.orm import CustomerAsset, ServiceTicket
from erp_services.inventory_ledger import InventoryLedger


def _count(session, model):
    return session.scalar(select(func.count()).select_from(model))


@pytest.fixture
def stock(session, clock, make_item):
    def _stock(sku, *, requires_installation):
        item = make_item(
            sku,
            item_class=ItemClass.FINISHED_GOODS,
            sales_price=5_000,
            requires_installation=requires_installation,
        )
        InventoryLedger(session, clock).receive_stock(
            item.id, 20, 2_000, source_type=SourceType.OPENING_BALANCE, source_id=item.id,
        )
        session.commit()
        return item

    return _stock


@pytest.fixture
def sales(session, clock):
    return SalesService(session, clock=clock)


class ExplodingStep:
    name = "exploding"

    def apply(self, context):
        raise RuntimeError("notification service unavailable")

    def revert(self, context):
        pass


class TestTicketCreation:

    def test_one_ticket_one_asset_per_line(self, session, sales, customer, stock, clerk):
        boiler = stock("FG-BOILER", requires_installation=True)
        heater = stock("FG-HEATER", requires_installation=True)
        filters = stock("FG-FILTER", requires_installation=False)

        result = sales.create_invoice(
            customer_id=customer.id,
            lines=[
                InvoiceLineInput(boiler.id, 3),
                InvoiceLineInput(heater.id, 1),
                InvoiceLineInput(filters.id, 5),
            ],
            actor=clerk,
        )

        (ticket_id,) = result.ticket_ids
        ticket = session.get(ServiceTicket, ticket_id)
        assert ticket.ticket_number == "TKT-2025-00001"
        assert ticket.ticket_type == TicketType.INSTALLATION
        assert ticket.status == TicketStatus.OPEN
        assert ticket.title == f"Installation for Invoice {result.invoice_number}"
        assets = [link.asset for link in ticket.asset_links]
        assert sorted(a.item_id for a in assets) == sorted([boiler.id, heater.id])
        assert all(a.status == AssetStatus.PENDING_INSTALLATION for a in assets)
        assert all(a.customer_id == customer.id for a in assets)

    def test_no_ticket_without_installable_items(self, session, sales, customer, stock, clerk):
        filters = stock("FG-FILTER", requires_installation=False)

        result = sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(filters.id, 2)], actor=clerk)

        assert result.ticket_ids == ()
        assert _count(session, ServiceTicket) == 0

    def test_failing_step_rolls_back_invoice(self, session, clock, customer, stock, clerk):
        boiler = stock("FG-BOILER", requires_installation=True)
        sales = SalesService(session, clock=clock, post_processing=(InstallationTicketStep(), ExplodingStep()))

        with pytest.raises(RuntimeError):
            sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(boiler.id, 2)], actor=clerk)

        assert _count(session, Invoice) == 0
        assert _count(session, ServiceTicket) == 0
        assert _count(session, CustomerAsset) == 0
        assert boiler.quantity_on_hand == 20
        assert LedgerSelector(session).account_balance("1200") == 0


class TestTicketOnEdit:

    def test_edit_while_open_recreates_ticket(self, session, sales, customer, stock, clerk):
        boiler = stock("FG-BOILER", requires_installation=True)
        heater = stock("FG-HEATER", requires_installation=True)
        invoice = sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(boiler.id, 1)], actor=clerk)

        updated = sales.update_invoice(
            invoice.invoice_id,
            lines=[InvoiceLineInput(boiler.id, 1), InvoiceLineInput(heater.id, 1)],
            actor=clerk,
        )

        assert len(updated.ticket_ids) == 1
        assert _count(session, ServiceTicket) == 1
        assert _count(session, CustomerAsset) == 2

    def test_edit_refused_once_ticket_progressed(self, session, clock, sales, customer, stock, clerk):
        boiler = stock("FG-BOILER", requires_installation=True)
        invoice = sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(boiler.id, 1)], actor=clerk)
        ServiceDeskService(session, clock).transition_ticket(
            invoice.ticket_ids[0], "schedule", clerk,
            scheduled_for=datetime(2025, 3, 5, 10, 0, tzinfo=timezone.utc),
        )

        with pytest.raises(DocumentLockedError):
            sales.update_invoice(invoice.invoice_id, lines=[InvoiceLineInput(boiler.id, 2)], actor=clerk)
        with pytest.raises(DocumentLockedError):
            sales.delete_invoice(invoice.invoice_id, clerk)

        assert sales.get_invoice(invoice.invoice_id).total_amount == 5_000
        assert boiler.quantity_on_hand == 19

    def test_delete_removes_ticket_and_assets(self, session, sales, customer, stock, clerk):
        boiler = stock("FG-BOILER", requires_installation=True)
        invoice = sales.create_invoice(customer_id=customer.id, lines=[InvoiceLineInput(boiler.id, 1)], actor=clerk)

        sales.delete_invoice(invoice.invoice_id, clerk)

        assert _count(session, ServiceTicket) == 0
        assert _count(session, CustomerAsset) == 0
