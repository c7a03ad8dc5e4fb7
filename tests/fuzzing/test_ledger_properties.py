"""
Property-based tests for the inventory ledger and posting pipeline.

Random sequences of receipts, issues, bills and invoices must keep:
- quantity_on_hand == Σ remaining_qty of the item's layers
- 0 <= remaining_qty <= initial_qty on every layer
- every journal entry balanced, and the trial balance with it
"""

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy import select

from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import InsufficientStockError
from erp_kernel.models.item import ItemClass
from erp_kernel.models.journal import JournalEntry
from erp_kernel.selectors.ledger_selector import LedgerSelector
from erp_modules.purchasing import BillLineInput, PurchasingService
from erp_modules.sales import InvoiceLineInput, SalesService
from erp_services.inventory_ledger import InventoryLedger

receipt = st.tuples(st.just("receive"), st.integers(1, 50), st.integers(0, 5_000_000))
issue = st.tuples(st.just("issue"), st.integers(1, 60), st.just(0))
operations = st.lists(st.one_of(receipt, issue), min_size=1, max_size=12)

FUZZ_SETTINGS = settings(
    max_examples=25,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)


def _assert_layers_consistent(ledger, item):
    layers = ledger.layers_for_item(item.id, include_depleted=True)
    assert all(0 <= layer.remaining_qty <= layer.initial_qty for layer in layers)
    assert all(layer.is_depleted == (layer.remaining_qty == 0) for layer in layers)
    assert item.quantity_on_hand == sum(layer.remaining_qty for layer in layers)


@pytest.mark.slow
class TestLedgerProperties:

    @FUZZ_SETTINGS
    @given(ops=operations)
    def test_cache_tracks_layers(self, session, clock, make_item, ops):
        item = make_item()
        ledger = InventoryLedger(session, clock)

        for seq, (kind, qty, cost) in enumerate(ops, start=1):
            clock.advance(60)
            if kind == "receive":
                ledger.receive_stock(item.id, qty, cost, source_type=SourceType.BILL, source_id=seq)
                session.commit()
            else:
                on_hand = item.quantity_on_hand
                try:
                    result = ledger.issue_stock(item.id, qty, source_type=SourceType.INVOICE, source_id=seq)
                    session.commit()
                    assert result.total_cost >= 0
                except InsufficientStockError:
                    session.rollback()
                    assert qty > on_hand
                    assert item.quantity_on_hand == on_hand
            _assert_layers_consistent(ledger, item)

    @FUZZ_SETTINGS
    @given(
        buys=st.lists(st.tuples(st.integers(1, 20), st.integers(1, 100_000)), min_size=1, max_size=5),
        sells=st.lists(st.tuples(st.integers(1, 25), st.integers(0, 10_000)), max_size=5),
    )
    def test_documents_keep_ledger_balanced(self, session, clock, vendor, customer, make_item, clerk, buys, sells):
        item = make_item(item_class=ItemClass.FINISHED_GOODS, sales_price=150_000)
        purchasing = PurchasingService(session, clock=clock)
        sales = SalesService(session, clock=clock)

        for qty, price in buys:
            clock.advance(60)
            purchasing.create_bill(vendor_id=vendor.id, lines=[BillLineInput(item.id, qty, price)], actor=clerk)
        for qty, discount in sells:
            clock.advance(60)
            try:
                sales.create_invoice(
                    customer_id=customer.id,
                    lines=[InvoiceLineInput(item.id, qty, discount_amount=discount, tax_rate_bps=1_200)],
                    actor=clerk,
                )
            except InsufficientStockError:
                pass

        for entry in session.scalars(select(JournalEntry)).all():
            assert entry.total_debits == entry.total_credits
        assert LedgerSelector(session).trial_balance().is_balanced
        _assert_layers_consistent(InventoryLedger(session), item)
