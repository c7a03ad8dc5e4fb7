"""
Tests for stock adjustment and transfer documents.

Tests cover:
- Gains and losses post against inventory adjustments
- Gains default to the current average cost
- Transfers move stock between warehouses without a journal entry
- Validation of adjustment and transfer requests
"""

import pytest
from sqlalchemy import func, select

from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import (
    DocumentNotFoundError,
    InsufficientStockError,
    InvalidStockMovementError,
    ValidationError,
)
from erp_kernel.models.journal import JournalEntry
from erp_kernel.selectors.ledger_selector import LedgerSelector
from erp_modules.inventory import InventoryService
from erp_modules.inventory.orm import StockAdjustment, StockTransfer
from erp_services.inventory_ledger import InventoryLedger


@pytest.fixture
def inventory(session, clock):
    return InventoryService(session, clock=clock)


@pytest.fixture
def paper(session, clock, make_item, make_warehouse):
    main = make_warehouse("MAIN")
    item = make_item("RM-PAPER")
    InventoryLedger(session, clock).receive_stock(
        item.id, 10, 300, source_type=SourceType.OPENING_BALANCE, source_id=1, warehouse_id=main.id,
    )
    session.commit()
    return item, main


def _movement(session, adjustment_id):
    return LedgerSelector(session).net_movement_for_source(SourceType.STOCK_ADJUSTMENT, adjustment_id)


class TestAdjustInventory:

    def test_gain_at_explicit_cost(self, session, inventory, paper, clerk):
        item, _ = paper

        result = inventory.adjust_inventory(
            item_id=item.id, quantity_delta=4, new_unit_cost=500, reason="Found in stockroom", actor=clerk,
        )

        assert result.value_change == 2_000
        assert result.quantity_on_hand == 14
        assert _movement(session, result.adjustment_id) == {"1310": 2_000, "5150": -2_000}

    def test_gain_defaults_to_average_cost(self, inventory, paper, clerk):
        item, _ = paper
        result = inventory.adjust_inventory(item_id=item.id, quantity_delta=2, reason="Recount", actor=clerk)
        assert result.value_change == 600

    def test_loss_posts_fifo_cost(self, session, inventory, paper, clerk):
        item, _ = paper

        result = inventory.adjust_inventory(item_id=item.id, quantity_delta=-3, reason="Water damage", actor=clerk)

        assert result.value_change == -900
        assert item.quantity_on_hand == 7
        assert _movement(session, result.adjustment_id) == {"1310": -900, "5150": 900}
        assert session.get(StockAdjustment, result.adjustment_id).reason == "Water damage"

    def test_zero_cost_gain_posts_nothing(self, session, inventory, paper, clerk):
        item, _ = paper
        result = inventory.adjust_inventory(
            item_id=item.id, quantity_delta=1, new_unit_cost=0, reason="Free sample", actor=clerk,
        )
        assert result.journal_entry_id is None
        assert item.quantity_on_hand == 11

    def test_loss_beyond_stock_rolls_back(self, session, inventory, paper, clerk):
        item, _ = paper
        with pytest.raises(InsufficientStockError):
            inventory.adjust_inventory(item_id=item.id, quantity_delta=-11, reason="Shrinkage", actor=clerk)
        assert session.scalar(select(func.count()).select_from(StockAdjustment)) == 0

    @pytest.mark.parametrize("kwargs", [
        {"quantity_delta": 0, "reason": "nothing"},
        {"quantity_delta": 1, "reason": "   "},
        {"quantity_delta": 1, "reason": "bad cost", "new_unit_cost": -1},
    ])
    def test_invalid_requests(self, inventory, paper, clerk, kwargs):
        item, _ = paper
        with pytest.raises(ValidationError):
            inventory.adjust_inventory(item_id=item.id, actor=clerk, **kwargs)


class TestTransferInventory:

    def test_moves_stock_without_journal_entry(self, session, inventory, paper, make_warehouse, clerk):
        item, main = paper
        shop = make_warehouse("SHOP")

        result = inventory.transfer_inventory(
            item_id=item.id, quantity=4, from_warehouse_id=main.id, to_warehouse_id=shop.id, actor=clerk,
        )

        assert result.total_cost == 1_200
        assert len(result.layer_ids) == 1
        ledger = InventoryLedger(session)
        assert ledger.available_quantity(item.id, main.id) == 6
        assert ledger.available_quantity(item.id, shop.id) == 4
        assert item.quantity_on_hand == 10
        assert session.scalar(select(func.count()).select_from(JournalEntry)) == 0
        assert session.get(StockTransfer, result.transfer_id).total_cost == 1_200

    def test_same_warehouse_refused(self, inventory, paper, clerk):
        item, main = paper
        with pytest.raises(InvalidStockMovementError):
            inventory.transfer_inventory(
                item_id=item.id, quantity=1, from_warehouse_id=main.id, to_warehouse_id=main.id, actor=clerk,
            )

    def test_unknown_warehouse(self, inventory, paper, clerk):
        item, main = paper
        with pytest.raises(DocumentNotFoundError):
            inventory.transfer_inventory(
                item_id=item.id, quantity=1, from_warehouse_id=main.id, to_warehouse_id=404, actor=clerk,
            )

    def test_shortage_in_source_warehouse(self, inventory, paper, make_warehouse, clerk):
        item, main = paper
        shop = make_warehouse("SHOP")
        with pytest.raises(InsufficientStockError):
            inventory.transfer_inventory(
                item_id=item.id, quantity=5, from_warehouse_id=shop.id, to_warehouse_id=main.id, actor=clerk,
            )
