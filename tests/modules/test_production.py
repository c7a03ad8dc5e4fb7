"""
Tests for production runs.

Tests cover:
- Inputs drawn FIFO, output layer valued at input cost plus overhead
- Capitalisation entry: Dr output inventory / Cr inputs / Cr overhead applied
- Shortage on any input leaves nothing behind
- Validation of the run request
"""

import pytest
from sqlalchemy import func, select

from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import (
    InsufficientStockError,
    InvalidStockMovementError,
    ValidationError,
)
from erp_kernel.models.item import ItemClass
from erp_kernel.selectors.ledger_selector import LedgerSelector
from erp_modules.production import (
    ProductionCostInput,
    ProductionInputLine,
    ProductionRunType,
    ProductionService,
)
from erp_modules.production.orm import ProductionRun
from erp_services.inventory_ledger import InventoryLedger


@pytest.fixture
def production(session, clock):
    return ProductionService(session, clock=clock)


@pytest.fixture
def materials(session, clock, make_item):
    resin = make_item("RM-RESIN")
    ink = make_item("RM-INK")
    mug = make_item("FG-MUG", item_class=ItemClass.FINISHED_GOODS)
    ledger = InventoryLedger(session, clock)
    ledger.receive_stock(resin.id, 10, 1_000, source_type=SourceType.OPENING_BALANCE, source_id=1)
    ledger.receive_stock(ink.id, 5, 200, source_type=SourceType.OPENING_BALANCE, source_id=2)
    session.commit()
    return resin, ink, mug


class TestCommitProductionRun:

    def test_output_valued_at_inputs_plus_overhead(self, session, production, materials, clerk):
        resin, ink, mug = materials

        result = production.commit_production_run(
            output_item_id=mug.id,
            output_quantity=3,
            inputs=[ProductionInputLine(resin.id, 4), ProductionInputLine(ink.id, 5)],
            costs=[ProductionCostInput("LABOR", 600), ProductionCostInput("ENERGY", 400)],
            run_type=ProductionRunType.SUBLIMATION,
            actor=clerk,
        )

        assert result.input_cost == 5_000
        assert result.overhead_cost == 1_000
        assert result.total_cost == 6_000
        assert result.unit_cost == 2_000
        assert result.batch_number == f"PR-{result.run_id}-{mug.id}"
        assert {(i.item_id, i.total_cost) for i in result.inputs} == {(resin.id, 4_000), (ink.id, 1_000)}
        assert (resin.quantity_on_hand, ink.quantity_on_hand) == (6, 0)
        (layer,) = InventoryLedger(session).layers_for_item(mug.id)
        assert (layer.remaining_qty, layer.unit_cost) == (3, 2_000)
        assert layer.batch_number == result.batch_number

        movement = LedgerSelector(session).net_movement_for_source(SourceType.PRODUCTION_RUN, result.run_id)
        assert movement == {"1340": 6_000, "1310": -5_000, "5000": -1_000}

    def test_unit_cost_divides_total_by_output(self, production, materials, clerk):
        resin, _, mug = materials
        result = production.commit_production_run(
            output_item_id=mug.id,
            output_quantity=8,
            inputs=[ProductionInputLine(resin.id, 3)],
            costs=[ProductionCostInput("LABOR", 1_000)],
            actor=clerk,
        )
        assert result.unit_cost == 500

        second = production.commit_production_run(
            output_item_id=mug.id, output_quantity=3, inputs=[ProductionInputLine(resin.id, 5)], actor=clerk,
        )
        # 5000 / 3 rounds half-up
        assert second.unit_cost == 1_667

    def test_rounding_residue_credited_to_variance(self, session, production, materials, clerk):
        resin, _, mug = materials
        result = production.commit_production_run(
            output_item_id=mug.id, output_quantity=3, inputs=[ProductionInputLine(resin.id, 5)], actor=clerk,
        )

        assert (result.unit_cost, result.output_value, result.rounding_variance) == (1_667, 5_001, -1)
        movement = LedgerSelector(session).net_movement_for_source(SourceType.PRODUCTION_RUN, result.run_id)
        assert movement == {"1340": 5_001, "1310": -5_000, "5160": -1}

    def test_rounding_residue_debited_to_variance(self, session, production, make_item, clerk):
        bead = make_item("RM-BEAD")
        charm = make_item("FG-CHARM", item_class=ItemClass.FINISHED_GOODS)
        InventoryLedger(session).receive_stock(
            bead.id, 1, 10, source_type=SourceType.OPENING_BALANCE, source_id=9,
        )
        session.commit()

        result = production.commit_production_run(
            output_item_id=charm.id, output_quantity=3, inputs=[ProductionInputLine(bead.id, 1)], actor=clerk,
        )

        assert (result.unit_cost, result.rounding_variance) == (3, 1)
        layer_value = sum(
            layer.remaining_qty * layer.unit_cost
            for layer in InventoryLedger(session).layers_for_item(charm.id)
        )
        assert layer_value == LedgerSelector(session).account_balance("1340") == 9
        assert LedgerSelector(session).account_balance("5160") == 1

    def test_shortage_writes_nothing(self, session, production, materials, clerk):
        resin, ink, mug = materials

        with pytest.raises(InsufficientStockError):
            production.commit_production_run(
                output_item_id=mug.id,
                output_quantity=1,
                inputs=[ProductionInputLine(resin.id, 2), ProductionInputLine(ink.id, 6)],
                actor=clerk,
            )

        assert session.scalar(select(func.count()).select_from(ProductionRun)) == 0
        assert resin.quantity_on_hand == 10
        assert mug.quantity_on_hand == 0
        assert LedgerSelector(session).account_balance("1340") == 0

    def test_run_persisted_and_readable(self, production, materials, clerk):
        resin, _, mug = materials
        result = production.commit_production_run(
            output_item_id=mug.id, output_quantity=2, inputs=[ProductionInputLine(resin.id, 2)],
            waste_quantity=1, actor=clerk,
        )
        fetched = production.get_run(result.run_id)
        assert fetched.unit_cost == 1_000
        assert fetched.run_type == ProductionRunType.MIXING


class TestValidation:

    def test_no_inputs(self, production, materials, clerk):
        _, _, mug = materials
        with pytest.raises(ValidationError):
            production.commit_production_run(output_item_id=mug.id, output_quantity=1, inputs=[], actor=clerk)

    def test_output_cannot_be_an_input(self, production, materials, clerk):
        resin, _, _ = materials
        with pytest.raises(ValidationError):
            production.commit_production_run(
                output_item_id=resin.id, output_quantity=1, inputs=[ProductionInputLine(resin.id, 1)], actor=clerk,
            )

    def test_service_output_refused(self, production, materials, make_item, clerk):
        resin, _, _ = materials
        service = make_item("SVC-DESIGN", item_class=ItemClass.SERVICE)
        with pytest.raises(InvalidStockMovementError):
            production.commit_production_run(
                output_item_id=service.id, output_quantity=1, inputs=[ProductionInputLine(resin.id, 1)], actor=clerk,
            )

    def test_negative_overhead(self):
        with pytest.raises(ValidationError):
            ProductionCostInput("LABOR", -1)
