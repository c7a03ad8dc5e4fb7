"""
Production Module Service (``erp_modules.production.service``).

Responsibility
--------------
Commits a production run: draws every input from inventory (FIFO), lays
down one output layer valued at input cost plus overhead, and posts the
capitalisation entry.

Architecture position
---------------------
**Modules layer** -- thin ERP glue over ``InventoryLedger`` and
``GeneralLedgerPoster``.

Invariants enforced
-------------------
* Output unit cost = round_half_up((input cost + overhead) / output qty).
* The output layer's batch number is ``PR-{run_id}-{item_id}``.
* Entry: Dr output asset (output layer value); Cr each input asset
  account (grouped); Cr overhead absorption (overhead).  The rounding
  residue, total cost - unit cost x output qty, goes to the rounding
  variance account, so the inventory debit always equals the layer value.
* Shortage on any input rolls back the whole run.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import date

from sqlalchemy.orm import Session

from erp_kernel.domain.actor import Actor
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.dtos import PostingLineBuilder
from erp_kernel.domain.money import divide_half_up
from erp_kernel.domain.source import SourceType
from erp_kernel.exceptions import (
    DocumentNotFoundError,
    InvalidStockMovementError,
    ItemNotFoundError,
    ValidationError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.item import Item
from erp_kernel.services.journal_poster import GeneralLedgerPoster
from erp_modules._posting_helpers import post_builder, resolve_asset_account
from erp_modules.production.config import ProductionConfig
from erp_modules.production.models import (
    ProductionCostInput,
    ProductionInputLine,
    ProductionResult,
    ProductionRunStatus,
    ProductionRunType,
)
from erp_modules.production.orm import ProductionCost, ProductionInput, ProductionRun
from erp_services.inventory_ledger import InventoryLedger

logger = get_logger("modules.production.service")


class ProductionService:
    """
    Records completed production runs.

    Contract:
        Receives a Session, optional ProductionConfig and Clock via
        constructor injection.  ``commit_production_run`` owns its
        transaction.
    """

    def __init__(
        self,
        session: Session,
        config: ProductionConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config or ProductionConfig()
        self._clock = clock or SystemClock()
        self._ledger = InventoryLedger(session, self._clock)
        self._poster = GeneralLedgerPoster(session, self._clock)

    def commit_production_run(
        self,
        *,
        output_item_id: int,
        output_quantity: int,
        inputs: Sequence[ProductionInputLine],
        actor: Actor,
        costs: Sequence[ProductionCostInput] = (),
        run_type: ProductionRunType = ProductionRunType.MIXING,
        run_date: date | None = None,
        warehouse_id: int | None = None,
        location_id: int | None = None,
        waste_quantity: int = 0,
        notes: str | None = None,
    ) -> ProductionResult:
        """
        Commit a run as one atomic unit.

        Raises:
            ValidationError: no inputs, non-positive output or negative waste.
            InsufficientStockError: an input is short; nothing is written.
        """
        try:
            if not inputs:
                raise ValidationError("inputs", "a production run needs at least one input")
            if output_quantity <= 0:
                raise ValidationError("output_quantity", f"must be positive, got {output_quantity}")
            if waste_quantity < 0:
                raise ValidationError("waste_quantity", "cannot be negative")

            output_item = self._session.get(Item, output_item_id)
            if output_item is None:
                raise ItemNotFoundError(output_item_id)
            if not output_item.is_stocked:
                raise InvalidStockMovementError(output_item_id, "a service item cannot be produced")
            if any(line.item_id == output_item_id for line in inputs):
                raise ValidationError("inputs", "the output item cannot also be an input")

            run_date = run_date or self._clock.today()
            overhead = sum(cost.amount for cost in costs)

            logger.info("production_run_started", extra={
                "output_item_id": output_item_id,
                "output_quantity": output_quantity,
                "input_count": len(inputs),
                "run_type": run_type.value,
                "actor_id": actor.user_id,
            })

            run = ProductionRun(
                run_type=run_type,
                status=ProductionRunStatus.COMPLETED,
                run_date=run_date,
                output_item_id=output_item_id,
                output_quantity=output_quantity,
                waste_quantity=waste_quantity,
                warehouse_id=warehouse_id,
                location_id=location_id,
                overhead_cost=overhead,
                notes=notes,
                created_by=actor.user_id,
            )
            self._session.add(run)
            self._session.flush()

            input_cost = 0
            credits_by_account: dict[str, int] = defaultdict(int)
            for line in inputs:
                item = self._session.get(Item, line.item_id)
                if item is None:
                    raise ItemNotFoundError(line.item_id)
                issue = self._ledger.issue_stock(
                    item.id,
                    line.quantity,
                    source_type=SourceType.PRODUCTION_RUN,
                    source_id=run.id,
                    warehouse_id=warehouse_id,
                    actor=actor,
                )
                account = resolve_asset_account(
                    item, self._config.item_class_accounts, self._config.fallback_asset_account,
                )
                credits_by_account[account] += issue.total_cost
                input_cost += issue.total_cost
                run.inputs.append(
                    ProductionInput(
                        item_id=item.id,
                        quantity=line.quantity,
                        unit_cost=issue.unit_cost,
                        total_cost=issue.total_cost,
                        asset_account_code=account,
                        created_by=actor.user_id,
                    )
                )
            for cost in costs:
                run.costs.append(
                    ProductionCost(
                        cost_type=cost.cost_type, amount=cost.amount, created_by=actor.user_id,
                    )
                )

            total_cost = input_cost + overhead
            unit_cost = divide_half_up(total_cost, output_quantity)
            output_value = unit_cost * output_quantity
            rounding_variance = total_cost - output_value
            batch_number = f"{self._config.batch_prefix}-{run.id}-{output_item_id}"

            self._ledger.receive_stock(
                output_item_id,
                output_quantity,
                unit_cost,
                source_type=SourceType.PRODUCTION_RUN,
                source_id=run.id,
                warehouse_id=warehouse_id,
                location_id=location_id,
                batch_number=batch_number,
                reason=f"Production run {run.id} ({run_type.value})",
                actor=actor,
            )

            run.input_cost = input_cost
            run.total_cost = total_cost
            run.unit_cost = unit_cost
            run.rounding_variance = rounding_variance
            run.batch_number = batch_number
            self._session.flush()

            output_account = resolve_asset_account(
                output_item, self._config.item_class_accounts, self._config.fallback_asset_account,
            )
            reference = f"{self._config.batch_prefix}-{run.id}"
            builder = PostingLineBuilder()
            builder.debit(output_account, output_value, f"Output of run {run.id}")
            variance_account = self._config.rounding_variance_account
            if rounding_variance > 0:
                builder.debit(variance_account, rounding_variance, f"Rounding on run {run.id}")
            elif rounding_variance < 0:
                builder.credit(variance_account, -rounding_variance, f"Rounding on run {run.id}")
            for account, amount in sorted(credits_by_account.items()):
                builder.credit(account, amount, f"Consumed by run {run.id}")
            builder.credit(self._config.overhead_absorption_account, overhead, f"Overhead applied to run {run.id}")
            entry = post_builder(
                self._poster,
                builder,
                actor=actor,
                entry_date=run_date,
                description=f"Production run #{run.id} ({run_type.value})",
                source_type=SourceType.PRODUCTION_RUN,
                source_id=run.id,
                reference=reference,
            )

            self._session.commit()
            logger.info("production_run_committed", extra={
                "run_id": run.id,
                "input_cost": input_cost,
                "overhead_cost": overhead,
                "unit_cost": unit_cost,
                "rounding_variance": rounding_variance,
                "batch_number": batch_number,
            })
            return run.to_result(entry.id if entry else None)

        except Exception:
            self._session.rollback()
            raise

    def get_run(self, run_id: int) -> ProductionResult:
        run = self._session.get(ProductionRun, run_id)
        if run is None:
            raise DocumentNotFoundError("ProductionRun", run_id)
        return run.to_result()
