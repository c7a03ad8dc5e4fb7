"""
Production Domain Models (``erp_modules.production.models``).

Enums and frozen value objects for production runs.  A run converts input
stock plus applied overhead into one output item.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from erp_kernel.exceptions import ValidationError


class ProductionRunType(str, Enum):
    MIXING = "MIXING"
    SUBLIMATION = "SUBLIMATION"


class ProductionRunStatus(str, Enum):
    """Runs are recorded once finished; there is no draft stage."""
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class ProductionInputLine:
    item_id: int
    quantity: int

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValidationError("quantity", f"input quantity must be positive, got {self.quantity}")


@dataclass(frozen=True)
class ProductionCostInput:
    """Overhead applied to a run (labour, energy, ...), in tiyin."""
    cost_type: str
    amount: int

    def __post_init__(self):
        if not self.cost_type:
            raise ValidationError("cost_type", "cost type is required")
        if self.amount < 0:
            raise ValidationError("amount", "overhead cannot be negative")


@dataclass(frozen=True)
class ConsumedInput:
    item_id: int
    quantity: int
    total_cost: int
    asset_account: str


@dataclass(frozen=True)
class ProductionResult:
    """Snapshot of a committed run."""
    run_id: int
    run_type: ProductionRunType
    run_date: date
    output_item_id: int
    output_quantity: int
    input_cost: int
    overhead_cost: int
    unit_cost: int
    batch_number: str
    inputs: tuple[ConsumedInput, ...]
    journal_entry_id: int | None = None
    rounding_variance: int = 0

    @property
    def total_cost(self) -> int:
        return self.input_cost + self.overhead_cost

    @property
    def output_value(self) -> int:
        """Value of the output layer; differs from total_cost by the rounding variance."""
        return self.unit_cost * self.output_quantity
