"""
Service Desk Domain Models (``erp_modules.service_desk.models``).

Enums and frozen snapshots for service tickets and the customer assets
they install.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TicketType(str, Enum):
    INSTALLATION = "INSTALLATION"
    REPAIR = "REPAIR"
    MAINTENANCE = "MAINTENANCE"
    SUPPORT = "SUPPORT"
    EMERGENCY = "EMERGENCY"


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TicketStatus(str, Enum):
    """Must align with ``workflows.TICKET_WORKFLOW.states``."""
    OPEN = "OPEN"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class AssetStatus(str, Enum):
    PENDING_INSTALLATION = "PENDING_INSTALLATION"
    ACTIVE = "ACTIVE"
    UNDER_SERVICE = "UNDER_SERVICE"
    DECOMMISSIONED = "DECOMMISSIONED"


@dataclass(frozen=True)
class TicketSnapshot:
    ticket_id: int
    ticket_number: str
    ticket_type: TicketType
    status: TicketStatus
    title: str
    invoice_id: int | None
    asset_ids: tuple[int, ...]
    scheduled_for: datetime | None = None
    completed_at: datetime | None = None
