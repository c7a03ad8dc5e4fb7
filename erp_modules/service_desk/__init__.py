"""
Service Desk Module (``erp_modules.service_desk``).

Service tickets and customer assets.  Installation tickets are opened by
the invoice post-processing chain in ``erp_modules.sales``; this package
owns their lifecycle afterwards.
"""

from erp_modules.service_desk.models import (
    AssetStatus,
    TicketPriority,
    TicketSnapshot,
    TicketStatus,
    TicketType,
)
from erp_modules.service_desk.service import ServiceDeskService

__all__ = [
    "AssetStatus",
    "ServiceDeskService",
    "TicketPriority",
    "TicketSnapshot",
    "TicketStatus",
    "TicketType",
]
