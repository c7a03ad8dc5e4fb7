"""Ticket and asset numbers: TKT-YYYY-NNNNN and CA-YYYY-NNNNN."""

from sqlalchemy.orm import Session

from erp_modules._numbering import next_document_number
from erp_modules.service_desk.orm import CustomerAsset, ServiceTicket

TICKET_PREFIX = "TKT"
ASSET_PREFIX = "CA"


def next_ticket_number(session: Session, year: int) -> str:
    return next_document_number(session, ServiceTicket.ticket_number, TICKET_PREFIX, year)


def next_asset_number(session: Session, year: int) -> str:
    return next_document_number(session, CustomerAsset.asset_number, ASSET_PREFIX, year)
