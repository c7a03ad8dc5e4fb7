"""
Service Desk ORM Models (``erp_modules.service_desk.orm``).

Responsibility
--------------
SQLAlchemy persistence for service tickets, customer assets and the
ticket-asset junction.  Installation tickets and assets are written by the
invoice post-processing step; their later lifecycle is driven by
``ServiceDeskService``.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import TrackedBase
from erp_kernel.db.types import enum_type
from erp_modules.service_desk.models import (
    AssetStatus,
    TicketPriority,
    TicketSnapshot,
    TicketStatus,
    TicketType,
)


class CustomerAsset(TrackedBase):
    """
    Equipment installed at a customer site.

    Guarantees:
        - asset_number is unique (CA-YYYY-NNNNN).
        - One asset per qualifying invoice line, whatever the line quantity.
    """

    __tablename__ = "customer_assets"

    __table_args__ = (
        UniqueConstraint("asset_number", name="uq_customer_assets_asset_number"),
        Index("idx_customer_assets_customer_id", "customer_id"),
        Index("idx_customer_assets_invoice_id", "invoice_id"),
    )

    asset_number: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    invoice_id: Mapped[int | None] = mapped_column(ForeignKey("invoices.id"), nullable=True)
    invoice_line_id: Mapped[int | None] = mapped_column(
        ForeignKey("invoice_lines.id"), nullable=True,
    )
    serial_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    installation_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    installation_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    status: Mapped[AssetStatus] = mapped_column(
        enum_type(AssetStatus), nullable=False, default=AssetStatus.PENDING_INSTALLATION,
    )


class ServiceTicket(TrackedBase):
    """
    Field service job.

    Guarantees:
        - ticket_number is unique (TKT-YYYY-NNNNN).
        - At most one INSTALLATION ticket per invoice.
    """

    __tablename__ = "service_tickets"

    __table_args__ = (
        UniqueConstraint("ticket_number", name="uq_service_tickets_ticket_number"),
        Index("idx_service_tickets_invoice_id", "invoice_id"),
        Index("idx_service_tickets_status", "status"),
    )

    ticket_number: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    invoice_id: Mapped[int | None] = mapped_column(ForeignKey("invoices.id"), nullable=True)

    ticket_type: Mapped[TicketType] = mapped_column(enum_type(TicketType), nullable=False)
    priority: Mapped[TicketPriority] = mapped_column(
        enum_type(TicketPriority), nullable=False, default=TicketPriority.MEDIUM,
    )
    status: Mapped[TicketStatus] = mapped_column(
        enum_type(TicketStatus), nullable=False, default=TicketStatus.OPEN,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    scheduled_for: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completion_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    asset_links: Mapped[list["TicketAsset"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_snapshot(self) -> TicketSnapshot:
        return TicketSnapshot(
            ticket_id=self.id,
            ticket_number=self.ticket_number,
            ticket_type=TicketType(self.ticket_type),
            status=TicketStatus(self.status),
            title=self.title,
            invoice_id=self.invoice_id,
            asset_ids=tuple(link.asset_id for link in self.asset_links),
            scheduled_for=self.scheduled_for,
            completed_at=self.completed_at,
        )

    def __repr__(self) -> str:
        return f"<ServiceTicket {self.ticket_number} {self.status}>"


class TicketAsset(TrackedBase):
    """Junction between a ticket and the assets it services."""

    __tablename__ = "ticket_assets"

    __table_args__ = (
        UniqueConstraint("ticket_id", "asset_id", name="uq_ticket_assets_pair"),
    )

    ticket_id: Mapped[int] = mapped_column(ForeignKey("service_tickets.id"), nullable=False)
    asset_id: Mapped[int] = mapped_column(ForeignKey("customer_assets.id"), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    ticket: Mapped[ServiceTicket] = relationship(back_populates="asset_links")
    asset: Mapped[CustomerAsset] = relationship()
