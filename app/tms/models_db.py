"""
SQLAlchemy database models for the TMS backend.

This module defines the ORM model for persisting extracted loads.
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, Float, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base
from .models import ContractVersion, LoadStatus


class Load(Base):
    """
    A load owned by one user.

    Created from a rate confirmation extraction (or manually) and mutated
    afterwards through the loads API (status changes, rate corrections).
    """

    __tablename__ = "loads"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Opaque user identifier from the identity provider",
    )
    status: Mapped[LoadStatus] = mapped_column(
        Enum(LoadStatus),
        default=LoadStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Load record
    load_number: Mapped[str] = mapped_column(String(255), default="", index=True)
    pickup_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    broker_name: Mapped[str] = mapped_column(String(255), default="", index=True)
    broker_mc: Mapped[str] = mapped_column(String(64), default="")
    contact_name: Mapped[str] = mapped_column(String(255), default="")
    contact_phone: Mapped[str] = mapped_column(String(64), default="")
    contact_extension: Mapped[str] = mapped_column(String(32), default="")
    contact_email: Mapped[str] = mapped_column(String(255), default="")
    invoice_email: Mapped[str] = mapped_column(String(255), default="")
    pickup_city: Mapped[str] = mapped_column(String(255), default="")
    pickup_state: Mapped[str] = mapped_column(String(8), default="")
    pickup_address: Mapped[str] = mapped_column(Text, default="")
    delivery_city: Mapped[str] = mapped_column(String(255), default="")
    delivery_state: Mapped[str] = mapped_column(String(8), default="")
    delivery_address: Mapped[str] = mapped_column(Text, default="")
    equipment: Mapped[str] = mapped_column(String(64), default="")
    miles: Mapped[float] = mapped_column(Float, default=0.0)
    posted_rate: Mapped[float] = mapped_column(Float, default=0.0)
    booked_rate: Mapped[float] = mapped_column(Float, default=0.0)
    shipper: Mapped[str] = mapped_column(String(255), default="")
    receiver: Mapped[str] = mapped_column(String(255), default="")
    commodity: Mapped[str] = mapped_column(String(255), default="")
    weight: Mapped[float] = mapped_column(Float, default=0.0)
    notes: Mapped[str] = mapped_column(Text, default="")

    # Extraction audit
    rate_per_mile: Mapped[str | None] = mapped_column(String(32), nullable=True)
    raw_line: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Delimited data line returned by the model",
    )
    contract_version: Mapped[ContractVersion | None] = mapped_column(
        Enum(ContractVersion, values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    source_file: Mapped[str | None] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Load(id={self.id}, load_number='{self.load_number}', status={self.status.value})>"
