from __future__ import annotations

"""SQLAlchemy models for contracts, their significant dates and reminder alerts."""

from datetime import datetime
from uuid import uuid4
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.clock import utcnow
from app.db.session import Base
from app.schemas.domain import DateType


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    contracts: Mapped[list["Contract"]] = relationship("Contract", back_populates="user")


class Contract(Base):
    __tablename__ = "contracts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    contract_type: Mapped[str] = mapped_column(String(100), nullable=False)
    contract_text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    user: Mapped["User"] = relationship("User", back_populates="contracts")
    dates: Mapped[list["ContractDate"]] = relationship(
        "ContractDate",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="ContractDate.created_at",
    )
    # Alerts are owned by their ContractDate; this is a read-only view across all dates.
    alerts: Mapped[list["DateAlert"]] = relationship(
        "DateAlert",
        viewonly=True,
        order_by="DateAlert.created_at",
    )


class ContractDate(Base):
    __tablename__ = "contract_dates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    contract_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False
    )
    date_type: Mapped[DateType] = mapped_column(
        SAEnum(DateType, name="date_type"), nullable=False, default=DateType.other
    )
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    source_clause: Mapped[str] = mapped_column(Text, nullable=False, default="")  # display only
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    contract: Mapped["Contract"] = relationship("Contract", back_populates="dates")
    alerts: Mapped[list["DateAlert"]] = relationship(
        "DateAlert",
        back_populates="contract_date",
        cascade="all, delete-orphan",
        order_by="DateAlert.offset_days",
    )

    __table_args__ = (
        Index("idx_contract_dates_date_active", "date", "is_active"),
    )


class DateAlert(Base):
    __tablename__ = "date_alerts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    contract_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False
    )
    contract_date_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contract_dates.id", ondelete="CASCADE"), nullable=False
    )
    offset_days: Mapped[int] = mapped_column(Integer, nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # false -> true only
    dispatched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dispatched_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Claim held by a dispatcher run between claim and confirm/release
    claim_token: Mapped[Optional[str]] = mapped_column(String(36))
    claimed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    contract: Mapped["Contract"] = relationship("Contract", viewonly=True)
    contract_date: Mapped["ContractDate"] = relationship("ContractDate", back_populates="alerts")

    __table_args__ = (
        UniqueConstraint("contract_date_id", "offset_days", name="uq_date_alerts_date_offset"),
        Index("idx_date_alerts_due", "scheduled_at", "is_active", "dispatched"),
    )
