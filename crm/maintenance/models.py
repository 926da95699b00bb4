from __future__ import annotations

import enum
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.account.models import Account
from crm.base.models import BaseDbModel, UTCDateTime
from crm.user.models import User


class ProductType(enum.Enum):
    SOFTWARE = "software"
    HARDWARE = "hardware"


class MaintenanceStatus(enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class NotificationType(enum.Enum):
    DAYS_30 = "30_day"
    DAYS_60 = "60_day"
    DAYS_90 = "90_day"


DEFAULT_RENEWAL_REMINDER_DAYS = 30


class MaintenanceRecord(BaseDbModel):
    __tablename__ = "maintenance_records"
    __table_args__ = (
        Index("ix_maintenance_records_user_end_date", "user_id", "end_date"),
    )

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )

    product_name: Mapped[str] = mapped_column(String, nullable=False)
    product_type: Mapped[ProductType] = mapped_column(
        Enum(ProductType), nullable=False
    )
    vendor_name: Mapped[str | None] = mapped_column(String, nullable=True)

    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # ── Money ──
    cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    income: Mapped[float | None] = mapped_column(Float, nullable=True)
    profit: Mapped[float | None] = mapped_column(Float, nullable=True)
    margin_percent: Mapped[float | None] = mapped_column(Float, nullable=True)

    license_key: Mapped[str | None] = mapped_column(String, nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[MaintenanceStatus] = mapped_column(
        Enum(MaintenanceStatus), nullable=False, default=MaintenanceStatus.ACTIVE
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    renewal_reminder_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_RENEWAL_REMINDER_DAYS
    )

    user: Mapped[User] = relationship(back_populates="maintenance_records")
    account: Mapped[Account | None] = relationship(
        back_populates="maintenance_records"
    )
    notifications: Mapped[list[MaintenanceNotification]] = relationship(
        back_populates="maintenance_record", cascade="all, delete-orphan"
    )


class MaintenanceNotification(BaseDbModel):
    """One renewal reminder per record and window; email delivery is not wired up."""

    __tablename__ = "maintenance_notifications"
    __table_args__ = (
        UniqueConstraint(
            "maintenance_record_id",
            "notification_type",
            name="uq_maintenance_notification_type",
        ),
    )

    maintenance_record_id: Mapped[UUID] = mapped_column(
        ForeignKey("maintenance_records.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    notification_type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType), nullable=False
    )
    email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    maintenance_record: Mapped[MaintenanceRecord] = relationship(
        back_populates="notifications"
    )
