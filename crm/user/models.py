from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.base.models import BaseDbModel

if TYPE_CHECKING:
    from crm.account.models import Account
    from crm.maintenance.models import MaintenanceRecord


class User(BaseDbModel):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    notification_email: Mapped[str | None] = mapped_column(String, nullable=True)
    enable_maintenance_notifications: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    accounts: Mapped[list[Account]] = relationship(back_populates="user")
    maintenance_records: Mapped[list[MaintenanceRecord]] = relationship(
        back_populates="user"
    )

    @property
    def reminder_address(self) -> str:
        return self.notification_email or self.email
