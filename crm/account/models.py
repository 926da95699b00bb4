from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.base.models import BaseDbModel
from crm.user.models import User

if TYPE_CHECKING:
    from crm.maintenance.models import MaintenanceRecord


class Account(BaseDbModel):
    __tablename__ = "accounts"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)

    user: Mapped[User] = relationship(back_populates="accounts")
    maintenance_records: Mapped[list[MaintenanceRecord]] = relationship(
        back_populates="account"
    )
