from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence
from uuid import UUID

from crm.maintenance.models import MaintenanceStatus, ProductType


@dataclass(frozen=True)
class MaintenanceRecordCandidate:
    """A parsed import row, not yet tied to a user or an account."""

    product_name: str
    product_type: ProductType
    vendor_name: str | None = None
    purchase_date: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    cost: float | None = None
    income: float | None = None
    profit: float | None = None
    margin_percent: float | None = None
    serial_number: str | None = None
    notes: str | None = None
    status: MaintenanceStatus = MaintenanceStatus.ACTIVE


# Plain column-name -> value mapping handed to a MaintenanceStore.
InsertRow = dict[str, Any]


class AccountResolver(ABC):
    @abstractmethod
    def resolve(self, name: str | None) -> UUID | None: ...


class MaintenanceStore(ABC):
    @abstractmethod
    async def insert_chunk(self, rows: Sequence[InsertRow]) -> int:
        """Store all rows or none of them; return how many were stored."""
