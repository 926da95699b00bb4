from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.account.models import Account
from crm.maintenance.interface import AccountResolver, InsertRow, MaintenanceStore
from crm.maintenance.models import MaintenanceRecord

_DATE_COLUMNS = ("purchase_date", "start_date", "end_date")


class AccountDirectory(AccountResolver):
    """
    Case-insensitive exact name lookup over a fixed set of accounts.

    When two accounts share a name the first one given wins.
    """

    def __init__(self, accounts: Iterable[tuple[str, UUID]]) -> None:
        self._by_name: dict[str, UUID] = {}
        for name, account_id in accounts:
            self._by_name.setdefault(name.strip().lower(), account_id)

    def resolve(self, name: str | None) -> UUID | None:
        if not name:
            return None
        return self._by_name.get(name.strip().lower())

    @classmethod
    async def load(cls, session: AsyncSession, user_id: UUID) -> AccountDirectory:
        stmt = (
            select(Account.name, Account.id)
            .where(Account.user_id == user_id)
            .order_by(Account.created_at)
        )
        rows = (await session.execute(stmt)).all()
        return cls((name, account_id) for name, account_id in rows)


class SqlMaintenanceStore(MaintenanceStore):
    """Commits every chunk separately; a failed chunk is rolled back alone."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert_chunk(self, rows: Sequence[InsertRow]) -> int:
        records = [MaintenanceRecord(**_to_columns(row)) for row in rows]
        try:
            self._session.add_all(records)
            await self._session.flush()
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        return len(records)


def _to_columns(row: InsertRow) -> InsertRow:
    columns = dict(row)
    for name in _DATE_COLUMNS:
        value = columns.get(name)
        if isinstance(value, str):
            columns[name] = date.fromisoformat(value)
    return columns
