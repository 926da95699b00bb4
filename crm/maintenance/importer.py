from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Sequence
from uuid import UUID

from crm.maintenance.interface import (
    AccountResolver,
    InsertRow,
    MaintenanceRecordCandidate,
    MaintenanceStore,
)
from crm.maintenance.models import DEFAULT_RENEWAL_REMINDER_DAYS

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 500


class MaintenanceImportError(Exception):
    pass


class ChunkInsertError(MaintenanceImportError):
    """A chunk failed to store. Chunks before it are already persisted."""

    def __init__(self, *, inserted: int, total: int, chunk_index: int) -> None:
        self.inserted = inserted
        self.total = total
        self.chunk_index = chunk_index
        super().__init__(
            f"Imported {inserted} of {total} maintenance records "
            f"before chunk {chunk_index + 1} failed"
        )


@dataclass(frozen=True)
class ImportOutcome:
    inserted: int
    linked_accounts: int


def build_insert_rows(
    candidates: Sequence[MaintenanceRecordCandidate],
    *,
    user_id: UUID,
    accounts: AccountResolver,
) -> list[InsertRow]:
    rows: list[InsertRow] = []
    for candidate in candidates:
        row = asdict(candidate)
        row["user_id"] = user_id
        row["account_id"] = accounts.resolve(candidate.vendor_name)
        row["renewal_reminder_days"] = DEFAULT_RENEWAL_REMINDER_DAYS
        rows.append(row)
    return rows


async def import_candidates(
    candidates: Sequence[MaintenanceRecordCandidate],
    *,
    user_id: UUID,
    accounts: AccountResolver,
    store: MaintenanceStore,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ImportOutcome:
    """
    Attach owner and account to each candidate and store them chunk by chunk.

    Each chunk is all-or-nothing. A failing chunk stops the import and raises
    ChunkInsertError with the number of records stored by earlier chunks.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    rows = build_insert_rows(candidates, user_id=user_id, accounts=accounts)
    linked = sum(1 for row in rows if row["account_id"] is not None)
    inserted = 0

    for chunk_index, start in enumerate(range(0, len(rows), chunk_size)):
        chunk = rows[start : start + chunk_size]
        try:
            inserted += await store.insert_chunk(chunk)
        except Exception as exc:
            logger.exception(
                "Maintenance import chunk %d failed after %d records",
                chunk_index + 1,
                inserted,
            )
            raise ChunkInsertError(
                inserted=inserted, total=len(rows), chunk_index=chunk_index
            ) from exc

    logger.info(
        "Imported %d maintenance records for user %s (%d linked to accounts)",
        inserted,
        user_id,
        linked,
    )
    return ImportOutcome(inserted=inserted, linked_accounts=linked)
