from typing import Sequence
from uuid import UUID, uuid4

import pytest

from crm.maintenance.importer import (
    ChunkInsertError,
    build_insert_rows,
    import_candidates,
)
from crm.maintenance.interface import (
    AccountResolver,
    InsertRow,
    MaintenanceRecordCandidate,
    MaintenanceStore,
)
from crm.maintenance.models import ProductType
from crm.maintenance.store import AccountDirectory

USER_ID = uuid4()
ACME_ID = uuid4()


class RecordingStore(MaintenanceStore):
    def __init__(self, fail_on_chunk: int | None = None) -> None:
        self.chunks: list[list[InsertRow]] = []
        self.fail_on_chunk = fail_on_chunk

    async def insert_chunk(self, rows: Sequence[InsertRow]) -> int:
        if self.fail_on_chunk == len(self.chunks):
            raise RuntimeError("database unavailable")
        self.chunks.append(list(rows))
        return len(rows)


class NoAccounts(AccountResolver):
    def resolve(self, name: str | None) -> UUID | None:
        return None


def _candidates(
    count: int, vendor: str | None = None
) -> list[MaintenanceRecordCandidate]:
    return [
        MaintenanceRecordCandidate(
            product_name=f"Product {i}",
            product_type=ProductType.SOFTWARE,
            vendor_name=vendor,
            end_date="2025-06-30",
        )
        for i in range(count)
    ]


class TestBuildInsertRows:
    def test_attaches_owner_and_account(self) -> None:
        accounts = AccountDirectory([("Acme Corp", ACME_ID)])

        [row] = build_insert_rows(
            _candidates(1, vendor="  acme corp "), user_id=USER_ID, accounts=accounts
        )

        assert row["user_id"] == USER_ID
        assert row["account_id"] == ACME_ID
        assert row["renewal_reminder_days"] == 30
        assert row["product_name"] == "Product 0"
        assert row["end_date"] == "2025-06-30"

    def test_unknown_vendor_stays_unlinked(self) -> None:
        [row] = build_insert_rows(
            _candidates(1, vendor="Globex"), user_id=USER_ID, accounts=NoAccounts()
        )

        assert row["account_id"] is None


class TestImportCandidates:
    async def test_splits_into_chunks(self) -> None:
        store = RecordingStore()

        outcome = await import_candidates(
            _candidates(1200),
            user_id=USER_ID,
            accounts=NoAccounts(),
            store=store,
            chunk_size=500,
        )

        assert [len(c) for c in store.chunks] == [500, 500, 200]
        assert outcome.inserted == 1200
        assert outcome.linked_accounts == 0

    async def test_preserves_input_order(self) -> None:
        store = RecordingStore()

        await import_candidates(
            _candidates(7),
            user_id=USER_ID,
            accounts=NoAccounts(),
            store=store,
            chunk_size=3,
        )

        names = [row["product_name"] for chunk in store.chunks for row in chunk]
        assert names == [f"Product {i}" for i in range(7)]

    async def test_counts_linked_accounts(self) -> None:
        store = RecordingStore()
        candidates = _candidates(2, vendor="Acme Corp") + _candidates(3)

        outcome = await import_candidates(
            candidates,
            user_id=USER_ID,
            accounts=AccountDirectory([("ACME CORP", ACME_ID)]),
            store=store,
        )

        assert outcome.inserted == 5
        assert outcome.linked_accounts == 2

    async def test_failed_chunk_reports_partial_progress(self) -> None:
        store = RecordingStore(fail_on_chunk=1)

        with pytest.raises(ChunkInsertError) as exc_info:
            await import_candidates(
                _candidates(1200),
                user_id=USER_ID,
                accounts=NoAccounts(),
                store=store,
                chunk_size=500,
            )

        err = exc_info.value
        assert err.inserted == 500
        assert err.total == 1200
        assert err.chunk_index == 1
        assert "Imported 500 of 1200" in str(err)
        assert isinstance(err.__cause__, RuntimeError)
        assert len(store.chunks) == 1

    async def test_empty_input_touches_nothing(self) -> None:
        store = RecordingStore()

        outcome = await import_candidates(
            [], user_id=USER_ID, accounts=NoAccounts(), store=store
        )

        assert outcome.inserted == 0
        assert store.chunks == []

    @pytest.mark.parametrize("chunk_size", [0, -5])
    async def test_rejects_non_positive_chunk_size(self, chunk_size: int) -> None:
        with pytest.raises(ValueError):
            await import_candidates(
                _candidates(1),
                user_id=USER_ID,
                accounts=NoAccounts(),
                store=RecordingStore(),
                chunk_size=chunk_size,
            )


class TestAccountDirectory:
    def test_case_insensitive_exact_match(self) -> None:
        accounts = AccountDirectory([("Acme Corp", ACME_ID)])

        assert accounts.resolve("ACME corp") == ACME_ID
        assert accounts.resolve("Acme") is None
        assert accounts.resolve(None) is None
        assert accounts.resolve("") is None

    def test_first_duplicate_wins(self) -> None:
        other = uuid4()
        accounts = AccountDirectory([("Acme", ACME_ID), ("acme", other)])

        assert accounts.resolve("Acme") == ACME_ID
