import os
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

import crm.maintenance.models  # noqa: F401
from crm.base.models import BaseDbModel

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def vendor_export_csv() -> str:
    return (FIXTURES_DIR / "vendor_export.csv").read_text(encoding="utf-8")


@pytest.fixture
def license_report_tsv() -> str:
    return (FIXTURES_DIR / "license_report.tsv").read_text(encoding="utf-8")


@pytest.fixture(scope="session")
def postgres_url() -> Generator[str | None]:
    """PostgreSQL via testcontainers when CRM_TEST_POSTGRES=1, else None."""
    if os.environ.get("CRM_TEST_POSTGRES") != "1":
        yield None
        return

    from testcontainers.postgres import PostgresContainer

    with PostgresContainer("postgres:17") as pg:
        # Convert sync URL to async (postgresql:// -> postgresql+asyncpg://)
        sync_url = pg.get_connection_url()
        yield sync_url.replace("postgresql+psycopg2://", "postgresql+asyncpg://")


@pytest.fixture
async def db_engine(
    postgres_url: str | None, tmp_path: Path
) -> AsyncGenerator[AsyncEngine]:
    url = postgres_url or f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}"
    engine = create_async_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(BaseDbModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(BaseDbModel.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session
        await session.rollback()
