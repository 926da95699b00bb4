import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from crm.base.db import async_session

logger = logging.getLogger(__name__)


async def get_session() -> AsyncGenerator[AsyncSession]:
    """Request-scoped session: commit on success, roll back on any error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            logger.warning("Rolling back request session: %s", type(exc).__name__)
            await session.rollback()
            raise
