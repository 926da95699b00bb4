import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from crm.account.router import router as account_router
from crm.maintenance.router import router as maintenance_router
from crm.scheduler import run_maintenance_notifications

logging.basicConfig(level=logging.INFO)

SCHEDULER_INTERVAL_MINUTES = int(
    os.environ.get("CRM_SCHEDULER_INTERVAL_MINUTES", "60")
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_maintenance_notifications,
        "interval",
        minutes=SCHEDULER_INTERVAL_MINUTES,
        id="run_maintenance_notifications",
    )
    scheduler.start()
    yield
    scheduler.shutdown()


app = FastAPI(title="Maintenance CRM", lifespan=lifespan)
app.include_router(account_router)
app.include_router(maintenance_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
