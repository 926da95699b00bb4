import os
from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, field_validator
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.account.models import Account
from crm.auth import get_current_user
from crm.base.dependencies import get_session
from crm.maintenance.csv_import import SAMPLE_CSV, parse_with_stats
from crm.maintenance.expiration import (
    ExpirationPeriod,
    build_report,
    export_csv,
    fetch_report_records,
    report_filename,
)
from crm.maintenance.importer import ChunkInsertError, import_candidates
from crm.maintenance.models import MaintenanceRecord, MaintenanceStatus, ProductType
from crm.maintenance.store import AccountDirectory, SqlMaintenanceStore
from crm.user.models import User

IMPORT_CHUNK_SIZE = int(os.environ.get("CRM_IMPORT_CHUNK_SIZE", "500"))

NO_ROWS_MESSAGE = "No rows detected. Check the delimiter and header row."

router = APIRouter(prefix="/maintenance")


class MaintenanceRecordCreate(BaseModel):
    product_name: str
    product_type: ProductType = ProductType.SOFTWARE
    account_id: UUID | None = None
    vendor_name: str | None = None
    purchase_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    cost: float | None = None
    income: float | None = None
    profit: float | None = None
    margin_percent: float | None = None
    license_key: str | None = None
    serial_number: str | None = None
    status: MaintenanceStatus = MaintenanceStatus.ACTIVE
    notes: str | None = None
    renewal_reminder_days: int = 30


class MaintenanceRecordUpdate(BaseModel):
    product_name: str | None = None
    product_type: ProductType | None = None
    account_id: UUID | None = None
    vendor_name: str | None = None
    purchase_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    cost: float | None = None
    income: float | None = None
    profit: float | None = None
    margin_percent: float | None = None
    license_key: str | None = None
    serial_number: str | None = None
    status: MaintenanceStatus | None = None
    notes: str | None = None
    renewal_reminder_days: int | None = None

    @field_validator(
        "product_name", "product_type", "status", "renewal_reminder_days"
    )
    @classmethod
    def _not_null(cls, value: object) -> object:
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class MaintenanceRecordResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    account_id: UUID | None
    product_name: str
    product_type: ProductType
    vendor_name: str | None
    purchase_date: date | None
    start_date: date | None
    end_date: date | None
    cost: float | None
    income: float | None
    profit: float | None
    margin_percent: float | None
    license_key: str | None
    serial_number: str | None
    status: MaintenanceStatus
    notes: str | None
    renewal_reminder_days: int
    created_at: datetime
    updated_at: datetime | None


class ImportRequest(BaseModel):
    csv_text: str


class CandidateResponse(BaseModel):
    model_config = {"from_attributes": True}

    product_name: str
    product_type: ProductType
    vendor_name: str | None
    purchase_date: str | None
    start_date: str | None
    end_date: str | None
    cost: float | None
    income: float | None
    profit: float | None
    margin_percent: float | None
    serial_number: str | None
    notes: str | None
    status: MaintenanceStatus


class ImportPreviewResponse(BaseModel):
    records: list[CandidateResponse]
    data_rows: int
    dropped_rows: int
    message: str


class ImportResponse(BaseModel):
    parsed: int
    data_rows: int
    inserted: int
    linked_accounts: int
    message: str


class ReportRecordResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID | None
    product_name: str
    product_type: str
    vendor_name: str | None
    account_name: str | None
    end_date: date
    cost: float | None
    status: str
    days_until_expiry: int


class ExpirationGroupResponse(BaseModel):
    period: ExpirationPeriod
    title: str
    severity: str
    count: int
    records: list[ReportRecordResponse]


class ExpirationSummaryResponse(BaseModel):
    model_config = {"from_attributes": True}

    total_records: int
    total_cost: float
    account_count: int
    critical_count: int


class ExpirationReportResponse(BaseModel):
    as_of: date
    groups: list[ExpirationGroupResponse]
    summary: ExpirationSummaryResponse


async def _get_user_record(
    record_id: UUID,
    user: User,
    session: AsyncSession,
) -> MaintenanceRecord:
    stmt = select(MaintenanceRecord).where(
        MaintenanceRecord.id == record_id, MaintenanceRecord.user_id == user.id
    )
    record = (await session.execute(stmt)).scalar_one_or_none()
    if record is None:
        raise HTTPException(status_code=404, detail="Maintenance record not found")
    return record


async def _check_account(
    account_id: UUID | None, user: User, session: AsyncSession
) -> None:
    if account_id is None:
        return
    stmt = select(Account.id).where(
        Account.id == account_id, Account.user_id == user.id
    )
    if (await session.execute(stmt)).first() is None:
        raise HTTPException(status_code=404, detail="Account not found")


@router.get("", response_model=list[MaintenanceRecordResponse])
async def list_records(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[MaintenanceRecord]:
    stmt = (
        select(MaintenanceRecord)
        .where(MaintenanceRecord.user_id == user.id)
        .order_by(MaintenanceRecord.end_date.asc().nulls_last())
    )
    return list((await session.execute(stmt)).scalars().all())


@router.post("", response_model=MaintenanceRecordResponse, status_code=201)
async def create_record(
    body: MaintenanceRecordCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MaintenanceRecord:
    await _check_account(body.account_id, user, session)
    record = MaintenanceRecord(user_id=user.id, **body.model_dump())
    session.add(record)
    await session.flush()
    return record


@router.delete("")
async def delete_all_records(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict[str, int]:
    stmt = delete(MaintenanceRecord).where(MaintenanceRecord.user_id == user.id)
    result = await session.execute(stmt)
    return {"deleted": result.rowcount or 0}


@router.post("/import/preview", response_model=ImportPreviewResponse)
async def preview_import(
    body: ImportRequest,
    user: User = Depends(get_current_user),
) -> ImportPreviewResponse:
    parsed = parse_with_stats(body.csv_text)
    message = (
        f"Found {len(parsed.records)} maintenance records"
        if parsed.records
        else NO_ROWS_MESSAGE
    )
    return ImportPreviewResponse(
        records=[CandidateResponse.model_validate(r) for r in parsed.records],
        data_rows=parsed.data_rows,
        dropped_rows=parsed.dropped_rows,
        message=message,
    )


@router.post("/import", response_model=ImportResponse, status_code=201)
async def import_records(
    body: ImportRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ImportResponse:
    parsed = parse_with_stats(body.csv_text)
    if not parsed.records:
        raise HTTPException(status_code=422, detail=NO_ROWS_MESSAGE)

    user_id = user.id
    accounts = await AccountDirectory.load(session, user_id)
    try:
        outcome = await import_candidates(
            parsed.records,
            user_id=user_id,
            accounts=accounts,
            store=SqlMaintenanceStore(session),
            chunk_size=IMPORT_CHUNK_SIZE,
        )
    except ChunkInsertError as exc:
        raise HTTPException(
            status_code=500,
            detail={"message": str(exc), "inserted": exc.inserted, "total": exc.total},
        ) from exc

    return ImportResponse(
        parsed=len(parsed.records),
        data_rows=parsed.data_rows,
        inserted=outcome.inserted,
        linked_accounts=outcome.linked_accounts,
        message=f"Successfully imported {outcome.inserted} maintenance records",
    )


@router.get("/import/sample")
async def download_sample() -> Response:
    return Response(
        content=SAMPLE_CSV,
        media_type="text/csv",
        headers={
            "Content-Disposition": "attachment; filename=maintenance_sample.csv"
        },
    )


@router.get("/expiration-report", response_model=ExpirationReportResponse)
async def expiration_report(
    as_of: date | None = None,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ExpirationReportResponse:
    report = build_report(await fetch_report_records(session, user.id), as_of)
    return ExpirationReportResponse(
        as_of=report.as_of,
        groups=[
            ExpirationGroupResponse(
                period=group.period,
                title=group.title,
                severity=group.period.severity,
                count=len(group.records),
                records=[
                    ReportRecordResponse.model_validate(r) for r in group.records
                ],
            )
            for group in report.groups
        ],
        summary=ExpirationSummaryResponse.model_validate(report.summary),
    )


@router.get("/expiration-report/export")
async def export_expiration_report(
    as_of: date | None = None,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    report = build_report(await fetch_report_records(session, user.id), as_of)
    filename = report_filename(as_of)
    return Response(
        content=export_csv(report.records),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/{record_id}", response_model=MaintenanceRecordResponse)
async def get_record(
    record_id: UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MaintenanceRecord:
    return await _get_user_record(record_id, user, session)


@router.patch("/{record_id}", response_model=MaintenanceRecordResponse)
async def update_record(
    record_id: UUID,
    body: MaintenanceRecordUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MaintenanceRecord:
    record = await _get_user_record(record_id, user, session)
    changes = body.model_dump(exclude_unset=True)
    if "account_id" in changes:
        await _check_account(changes["account_id"], user, session)
    for key, value in changes.items():
        setattr(record, key, value)
    await session.flush()
    await session.refresh(record)
    return record


@router.delete("/{record_id}", status_code=204)
async def delete_record(
    record_id: UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> None:
    record = await _get_user_record(record_id, user, session)
    await session.delete(record)
