from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from typing import Iterable, Sequence, cast
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.account.models import Account
from crm.maintenance.models import MaintenanceRecord, MaintenanceStatus

_SECONDS_PER_DAY = 24 * 60 * 60

EXPORT_COLUMNS = (
    "Product Name",
    "Product Type",
    "Vendor",
    "Account",
    "Expiration Date",
    "Days Until Expiry",
    "Cost",
    "Status",
)


class ExpirationPeriod(enum.Enum):
    OVERDUE = "overdue"
    DAYS_30 = "30-days"
    DAYS_60 = "60-days"
    DAYS_90 = "90-days"
    FUTURE = "future"

    @property
    def title(self) -> str:
        return _TITLES[self]

    @property
    def severity(self) -> str:
        return _SEVERITIES[self]


_TITLES = {
    ExpirationPeriod.OVERDUE: "Expired",
    ExpirationPeriod.DAYS_30: "Expiring in 30 Days",
    ExpirationPeriod.DAYS_60: "Expiring in 60 Days",
    ExpirationPeriod.DAYS_90: "Expiring in 90 Days",
    ExpirationPeriod.FUTURE: "Future Expirations",
}

_SEVERITIES = {
    ExpirationPeriod.OVERDUE: "destructive",
    ExpirationPeriod.DAYS_30: "destructive",
    ExpirationPeriod.DAYS_60: "secondary",
    ExpirationPeriod.DAYS_90: "outline",
    ExpirationPeriod.FUTURE: "default",
}


@dataclass(frozen=True)
class ReportRecord:
    id: UUID | None
    product_name: str
    product_type: str
    end_date: date | str | None
    vendor_name: str | None = None
    account_name: str | None = None
    cost: float | None = None
    status: str = MaintenanceStatus.ACTIVE.value
    days_until_expiry: int | None = None


@dataclass(frozen=True)
class ExpirationGroup:
    period: ExpirationPeriod
    records: list[ReportRecord] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.period.title


@dataclass(frozen=True)
class ExpirationSummary:
    total_records: int
    total_cost: float
    account_count: int
    critical_count: int


def _as_datetime(value: date | datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _end_date(value: date | str | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def days_until_expiry(end_date: date, as_of: date | datetime | None = None) -> int:
    """Whole days from ``as_of`` to midnight UTC of ``end_date``, rounded up."""
    delta = _as_datetime(end_date) - _as_datetime(as_of)
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def period_for(days: int) -> ExpirationPeriod:
    if days < 0:
        return ExpirationPeriod.OVERDUE
    if days <= 30:
        return ExpirationPeriod.DAYS_30
    if days <= 60:
        return ExpirationPeriod.DAYS_60
    if days <= 90:
        return ExpirationPeriod.DAYS_90
    return ExpirationPeriod.FUTURE


def with_days_until_expiry(
    records: Iterable[ReportRecord], as_of: date | datetime | None = None
) -> list[ReportRecord]:
    """Fill in days_until_expiry; records without a usable end date are dropped."""
    moment = _as_datetime(as_of)
    result: list[ReportRecord] = []
    for record in records:
        end = _end_date(record.end_date)
        if end is None:
            continue
        days = days_until_expiry(end, moment)
        result.append(replace(record, end_date=end, days_until_expiry=days))
    return result


def bucket(
    records: Iterable[ReportRecord], as_of: date | datetime | None = None
) -> list[ExpirationGroup]:
    """Partition records into the five expiration groups, in display order."""
    groups = {period: ExpirationGroup(period) for period in ExpirationPeriod}
    for record in with_days_until_expiry(records, as_of):
        days = cast(int, record.days_until_expiry)
        groups[period_for(days)].records.append(record)
    return list(groups.values())


def summarize(
    records: Sequence[ReportRecord], groups: Sequence[ExpirationGroup]
) -> ExpirationSummary:
    counts = {group.period: len(group.records) for group in groups}
    accounts = {
        name
        for name in (r.account_name or r.vendor_name for r in records)
        if name
    }
    return ExpirationSummary(
        total_records=len(records),
        total_cost=sum(r.cost or 0.0 for r in records),
        account_count=len(accounts),
        critical_count=counts.get(ExpirationPeriod.OVERDUE, 0)
        + counts.get(ExpirationPeriod.DAYS_30, 0),
    )


@dataclass(frozen=True)
class ExpirationReport:
    as_of: date
    records: list[ReportRecord]
    groups: list[ExpirationGroup]
    summary: ExpirationSummary


def build_report(
    records: Iterable[ReportRecord], as_of: date | datetime | None = None
) -> ExpirationReport:
    moment = _as_datetime(as_of)
    dated = with_days_until_expiry(records, moment)
    groups = bucket(dated, moment)
    return ExpirationReport(
        as_of=moment.date(),
        records=dated,
        groups=groups,
        summary=summarize(dated, groups),
    )


def _format_cost(cost: float | None) -> str:
    if not cost:
        return "N/A"
    # Up to three decimals, trailing zeros dropped: $1,299.5, $2,500.
    text = f"{cost:,.3f}".rstrip("0").rstrip(".")
    return f"${text}"


def _quote(value: object) -> str:
    return '"' + str(value).replace('"', '""') + '"'


def export_csv(records: Sequence[ReportRecord]) -> str:
    """
    Render the report as CSV text: a bare header row, then one fully quoted
    row per record. An empty report still yields the header.
    """
    lines = [",".join(EXPORT_COLUMNS)]
    for r in records:
        end = _end_date(r.end_date)
        values = (
            r.product_name,
            r.product_type,
            r.vendor_name or "N/A",
            r.account_name or "N/A",
            end.isoformat() if end else "N/A",
            "" if r.days_until_expiry is None else r.days_until_expiry,
            _format_cost(r.cost),
            r.status,
        )
        lines.append(",".join(_quote(v) for v in values))
    return "\n".join(lines)


def report_filename(as_of: date | datetime | None = None) -> str:
    day = _as_datetime(as_of).date()
    return f"maintenance-expiration-report-{day.isoformat()}.csv"


async def fetch_report_records(
    session: AsyncSession, user_id: UUID
) -> list[ReportRecord]:
    """Active records with an end date for one user, soonest first."""
    stmt = (
        select(MaintenanceRecord, Account.name)
        .outerjoin(Account, MaintenanceRecord.account_id == Account.id)
        .where(
            MaintenanceRecord.user_id == user_id,
            MaintenanceRecord.status == MaintenanceStatus.ACTIVE,
            MaintenanceRecord.end_date.is_not(None),
        )
        .order_by(MaintenanceRecord.end_date.asc())
    )
    rows = (await session.execute(stmt)).all()
    return [
        ReportRecord(
            id=record.id,
            product_name=record.product_name,
            product_type=record.product_type.value,
            end_date=record.end_date,
            vendor_name=record.vendor_name,
            account_name=account_name,
            cost=record.cost,
            status=record.status.value,
        )
        for record, account_name in rows
    ]
