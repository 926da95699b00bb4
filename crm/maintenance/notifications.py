from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.maintenance.expiration import days_until_expiry
from crm.maintenance.models import (
    MaintenanceNotification,
    MaintenanceRecord,
    MaintenanceStatus,
    NotificationType,
)
from crm.user.models import User

REMINDER_OFFSETS_DAYS = (30, 60, 90)

# Reminder windows are +/- 2 days around each offset.
_WINDOWS: tuple[tuple[int, int, NotificationType], ...] = (
    (28, 32, NotificationType.DAYS_30),
    (58, 62, NotificationType.DAYS_60),
    (88, 92, NotificationType.DAYS_90),
)


@dataclass(frozen=True)
class DueNotification:
    maintenance_record_id: UUID
    user_id: UUID
    product_name: str
    notification_type: NotificationType
    days_until_expiry: int
    recipient: str


def notification_type_for(days: int) -> NotificationType | None:
    for low, high, notification_type in _WINDOWS:
        if low <= days <= high:
            return notification_type
    return None


async def find_due_notifications(
    session: AsyncSession, as_of: date
) -> list[DueNotification]:
    """Reminders owed today for records expiring exactly 30, 60 or 90 days out."""
    target_dates = [as_of + timedelta(days=offset) for offset in REMINDER_OFFSETS_DAYS]

    stmt = (
        select(MaintenanceRecord, User)
        .join(User, MaintenanceRecord.user_id == User.id)
        .where(
            MaintenanceRecord.status == MaintenanceStatus.ACTIVE,
            MaintenanceRecord.end_date.in_(target_dates),
            User.enable_maintenance_notifications.is_(True),
        )
    )
    candidates = (await session.execute(stmt)).all()
    if not candidates:
        return []

    sent_stmt = select(
        MaintenanceNotification.maintenance_record_id,
        MaintenanceNotification.notification_type,
    ).where(
        MaintenanceNotification.maintenance_record_id.in_(
            [record.id for record, _ in candidates]
        )
    )
    already_sent = set((await session.execute(sent_stmt)).tuples().all())

    due: list[DueNotification] = []
    for record, user in candidates:
        if record.end_date is None:
            continue
        days = days_until_expiry(record.end_date, as_of)
        notification_type = notification_type_for(days)
        if notification_type is None:
            continue
        if (record.id, notification_type) in already_sent:
            continue
        due.append(
            DueNotification(
                maintenance_record_id=record.id,
                user_id=user.id,
                product_name=record.product_name,
                notification_type=notification_type,
                days_until_expiry=days,
                recipient=user.reminder_address,
            )
        )
    return due
