import logging
from datetime import datetime, timezone

from crm.base.db import async_session
from crm.maintenance.models import MaintenanceNotification
from crm.maintenance.notifications import find_due_notifications

logger = logging.getLogger(__name__)


async def run_maintenance_notifications() -> int:
    """
    Record renewal reminders for records entering their 30/60/90 day window.

    Email delivery is not configured, so reminders are logged and stored with
    email_sent=False. Returns the number of reminders recorded.
    """
    async with async_session() as session:
        now = datetime.now(timezone.utc)
        try:
            due = await find_due_notifications(session, now.date())
            for item in due:
                logger.info(
                    "Renewal reminder for %s to %s: expires in %d days",
                    item.product_name,
                    item.recipient,
                    item.days_until_expiry,
                )
                session.add(
                    MaintenanceNotification(
                        maintenance_record_id=item.maintenance_record_id,
                        user_id=item.user_id,
                        notification_type=item.notification_type,
                        email_sent=False,
                        sent_at=now,
                    )
                )
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Maintenance notification run failed")
            raise

    logger.info("Maintenance notification check completed: %d recorded", len(due))
    return len(due)
