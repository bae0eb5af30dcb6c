"""
Reminder Service
Connects today's classified doses to reminder planning and delivery
"""

import logging
from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Session

from actions.reminder_engine import (
    NotifySink,
    ReminderPlan,
    ReminderPreferences,
    ReminderScheduler,
    log_notification,
    plan_reminders,
)
from services.schedule_service import schedule_service


logger = logging.getLogger(__name__)


class ReminderService:
    """
    Service for dose reminders
    """

    async def get_reminder_plan(
        self,
        user_id: int,
        now: Optional[datetime] = None,
        lead_minutes: Optional[int] = None,
        db: Optional[Session] = None
    ) -> ReminderPlan:
        """Which of today's reminders are due now and which come later"""
        now = now or datetime.now()
        doses = await schedule_service.get_doses_for_date(user_id, now.date(), now=now, db=db)
        plan = plan_reminders(doses, lead_minutes, now)
        logger.debug(
            f"Reminder plan for user {user_id}: {len(plan.fire_now)} now, "
            f"{len(plan.schedule_later)} later"
        )
        return plan

    async def open_session(
        self,
        user_id: int,
        notify: NotifySink = log_notification,
        interval_seconds: Optional[float] = None
    ) -> ReminderScheduler:
        """
        Start a reminder scheduler that refreshes today's doses on an interval.

        The caller owns the returned scheduler and must call shutdown() when
        the session ends.
        """
        scheduler = ReminderScheduler(notify=notify, preferences=ReminderPreferences.from_settings())

        async def _fetch():
            return await schedule_service.get_doses_for_date(user_id)

        scheduler.start_polling(_fetch, interval_seconds)
        logger.info(f"Opened reminder session for user {user_id}")
        return scheduler


# Singleton instance
reminder_service = ReminderService()
