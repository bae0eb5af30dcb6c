"""
Reminder Engine
Plans dose reminders and owns the timers that deliver them
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Any, Set, Tuple
from dataclasses import dataclass, field
from datetime import datetime, timedelta, time
from enum import Enum

from config import settings, timing_config
from tools.dose_types import ClassifiedDose, DoseStatus, LogStatus, OccurrenceKey
from tools.schedule_expander import parse_time_of_day


logger = logging.getLogger(__name__)


NotifySink = Callable[[str, str], None]


class ReminderType(str, Enum):
    """Types of reminders"""
    MEDICATION_UPCOMING = "medication_upcoming"
    MEDICATION_DUE = "medication_due"
    SNOOZE_ELAPSED = "snooze_elapsed"


_TEMPLATES = {
    ReminderType.MEDICATION_UPCOMING: {
        "title": "Upcoming: {medication_name}",
        "message": "Take {medication_name} ({dosage}) at {time_of_day}.{instructions}"
    },
    ReminderType.MEDICATION_DUE: {
        "title": "Time for {medication_name}",
        "message": "It's time to take your {medication_name} ({dosage}).{instructions}"
    },
    ReminderType.SNOOZE_ELAPSED: {
        "title": "Reminder: {medication_name}",
        "message": "Your snoozed dose of {medication_name} ({dosage}) is due.{instructions}"
    },
}


@dataclass
class ReminderPreferences:
    """Delivery preferences for a reminder session"""
    enabled: bool = True
    quiet_hours_start: Optional[time] = None  # e.g., 22:00
    quiet_hours_end: Optional[time] = None    # e.g., 07:00

    @classmethod
    def from_settings(cls) -> "ReminderPreferences":
        return cls(
            quiet_hours_start=parse_time_of_day(settings.QUIET_HOURS_START),
            quiet_hours_end=parse_time_of_day(settings.QUIET_HOURS_END),
        )

    def is_quiet_time(self, check_time: Optional[datetime] = None) -> bool:
        """Check if a time is within quiet hours"""
        if not self.quiet_hours_start or not self.quiet_hours_end:
            return False

        current = (check_time or datetime.now()).time()

        # Handle overnight quiet hours (e.g., 22:00 to 07:00)
        if self.quiet_hours_start > self.quiet_hours_end:
            return current >= self.quiet_hours_start or current < self.quiet_hours_end
        return self.quiet_hours_start <= current < self.quiet_hours_end


@dataclass
class Notification:
    """A reminder ready for the notification sink"""
    key: OccurrenceKey
    reminder_type: ReminderType
    title: str
    body: str
    trigger_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        schedule_id, scheduled_instant = self.key
        return {
            "schedule_id": schedule_id,
            "scheduled_time": scheduled_instant.isoformat(),
            "reminder_type": self.reminder_type.value,
            "title": self.title,
            "body": self.body,
            "trigger_at": self.trigger_at.isoformat(),
        }


@dataclass
class ScheduledReminder:
    """A one-shot reminder to deliver at a future instant"""
    key: OccurrenceKey
    when: datetime
    notification: Notification

    def to_dict(self) -> Dict[str, Any]:
        return {"when": self.when.isoformat(), **self.notification.to_dict()}


@dataclass
class ReminderPlan:
    """Reminders to deliver now and later"""
    fire_now: List[Notification] = field(default_factory=list)
    schedule_later: List[ScheduledReminder] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fire_now": [n.to_dict() for n in self.fire_now],
            "schedule_later": [s.to_dict() for s in self.schedule_later],
        }


def build_notification(
    dose: ClassifiedDose,
    reminder_type: ReminderType,
    trigger_at: datetime
) -> Notification:
    """Format a notification for a dose from its template"""
    occ = dose.occurrence
    template = _TEMPLATES[reminder_type]
    instructions = []
    if occ.with_food:
        instructions.append("Take with food.")
    if occ.special_instructions:
        instructions.append(occ.special_instructions)

    values = {
        "medication_name": occ.medication_name or "your medication",
        "dosage": occ.dosage,
        "time_of_day": occ.scheduled_instant.strftime("%H:%M"),
        "instructions": (" " + " ".join(instructions)) if instructions else "",
    }
    return Notification(
        key=dose.key,
        reminder_type=reminder_type,
        title=template["title"].format(**values),
        body=template["message"].format(**values),
        trigger_at=trigger_at,
    )


def plan_reminders(
    doses: Iterable[ClassifiedDose],
    lead_minutes: Optional[int] = None,
    now: Optional[datetime] = None
) -> ReminderPlan:
    """
    Decide which reminders fire now and which are scheduled for later.

    Args:
        doses: Classified doses, usually today's
        lead_minutes: Minutes before the dose to remind; None uses each
            medication's own reminder window
        now: Evaluation instant

    Returns:
        ReminderPlan
    """
    now = now or datetime.now()
    just_due = timedelta(seconds=timing_config.JUST_DUE_FIRE_SECONDS)
    plan = ReminderPlan()

    for dose in doses:
        if dose.status in (DoseStatus.TAKEN, DoseStatus.SKIPPED):
            continue

        snooze_until = dose.snooze_until
        if dose.status == DoseStatus.SNOOZED and snooze_until and snooze_until > now:
            plan.schedule_later.append(ScheduledReminder(
                key=dose.key,
                when=snooze_until,
                notification=build_notification(dose, ReminderType.SNOOZE_ELAPSED, snooze_until),
            ))
            continue

        # An elapsed snooze makes snooze_until the dose's reference instant
        snooze_elapsed = snooze_until is not None and snooze_until <= now
        if snooze_elapsed and dose.log.status == LogStatus.SNOOZED:
            if now - snooze_until < just_due:
                plan.fire_now.append(
                    build_notification(dose, ReminderType.SNOOZE_ELAPSED, snooze_until)
                )
            continue

        lead = lead_minutes if lead_minutes is not None else dose.occurrence.timing.reminder_window_minutes
        scheduled = dose.scheduled_instant
        reminder_at = scheduled - timedelta(minutes=lead)

        if reminder_at > now:
            plan.schedule_later.append(ScheduledReminder(
                key=dose.key,
                when=reminder_at,
                notification=build_notification(dose, ReminderType.MEDICATION_UPCOMING, reminder_at),
            ))
        elif now < scheduled:
            plan.fire_now.append(
                build_notification(dose, ReminderType.MEDICATION_UPCOMING, reminder_at)
            )
        elif now - scheduled < just_due:
            plan.fire_now.append(
                build_notification(dose, ReminderType.MEDICATION_DUE, scheduled)
            )

    return plan


def log_notification(title: str, body: str):
    """Default sink: write the reminder to the log"""
    logger.info(f"Reminder: {title} - {body}")


@dataclass
class _PendingReminder:
    when: datetime
    notification: Notification
    handle: asyncio.TimerHandle


class ReminderScheduler:
    """
    Owns one session's reminder timers.

    Responsibilities:
    - One pending timer per occurrence key; rescheduling cancels and replaces
    - Cancel timers for doses that were taken or skipped before firing
    - Never deliver the same (key, trigger instant) twice
    - Release every timer on shutdown

    Usage:
        async with ReminderScheduler(notify=sink) as scheduler:
            scheduler.sync(todays_doses)
    """

    def __init__(
        self,
        notify: NotifySink = log_notification,
        preferences: Optional[ReminderPreferences] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self._notify = notify
        self._preferences = preferences or ReminderPreferences()
        self._clock = clock
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Dict[OccurrenceKey, _PendingReminder] = {}
        self._fired: Set[Tuple[OccurrenceKey, datetime]] = set()
        self._poll_task: Optional[asyncio.Task] = None

    # ---------- lifecycle ----------

    def start(self):
        """Bind to the running event loop"""
        if self._loop is not None:
            return
        self._loop = asyncio.get_running_loop()
        logger.info("Reminder scheduler started")

    @property
    def is_running(self) -> bool:
        return self._loop is not None

    def shutdown(self):
        """Cancel every pending timer and the polling task"""
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        for key in list(self._pending):
            self.cancel(key)
        self._fired.clear()
        self._loop = None
        logger.info("Reminder scheduler shut down")

    async def __aenter__(self) -> "ReminderScheduler":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.shutdown()

    # ---------- timers ----------

    @property
    def pending_keys(self) -> Set[OccurrenceKey]:
        return set(self._pending)

    def pending_at(self, key: OccurrenceKey) -> Optional[datetime]:
        pending = self._pending.get(key)
        return pending.when if pending else None

    def schedule(self, key: OccurrenceKey, when: datetime, notification: Notification) -> bool:
        """
        Schedule a one-shot reminder for key.

        Returns False when an identical reminder is already pending. A pending
        reminder for the same key at another instant is cancelled and replaced.
        """
        if self._loop is None:
            raise RuntimeError("ReminderScheduler.start() must be called before scheduling")

        existing = self._pending.get(key)
        if existing is not None:
            if existing.when == when:
                return False
            existing.handle.cancel()
            logger.debug(f"Reminder for {key} moved from {existing.when} to {when}")

        delay = max(0.0, (when - self._clock()).total_seconds())
        handle = self._loop.call_later(delay, self._fire, key)
        self._pending[key] = _PendingReminder(when=when, notification=notification, handle=handle)
        return True

    def cancel(self, key: OccurrenceKey) -> bool:
        pending = self._pending.pop(key, None)
        if pending is None:
            return False
        pending.handle.cancel()
        logger.debug(f"Cancelled reminder for {key}")
        return True

    def _fire(self, key: OccurrenceKey):
        pending = self._pending.pop(key, None)
        if pending is not None:
            self.deliver(pending.notification)

    def deliver(self, notification: Notification) -> bool:
        """Send a notification through the sink unless already sent or suppressed"""
        marker = (notification.key, notification.trigger_at)
        if marker in self._fired:
            return False
        self._fired.add(marker)

        if not self._preferences.enabled:
            return False
        if self._preferences.is_quiet_time(self._clock()):
            logger.info(f"Quiet hours active, dropping reminder: {notification.title}")
            return False

        try:
            self._notify(notification.title, notification.body)
        except Exception:
            logger.exception(f"Notification sink failed for {notification.key}")
            return False
        return True

    # ---------- refresh ----------

    def sync(
        self,
        doses: Iterable[ClassifiedDose],
        now: Optional[datetime] = None,
        lead_minutes: Optional[int] = None
    ) -> ReminderPlan:
        """
        Reconcile timers with freshly classified doses.

        Pending keys no longer wanted (dose taken, skipped, removed, or now
        firing immediately) are cancelled; wanted ones are scheduled or kept.
        """
        now = now or self._clock()
        plan = plan_reminders(doses, lead_minutes, now)

        wanted = {item.key for item in plan.schedule_later}
        for key in list(self._pending):
            if key not in wanted:
                self.cancel(key)

        for item in plan.schedule_later:
            self.schedule(item.key, item.when, item.notification)

        for notification in plan.fire_now:
            self.deliver(notification)

        horizon = now - timedelta(days=1)
        self._fired = {m for m in self._fired if m[1] >= horizon}
        return plan

    def start_polling(
        self,
        fetch_doses: Callable[[], Awaitable[List[ClassifiedDose]]],
        interval_seconds: Optional[float] = None
    ) -> asyncio.Task:
        """Re-derive doses and sync on a fixed interval until shutdown"""
        self.start()
        interval = interval_seconds or settings.REMINDER_POLL_SECONDS

        async def _poll():
            while True:
                try:
                    self.sync(await fetch_doses())
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Reminder refresh failed")
                await asyncio.sleep(interval)

        if self._poll_task is not None:
            self._poll_task.cancel()
        self._poll_task = asyncio.create_task(_poll())
        return self._poll_task
