"""
Actions Module
Reminder planning and delivery
"""

from .reminder_engine import (
    NotifySink,
    ReminderType,
    ReminderPreferences,
    Notification,
    ScheduledReminder,
    ReminderPlan,
    ReminderScheduler,
    build_notification,
    plan_reminders,
    log_notification,
)


__all__ = [
    "NotifySink",
    "ReminderType",
    "ReminderPreferences",
    "Notification",
    "ScheduledReminder",
    "ReminderPlan",
    "ReminderScheduler",
    "build_notification",
    "plan_reminders",
    "log_notification",
]
