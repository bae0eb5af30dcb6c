"""
Services Module
Business logic layer for the DoseKeeper application
"""

from services.user_service import UserService, user_service
from services.medication_service import MedicationService, medication_service
from services.schedule_service import ScheduleService, schedule_service
from services.dose_action_service import DoseActionService, dose_action_service
from services.adherence_service import AdherenceService, adherence_service
from services.reminder_service import ReminderService, reminder_service


__all__ = [
    # Service classes
    "UserService",
    "MedicationService",
    "ScheduleService",
    "DoseActionService",
    "AdherenceService",
    "ReminderService",
    # Singleton instances
    "user_service",
    "medication_service",
    "schedule_service",
    "dose_action_service",
    "adherence_service",
    "reminder_service",
]
