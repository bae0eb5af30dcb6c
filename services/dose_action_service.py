"""
Dose Action Service
The single write path for dose logs: take, skip and snooze
"""

import logging
from typing import Dict, Optional, Any
from dataclasses import dataclass
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from sqlalchemy import and_, desc
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from database import get_db_context
import models
from tools.dose_types import DoseLogEntry, LogStatus, Timeliness, TimingConfig
from tools.dose_classifier import taken_timeliness


logger = logging.getLogger(__name__)


# ==================== ERRORS ====================

class DoseActionError(ValueError):
    """Base class for rejected or failed dose actions"""


class MedicationNotFoundError(DoseActionError):
    pass


class MedicationInactiveError(DoseActionError):
    pass


class ScheduleNotFoundError(DoseActionError):
    pass


class InvalidDoseActionError(DoseActionError):
    pass


class DoseLogWriteError(DoseActionError):
    """Storage failed; the caller may resubmit"""


# ==================== RESULT ====================

@dataclass
class DoseActionResult:
    """Outcome of a recorded action"""
    entry: DoseLogEntry
    timeliness: Optional[Timeliness] = None
    already_recorded: bool = False
    pills_remaining: Optional[int] = None

    @property
    def message(self) -> str:
        if self.already_recorded:
            return f"Dose already recorded as {self.entry.status.value}"
        return f"Dose marked as {self.entry.status.value}"

    def to_dict(self) -> Dict[str, Any]:
        entry = self.entry
        return {
            "success": True,
            "already_recorded": self.already_recorded,
            "message": self.message,
            "log_id": entry.id,
            "medication_id": entry.medication_id,
            "schedule_id": entry.schedule_id,
            "scheduled_time": entry.scheduled_instant.isoformat(),
            "status": entry.status.value,
            "timeliness": self.timeliness.value if self.timeliness else None,
            "taken_at": entry.taken_at.isoformat() if entry.taken_at else None,
            "snooze_until": entry.snooze_until.isoformat() if entry.snooze_until else None,
            "pills_remaining": self.pills_remaining,
        }


def normalize_instant(value: datetime) -> datetime:
    """Local naive datetime at minute precision, matching expanded occurrences"""
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.replace(second=0, microsecond=0)


def find_existing_log(
    session: Session,
    medication_id: int,
    schedule_id: int,
    scheduled: datetime
) -> Optional[models.DoseLog]:
    """
    Latest log for an occurrence.

    Falls back to a row orphaned by a schedule replacement (schedule_id NULL,
    same medication and instant) and re-links it to schedule_id.
    """
    recency = (desc(models.DoseLog.updated_at), desc(models.DoseLog.id))
    existing = session.query(models.DoseLog).filter(
        and_(
            models.DoseLog.schedule_id == schedule_id,
            models.DoseLog.scheduled_time == scheduled
        )
    ).order_by(*recency).first()
    if existing is not None:
        return existing

    orphan = session.query(models.DoseLog).filter(
        and_(
            models.DoseLog.medication_id == medication_id,
            models.DoseLog.schedule_id.is_(None),
            models.DoseLog.scheduled_time == scheduled
        )
    ).order_by(*recency).first()
    if orphan is not None:
        logger.info(f"Re-linking dose log {orphan.id} at {scheduled} to schedule {schedule_id}")
        orphan.schedule_id = schedule_id
    return orphan


class DoseActionService:
    """
    Records user actions against dose occurrences.

    One row per (schedule_id, scheduled_time): a new action updates the
    existing row. Once a dose is taken, further actions on it are no-ops.
    """

    async def record_action(
        self,
        medication_id: int,
        schedule_id: int,
        scheduled_instant: datetime,
        status: Any,
        snooze_minutes: Optional[int] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> DoseActionResult:
        """
        Record a take / skip / snooze action

        Args:
            medication_id: Medication ID
            schedule_id: Schedule ID of the occurrence
            scheduled_instant: Scheduled time of the occurrence
            status: "taken", "skipped" or "snoozed"
            snooze_minutes: Snooze length (default from settings)
            notes: Free-text notes
            now: Action time (defaults to local now)
            db: Database session

        Returns:
            DoseActionResult

        Raises:
            MedicationNotFoundError, MedicationInactiveError,
            ScheduleNotFoundError, InvalidDoseActionError, DoseLogWriteError
        """
        try:
            action = LogStatus(getattr(status, "value", status))
        except ValueError:
            raise InvalidDoseActionError(
                f"Unsupported dose action {status!r}; expected taken, skipped or snoozed"
            )

        if snooze_minutes is not None and snooze_minutes <= 0:
            raise InvalidDoseActionError("snooze_minutes must be positive")

        now = now or datetime.now()
        scheduled = normalize_instant(scheduled_instant)

        def _record(session: Session) -> DoseActionResult:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()
            if not medication:
                raise MedicationNotFoundError(f"Medication {medication_id} not found")
            if not medication.active:
                raise MedicationInactiveError(f"Medication {medication_id} is not active")

            schedule = session.query(models.Schedule).filter(
                and_(
                    models.Schedule.id == schedule_id,
                    models.Schedule.medication_id == medication_id
                )
            ).first()
            if not schedule:
                raise ScheduleNotFoundError(
                    f"Schedule {schedule_id} not found for medication {medication_id}"
                )

            existing = find_existing_log(session, medication_id, schedule_id, scheduled)

            if existing is not None and existing.status == models.DoseLogStatus.TAKEN:
                logger.info(
                    f"Ignoring {action.value} for schedule {schedule_id} at {scheduled}: already taken"
                )
                if session.is_modified(existing):
                    try:
                        session.commit()
                    except SQLAlchemyError as e:
                        session.rollback()
                        logger.error(f"Failed to re-link dose log {existing.id}: {e}")
                        raise DoseLogWriteError(f"Could not record dose action: {e}") from e
                return DoseActionResult(
                    entry=DoseLogEntry.from_model(existing),
                    timeliness=Timeliness(existing.timeliness) if existing.timeliness else None,
                    already_recorded=True,
                    pills_remaining=medication.pills_remaining,
                )

            timeliness = None
            taken_at = None
            snooze_until = None
            if action == LogStatus.TAKEN:
                timing = TimingConfig.for_medication(medication)
                taken_at = now
                timeliness = taken_timeliness(
                    scheduled, now, timing.grace_period_minutes, timing.missed_dose_cutoff_minutes
                )
            elif action == LogStatus.SNOOZED:
                minutes = snooze_minutes or settings.DEFAULT_SNOOZE_MINUTES
                snooze_until = now + timedelta(minutes=minutes)

            log = existing or models.DoseLog(
                medication_id=medication_id,
                schedule_id=schedule_id,
                scheduled_time=scheduled,
            )
            log.status = models.DoseLogStatus(action.value)
            log.taken_at = taken_at
            log.snooze_until = snooze_until
            log.timeliness = timeliness.value if timeliness else None
            log.updated_at = datetime.utcnow()
            if notes is not None:
                log.notes = notes

            if action == LogStatus.TAKEN and medication.pills_remaining is not None:
                medication.pills_remaining = max(0, medication.pills_remaining - 1)

            try:
                session.add(log)
                session.commit()
                session.refresh(log)
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Failed to record {action.value} for schedule {schedule_id}: {e}")
                raise DoseLogWriteError(f"Could not record dose action: {e}") from e

            logger.info(
                f"Recorded {action.value} for medication {medication_id}, "
                f"schedule {schedule_id} at {scheduled}"
            )
            return DoseActionResult(
                entry=DoseLogEntry.from_model(log),
                timeliness=timeliness,
                pills_remaining=medication.pills_remaining,
            )

        if db:
            return _record(db)

        with get_db_context() as session:
            return _record(session)


# Singleton instance
dose_action_service = DoseActionService()
