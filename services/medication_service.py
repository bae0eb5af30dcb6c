"""
Medication Service
Medication records, pill supply and refills for a user
"""

import logging
from typing import Dict, List, Optional, Any
from datetime import date
from sqlalchemy.orm import Session

from database import get_db_context
import models
from services.schedule_service import replace_medication_schedules


logger = logging.getLogger(__name__)


UPDATABLE_FIELDS = (
    "name",
    "dosage",
    "form",
    "instructions",
    "frequency_type",
    "grace_period_minutes",
    "reminder_window_minutes",
    "missed_dose_cutoff_minutes",
    "pills_remaining",
    "total_pills",
    "refill_reminder_threshold",
    "start_date",
    "end_date",
    "active",
)


class MedicationService:
    """
    Service for medication-related operations
    """

    async def add_medication(
        self,
        user_id: int,
        name: str,
        dosage: str,
        form: models.MedicationForm = models.MedicationForm.PILL,
        schedules: Optional[List[Dict[str, Any]]] = None,
        db: Optional[Session] = None,
        **options: Any
    ) -> models.Medication:
        """
        Add a new medication for a user

        Args:
            user_id: Owner user ID
            name: Medication name
            dosage: Dosage (e.g., "500mg")
            form: Physical form
            schedules: Recurrence rules to attach
            db: Database session
            **options: Any of the optional medication columns (timing
                overrides, supply tracking, start/end dates, instructions)

        Returns:
            Created Medication object
        """
        unknown = set(options) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown medication fields: {', '.join(sorted(unknown))}")

        def _add(session: Session) -> models.Medication:
            user = session.query(models.User).filter(models.User.id == user_id).first()
            if not user:
                raise ValueError(f"User {user_id} not found")

            medication = models.Medication(
                user_id=user_id,
                name=name,
                dosage=dosage,
                form=form,
                active=options.pop("active", True),
                start_date=options.pop("start_date", None) or date.today(),
                **options
            )
            session.add(medication)
            session.flush()

            if schedules:
                replace_medication_schedules(session, medication, schedules)

            session.commit()
            session.refresh(medication)

            logger.info(f"Added medication {name} for user {user_id}")
            return medication

        if db:
            return _add(db)

        with get_db_context() as session:
            return _add(session)

    async def get_medication(
        self,
        medication_id: int,
        db: Optional[Session] = None
    ) -> Optional[models.Medication]:
        """Get medication by ID"""
        def _get(session: Session) -> Optional[models.Medication]:
            return session.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_user_medications(
        self,
        user_id: int,
        active_only: bool = True,
        db: Optional[Session] = None
    ) -> List[models.Medication]:
        """Get all medications for a user"""
        def _get(session: Session) -> List[models.Medication]:
            query = session.query(models.Medication).filter(
                models.Medication.user_id == user_id
            )

            if active_only:
                query = query.filter(models.Medication.active == True)  # noqa: E712

            return query.order_by(models.Medication.name).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def update_medication(
        self,
        medication_id: int,
        updates: Dict[str, Any],
        schedules: Optional[List[Dict[str, Any]]] = None,
        db: Optional[Session] = None
    ) -> models.Medication:
        """
        Update medication fields; when schedules is given, replace them wholesale
        """
        def _update(session: Session) -> models.Medication:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()
            if not medication:
                raise ValueError(f"Medication {medication_id} not found")

            for key, value in updates.items():
                if key not in UPDATABLE_FIELDS:
                    raise ValueError(f"Field {key} cannot be updated")
                setattr(medication, key, value)

            if schedules is not None:
                replace_medication_schedules(session, medication, schedules)

            session.commit()
            session.refresh(medication)

            logger.info(f"Updated medication {medication_id}")
            return medication

        if db:
            return _update(db)

        with get_db_context() as session:
            return _update(session)

    async def deactivate_medication(
        self,
        medication_id: int,
        db: Optional[Session] = None
    ) -> models.Medication:
        """Soft delete: keep history, stop producing doses"""
        return await self.update_medication(medication_id, {"active": False}, db=db)

    async def delete_medication(
        self,
        medication_id: int,
        db: Optional[Session] = None
    ) -> bool:
        """Hard delete, cascading to schedules and dose logs"""
        def _delete(session: Session) -> bool:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()
            if not medication:
                return False

            session.delete(medication)
            session.commit()
            logger.info(f"Deleted medication {medication_id}")
            return True

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)

    async def refill_medication(
        self,
        medication_id: int,
        quantity: int,
        db: Optional[Session] = None
    ) -> models.Medication:
        """Add pills to the remaining supply"""
        if quantity <= 0:
            raise ValueError("Refill quantity must be positive")

        def _refill(session: Session) -> models.Medication:
            medication = session.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()
            if not medication:
                raise ValueError(f"Medication {medication_id} not found")

            medication.pills_remaining = (medication.pills_remaining or 0) + quantity
            if medication.total_pills is None or medication.pills_remaining > medication.total_pills:
                medication.total_pills = medication.pills_remaining

            session.commit()
            session.refresh(medication)

            logger.info(
                f"Refilled medication {medication_id} by {quantity}, "
                f"{medication.pills_remaining} remaining"
            )
            return medication

        if db:
            return _refill(db)

        with get_db_context() as session:
            return _refill(session)

    async def get_refills_needed(
        self,
        user_id: int,
        db: Optional[Session] = None
    ) -> List[models.Medication]:
        """Active medications at or below their refill threshold"""
        medications = await self.get_user_medications(user_id, active_only=True, db=db)
        return [m for m in medications if m.needs_refill]


# Singleton instance
medication_service = MedicationService()
