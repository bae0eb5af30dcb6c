"""
API Dependencies
Common dependencies for FastAPI endpoints
"""

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_db


async def get_current_user_id(
    user_id: int,
    db: Session = Depends(get_db)
) -> int:
    """
    Validate user exists and is active, return user ID
    """
    from models import User

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"User {user_id} is not active"
        )

    return user_id


def get_medication_or_404(medication_id: int, db: Session):
    """Medication by ID or 404"""
    from models import Medication

    medication = db.query(Medication).filter(Medication.id == medication_id).first()
    if not medication:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Medication {medication_id} not found"
        )
    return medication


class ServiceDependency:
    """
    Dependency injection for services
    """

    @staticmethod
    def get_user_service():
        from services.user_service import user_service
        return user_service

    @staticmethod
    def get_medication_service():
        from services.medication_service import medication_service
        return medication_service

    @staticmethod
    def get_schedule_service():
        from services.schedule_service import schedule_service
        return schedule_service

    @staticmethod
    def get_dose_action_service():
        from services.dose_action_service import dose_action_service
        return dose_action_service

    @staticmethod
    def get_adherence_service():
        from services.adherence_service import adherence_service
        return adherence_service

    @staticmethod
    def get_reminder_service():
        from services.reminder_service import reminder_service
        return reminder_service


# Service dependency instances
services = ServiceDependency()
