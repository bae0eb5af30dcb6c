"""
Medications API Router
Medication CRUD, schedule edits on update, refills and deactivation
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from api.deps import get_db, get_current_user_id, get_medication_or_404, services
from api.schemas.medication import (
    MedicationCreate,
    MedicationUpdate,
    RefillRequest,
    MedicationResponse,
    MedicationList,
)


router = APIRouter(prefix="/medications", tags=["medications"])


@router.post("/", response_model=MedicationResponse, status_code=status.HTTP_201_CREATED)
async def create_medication(
    medication_data: MedicationCreate,
    db: Session = Depends(get_db)
):
    """
    Add a new medication with its schedules

    - **user_id**: Owner
    - **name**: Medication name
    - **dosage**: Dosage (e.g., "500mg")
    - **schedules**: Recurrence rules (time_of_day, days_of_week)
    """
    medication_service = services.get_medication_service()

    data = medication_data.model_dump(exclude_none=True)
    schedules = data.pop("schedules", [])
    user_id = data.pop("user_id")

    try:
        return await medication_service.add_medication(
            user_id=user_id,
            schedules=schedules,
            db=db,
            **data
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/user/{user_id}", response_model=MedicationList)
async def get_user_medications(
    user_id: int = Depends(get_current_user_id),
    active_only: bool = Query(True, description="Only return active medications"),
    db: Session = Depends(get_db)
):
    """
    Get all medications for a user
    """
    medication_service = services.get_medication_service()

    medications = await medication_service.get_user_medications(
        user_id,
        active_only=active_only,
        db=db
    )

    return MedicationList(
        medications=medications,
        total=len(medications),
        active_count=sum(1 for m in medications if m.active)
    )


@router.get("/user/{user_id}/refills", response_model=MedicationList)
async def get_refills_needed(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Active medications at or below their refill threshold
    """
    medication_service = services.get_medication_service()

    medications = await medication_service.get_refills_needed(user_id, db=db)

    return MedicationList(
        medications=medications,
        total=len(medications),
        active_count=len(medications)
    )


@router.get("/{medication_id}", response_model=MedicationResponse)
async def get_medication(
    medication_id: int,
    db: Session = Depends(get_db)
):
    """
    Get a medication with its schedules
    """
    return get_medication_or_404(medication_id, db)


@router.put("/{medication_id}", response_model=MedicationResponse)
async def update_medication(
    medication_id: int,
    medication_data: MedicationUpdate,
    db: Session = Depends(get_db)
):
    """
    Update medication fields; a schedules list replaces every existing rule
    """
    medication_service = services.get_medication_service()
    medication = get_medication_or_404(medication_id, db)

    updates = medication_data.model_dump(exclude_unset=True)
    schedules = updates.pop("schedules", None)

    if not updates and schedules is None:
        return medication

    try:
        return await medication_service.update_medication(
            medication_id,
            updates,
            schedules=schedules,
            db=db
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.post("/{medication_id}/deactivate", response_model=MedicationResponse)
async def deactivate_medication(
    medication_id: int,
    db: Session = Depends(get_db)
):
    """
    Stop a medication without deleting its history
    """
    medication_service = services.get_medication_service()
    get_medication_or_404(medication_id, db)

    return await medication_service.deactivate_medication(medication_id, db=db)


@router.post("/{medication_id}/refill", response_model=MedicationResponse)
async def refill_medication(
    medication_id: int,
    refill: RefillRequest,
    db: Session = Depends(get_db)
):
    """
    Add pills to the remaining supply
    """
    medication_service = services.get_medication_service()
    get_medication_or_404(medication_id, db)

    try:
        return await medication_service.refill_medication(medication_id, refill.quantity, db=db)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/{medication_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medication(
    medication_id: int,
    db: Session = Depends(get_db)
):
    """
    Delete a medication with its schedules and dose history
    """
    medication_service = services.get_medication_service()

    deleted = await medication_service.delete_medication(medication_id, db=db)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Medication {medication_id} not found"
        )

    return None
