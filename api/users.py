"""
Users API Router
Endpoints for user profiles
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from api.deps import get_db, services
from api.schemas.user import UserCreate, UserResponse


router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    """
    Create a new user

    - **email**: Unique email address
    - **display_name**: Name shown in the app
    """
    user_service = services.get_user_service()

    try:
        return await user_service.create_user(
            email=user_data.email,
            display_name=user_data.display_name,
            external_id=user_data.external_id,
            db=db
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db)
):
    """
    Get a user by ID
    """
    user_service = services.get_user_service()

    user = await user_service.get_user(user_id, db=db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found"
        )

    return user
