"""
User Service
Business logic for user profiles
"""

import logging
from typing import Optional
from sqlalchemy.orm import Session

from database import get_db_context
import models


logger = logging.getLogger(__name__)


class UserService:
    """
    Service for user-related operations
    """

    async def create_user(
        self,
        email: str,
        display_name: str,
        external_id: Optional[str] = None,
        db: Optional[Session] = None
    ) -> models.User:
        """
        Create a new user record

        Args:
            email: User email (unique)
            display_name: Name shown in the app
            external_id: Identifier from the auth provider
            db: Database session (optional)

        Returns:
            Created User object
        """
        def _create(session: Session) -> models.User:
            existing = session.query(models.User).filter(
                models.User.email == email
            ).first()

            if existing:
                raise ValueError(f"User with email {email} already exists")

            user = models.User(
                email=email,
                display_name=display_name,
                external_id=external_id,
            )

            session.add(user)
            session.commit()
            session.refresh(user)

            logger.info(f"Created user: {user.id} - {user.display_name}")
            return user

        if db:
            return _create(db)

        with get_db_context() as session:
            return _create(session)

    async def get_user(
        self,
        user_id: int,
        db: Optional[Session] = None
    ) -> Optional[models.User]:
        """Get user by ID"""
        def _get(session: Session) -> Optional[models.User]:
            return session.query(models.User).filter(
                models.User.id == user_id
            ).first()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)


# Singleton instance
user_service = UserService()
