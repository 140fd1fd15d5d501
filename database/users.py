"""
Database - User Repository.

============================================================
PURPOSE
============================================================
Read access to user accounts.

Account creation, authentication and the admin privilege
model live elsewhere; the lifecycle only needs lookups.

============================================================
"""

import logging
from typing import Optional

from sqlalchemy import select

from .engine import DatabaseManager
from .models import User


logger = logging.getLogger(__name__)


# ============================================================
# USER REPOSITORY
# ============================================================

class UserRepository:
    """
    Repository for user lookups.

    Each call runs in its own session; returned objects are
    detached and safe to read after the session closes.
    """

    def __init__(self, db: DatabaseManager):
        """
        Initialize repository.

        Args:
            db: Database manager that owns the engine
        """
        self._db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Find a user by exact email match.

        Args:
            email: Email address

        Returns:
            User or None
        """
        async with self._db.session_scope() as session:
            result = await session.execute(
                select(User).where(User.email == email)
            )
            user = result.scalar_one_or_none()

        if user is None:
            logger.debug(f"No user found | email={email}")
        return user


__all__ = [
    "UserRepository",
]
