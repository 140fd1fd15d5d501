"""
Database ORM Models.

============================================================
SCHEMA
============================================================

users - accounts, including the designated administrator
        with its admin_privileges blob

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict
import uuid

from sqlalchemy import (
    Column, String, Boolean, DateTime, Index,
)
from sqlalchemy.dialects.postgresql import JSONB

from .engine import Base


# =============================================================
# HELPER FUNCTIONS
# =============================================================

def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


# =============================================================
# USERS TABLE
# =============================================================

class User(Base):
    """
    Platform user account.

    The administrator named by ADMIN_EMAIL must exist with
    is_admin set before the platform reports ready.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    # Identity
    email = Column(String(255), nullable=False, unique=True)
    username = Column(String(50), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(100), nullable=True)

    # Authorization
    role = Column(String(20), nullable=False, default="user")
    is_admin = Column(Boolean, nullable=False, default=False)
    admin_privileges = Column(JSONB, nullable=True)

    # Account state
    account_status = Column(String(20), nullable=False, default="active")
    email_verified = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_users_is_admin", "is_admin"),
    )

    def to_dict(self, include_sensitive: bool = False) -> Dict[str, Any]:
        """Serialize; password hash is omitted unless requested."""
        data = {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "display_name": self.display_name,
            "role": self.role,
            "is_admin": self.is_admin,
            "admin_privileges": self.admin_privileges,
            "account_status": self.account_status,
            "email_verified": self.email_verified,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
        }
        if include_sensitive:
            data["password_hash"] = self.password_hash
        return data

    def __repr__(self) -> str:
        return f"<User(email={self.email}, username={self.username}, is_admin={self.is_admin})>"


__all__ = [
    "User",
    "generate_uuid",
    "utc_now",
]
