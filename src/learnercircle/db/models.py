"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Alembic migrations are generated by comparing these models to the actual DB.

Key concepts:
- UUID primary keys (generic `Uuid` type: native on PostgreSQL, CHAR on SQLite)
- JSON profile data, stored as JSONB on PostgreSQL
- The role column is a closed enum, never a free-form string
- Courses, batches, sessions and enrollments are not modelled yet; only
  users carry behaviour today
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, String, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from learnercircle.auth.roles import Role
from learnercircle.config import settings


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


PRIVILEGED_VIEWERS = frozenset({"self", Role.ADMIN.value})


class User(Base):
    """A person who signs in: admin, tutor, student or parent.

    Learn: `password_hash` never leaves this class. Everything the API
    returns goes through get_secure_profile(), which recomputes the view
    on every call so no stale copy of contact details can leak.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(
            Role,
            name="user_role",
            values_callable=lambda roles: [r.value for r in roles],
            validate_strings=True,
        ),
        nullable=False,
        default=Role.STUDENT,
        index=True,
    )
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    timezone: Mapped[str] = mapped_column(
        String(64), nullable=False, default=lambda: settings.default_timezone
    )
    profile_data: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, index=True
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), default=utcnow, onupdate=utcnow
    )

    def get_secure_profile(self, viewer: Optional[str] = None) -> dict[str, Any]:
        """Project the user for a viewer.

        `viewer` is "self" or "admin" for the full view; anything else
        (another role, None for anonymous) gets the public view with the
        last name cut to an initial and no contact details.
        """
        base = {
            "id": str(self.id),
            "first_name": self.first_name,
            "role": Role(self.role).value,
            "is_active": self.is_active,
            "timezone": self.timezone,
            "created_at": self.created_at,
        }
        viewer_key = viewer.value if isinstance(viewer, Role) else viewer
        if viewer_key in PRIVILEGED_VIEWERS:
            return {
                **base,
                "email": self.email,
                "last_name": self.last_name,
                "phone": self.phone,
                "profile_data": dict(self.profile_data or {}),
                "last_login": self.last_login,
            }

        initial = f"{self.last_name[0]}." if self.last_name else ""
        return {
            **base,
            "last_name": initial,
            "display_name": f"{self.first_name} {initial}",
        }

    def __repr__(self) -> str:
        return f"<User {self.email} ({Role(self.role).value})>"
