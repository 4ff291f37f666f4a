"""User service — the credential store.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database. Lookups here are
never cached: the authenticator calls get_by_id() on every request so a
deactivated account is locked out on its very next call.

Writes flush but don't commit; the caller owns the transaction
(routes commit, tests roll back).
"""

import uuid
from typing import Any, Optional, Union

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnercircle.auth.roles import Role
from learnercircle.db.models import User, utcnow
from learnercircle.errors import EMAIL_EXISTS, ConflictError

UPDATABLE_FIELDS = frozenset(
    {"first_name", "last_name", "phone", "timezone", "profile_data", "is_active", "role"}
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """Persistence operations on user records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Lookups ────────────────────────────────────────

    async def get_by_id(self, user_id: Union[uuid.UUID, str]) -> Optional[User]:
        if not isinstance(user_id, uuid.UUID):
            try:
                user_id = uuid.UUID(str(user_id))
            except ValueError:
                return None
        return await self.db.get(User, user_id, populate_existing=True)

    async def get_active_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(
                User.email == normalize_email(email),
                User.is_active.is_(True),
            )
        )
        return result.scalars().first()

    async def email_exists(self, email: str) -> bool:
        result = await self.db.execute(
            select(exists().where(User.email == normalize_email(email)))
        )
        return bool(result.scalar())

    async def admin_exists(self) -> bool:
        result = await self.db.execute(
            select(exists().where(User.role == Role.ADMIN))
        )
        return bool(result.scalar())

    async def list_users(self, role: Optional[Role] = None) -> list[User]:
        q = select(User).order_by(User.created_at, User.email)
        if role is not None:
            q = q.where(User.role == role)
        result = await self.db.execute(q)
        return list(result.scalars().all())

    # ─── Writes ─────────────────────────────────────────

    async def create(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: Role = Role.STUDENT,
        phone: Optional[str] = None,
        timezone: Optional[str] = None,
        profile_data: Optional[dict[str, Any]] = None,
    ) -> User:
        """Insert a user. A duplicate email raises ConflictError, not IntegrityError."""
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            phone=phone,
            profile_data=profile_data or {},
        )
        if timezone:
            user.timezone = timezone
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Email already registered", code=EMAIL_EXISTS)
        await self.db.refresh(user)
        return user

    async def update(self, user: User, **fields: Any) -> User:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update user fields: {sorted(unknown)}")
        for name, value in fields.items():
            setattr(user, name, value)
        await self.db.flush()
        return user

    async def record_login(self, user: User) -> User:
        user.last_login = utcnow()
        await self.db.flush()
        return user

    async def set_active(self, user: User, is_active: bool) -> User:
        return await self.update(user, is_active=is_active)
