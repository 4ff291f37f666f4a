"""Auth service — login, registration, first-admin bootstrap, refresh.

Learn: Each flow is a single request/response that ends by minting an
access token and returning the caller's own ("self") profile view plus
the dashboard path for their role.

Rules that live here rather than in the routes:
- Login never says which factor failed: unknown email, inactive account
  and wrong password all produce the same 401 with no code.
- Anonymous registration can only create students. Any other role needs
  an authenticated admin caller.
- create-admin works exactly once, and says so (409) before looking at the
  request body. The "does an admin exist" check and the insert are not
  atomic, so two concurrent bootstrap calls can both succeed.
"""

from dataclasses import dataclass
from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from learnercircle.auth.identity import AuthenticatedIdentity
from learnercircle.auth.jwt import create_access_token
from learnercircle.auth.password import hash_password_async, verify_password_async
from learnercircle.auth.roles import Role, redirect_for_role
from learnercircle.db.models import User
from learnercircle.errors import (
    ADMIN_EXISTS,
    EMAIL_EXISTS,
    INSUFFICIENT_ROLE,
    INVALID_USER,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    field_errors,
)
from learnercircle.schemas.auth import CreateAdminRequest, RegisterRequest
from learnercircle.services.user_service import UserService

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass
class AuthResult:
    """A freshly minted token and the user it was minted for."""

    token: str
    user: User

    @property
    def redirect(self) -> str:
        return redirect_for_role(self.user.role)

    def to_response(self, message: str, *, redirect: Optional[str] = None) -> dict[str, Any]:
        return {
            "success": True,
            "message": message,
            "token": self.token,
            "user": self.user.get_secure_profile("self"),
            "redirect": redirect or self.redirect,
        }


def issue_token(user: User) -> str:
    return create_access_token(user.id, user.email, user.role)


class AuthService:
    """Business logic for the identity issuance flows."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserService(db)

    async def login(self, email: str, password: str) -> AuthResult:
        user = await self.users.get_active_by_email(email)
        if user is None or not await verify_password_async(password, user.password_hash):
            logger.info("auth.login_failed", email=email)
            raise AuthenticationError(INVALID_CREDENTIALS)

        await self.users.record_login(user)
        logger.info("auth.login_succeeded", user_id=str(user.id), role=Role(user.role).value)
        return AuthResult(token=issue_token(user), user=user)

    async def register(
        self,
        body: RegisterRequest,
        caller: Optional[AuthenticatedIdentity] = None,
    ) -> AuthResult:
        if body.role != Role.STUDENT and (caller is None or not caller.is_admin):
            logger.warning(
                "auth.register_escalation_denied",
                requested_role=body.role.value,
                caller_id=str(caller.user_id) if caller else None,
            )
            raise AuthorizationError(
                f"Only an admin can create {body.role.value} accounts",
                code=INSUFFICIENT_ROLE,
            )

        if await self.users.email_exists(body.email):
            raise ConflictError("Email already registered", code=EMAIL_EXISTS)

        user = await self.users.create(
            email=body.email,
            password_hash=await hash_password_async(body.password),
            first_name=body.first_name,
            last_name=body.last_name,
            role=body.role,
            phone=body.phone,
            timezone=body.timezone,
            profile_data={"created_by": str(caller.user_id) if caller else "self"},
        )
        logger.info("auth.user_registered", user_id=str(user.id), role=body.role.value)
        return AuthResult(token=issue_token(user), user=user)

    async def create_first_admin(self, payload: Optional[dict[str, Any]]) -> AuthResult:
        """Bootstrap the first admin from a raw JSON body.

        The existence check runs before the body is validated: once an admin
        exists every call is a 409, whatever it sends.
        """
        if await self.users.admin_exists():
            raise ConflictError("Admin user already exists", code=ADMIN_EXISTS)

        try:
            body = CreateAdminRequest.model_validate(payload or {})
        except PydanticValidationError as e:
            raise ValidationError("Validation failed", details=field_errors(e.errors()))

        user = await self.users.create(
            email=body.email,
            password_hash=await hash_password_async(body.password),
            first_name=body.first_name,
            last_name=body.last_name,
            role=Role.ADMIN,
            phone=body.phone,
            timezone=body.timezone,
            profile_data={"is_founder": True, "created_by": "bootstrap"},
        )
        logger.info("auth.first_admin_created", user_id=str(user.id))
        return AuthResult(token=issue_token(user), user=user)

    async def profile(self, identity: AuthenticatedIdentity) -> dict[str, Any]:
        user = await self.users.get_by_id(identity.user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user.get_secure_profile("self")

    async def refresh(self, identity: AuthenticatedIdentity) -> AuthResult:
        user = await self.users.get_by_id(identity.user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive", code=INVALID_USER)
        return AuthResult(token=issue_token(user), user=user)
