"""Session authenticator — bearer token → authenticated identity.

Learn: Every protected request goes through Authenticator.authenticate():

1. Pull the token out of "Authorization: Bearer <token>"   → NO_TOKEN
2. Verify signature and expiry                              → INVALID_TOKEN / TOKEN_EXPIRED
3. Ask the (optional) denylist whether the token is revoked  → INVALID_TOKEN
4. Load the user fresh from the store                       → INVALID_USER if gone/inactive
5. Return an AuthenticatedIdentity holding the live user row

Step 4 is never cached, which is what makes deactivation take effect on the
very next request. A store failure in step 3 or 4 is reported as
AUTH_ERROR (500), not as a credential problem. The optional variant turns
it into "anonymous".

The identity's role comes from the token, not the database: a role change
only reaches the guards once the user logs in again or refreshes.
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

import structlog
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from learnercircle.auth.jwt import TokenClaims, TokenError, TokenExpiredError, verify_token
from learnercircle.auth.roles import Role
from learnercircle.db.models import User
from learnercircle.errors import (
    INVALID_TOKEN,
    INVALID_USER,
    NO_TOKEN,
    TOKEN_EXPIRED,
    AuthenticationError,
    AuthServiceError,
    LearnerCircleError,
)
from learnercircle.services.user_service import UserService

logger = structlog.get_logger()

# Backing-store failures (user table, denylist) that mean "we couldn't check",
# not "the credential is bad".
STORE_ERRORS = (SQLAlchemyError, RedisError, OSError)


class TokenDenylist(Protocol):
    """Revocation hook consulted after a token verifies.

    Not wired by default: tokens are only invalidated by expiry. A store
    keyed by `claims.token_id` can be plugged in to support real logout.
    """

    async def is_revoked(self, claims: TokenClaims) -> bool: ...


@dataclass
class AuthenticatedIdentity:
    """Who is making this request. Lives for one request only."""

    user_id: uuid.UUID
    email: str
    role: Role
    user: User

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def viewer_of(self, user_id: uuid.UUID) -> str:
        """The profile viewer key for looking at another user's record."""
        if self.user_id == user_id:
            return "self"
        return self.role.value


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the second space-separated segment of the header, if any."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


class Authenticator:
    def __init__(
        self,
        users: UserService,
        denylist: Optional[TokenDenylist] = None,
        secret: Optional[str] = None,
    ):
        self.users = users
        self.denylist = denylist
        self.secret = secret

    async def authenticate(self, authorization: Optional[str]) -> AuthenticatedIdentity:
        """Resolve the caller or raise AuthenticationError / AuthServiceError."""
        token = extract_bearer_token(authorization)
        if not token:
            raise AuthenticationError("Access token required", code=NO_TOKEN)

        try:
            claims = verify_token(token, secret=self.secret)
        except TokenExpiredError:
            raise AuthenticationError("Token expired", code=TOKEN_EXPIRED)
        except TokenError as e:
            logger.info("auth.token_rejected", reason=str(e))
            raise AuthenticationError("Invalid token", code=INVALID_TOKEN)

        if self.denylist is not None:
            try:
                revoked = await self.denylist.is_revoked(claims)
            except STORE_ERRORS as e:
                logger.error("auth.denylist_failed", token_id=claims.token_id, error=str(e))
                raise AuthServiceError() from e
            if revoked:
                raise AuthenticationError("Invalid token", code=INVALID_TOKEN)

        try:
            user = await self.users.get_by_id(claims.user_id)
        except STORE_ERRORS as e:
            logger.error("auth.user_lookup_failed", user_id=str(claims.user_id), error=str(e))
            raise AuthServiceError() from e

        if user is None or not user.is_active:
            raise AuthenticationError(
                "Invalid token - user not found or inactive", code=INVALID_USER
            )

        return AuthenticatedIdentity(
            user_id=claims.user_id,
            email=claims.email,
            role=claims.role,
            user=user,
        )

    async def authenticate_optional(
        self, authorization: Optional[str]
    ) -> Optional[AuthenticatedIdentity]:
        """Same steps, but any failure means "anonymous" instead of an error."""
        try:
            return await self.authenticate(authorization)
        except LearnerCircleError as e:
            if e.code != NO_TOKEN:
                logger.debug("auth.optional_identity_dropped", code=e.code)
            return None
