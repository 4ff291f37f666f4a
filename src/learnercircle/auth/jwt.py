"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
A single access token (24h by default) carries the user id, email and
role. There is no refresh-specific token: /auth/refresh simply mints a new
access token for an already authenticated caller.

Verification failures come in three distinguishable kinds so the
authenticator can report TOKEN_EXPIRED separately from INVALID_TOKEN:
- MalformedTokenError: not a JWT, or required claims missing/invalid
- InvalidSignatureError: signed with a different secret
- TokenExpiredError: signature fine, but past `exp`
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import jwt

from learnercircle.auth.roles import Role
from learnercircle.config import settings

REQUIRED_CLAIMS = ["sub", "email", "role", "iat", "exp"]


class TokenError(Exception):
    """Raised when token verification fails."""


class MalformedTokenError(TokenError):
    pass


class InvalidSignatureError(TokenError):
    pass


class TokenExpiredError(TokenError):
    pass


class TokenConfigurationError(RuntimeError):
    """The signing secret is missing. Fatal at startup, never per-request."""


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    email: str
    role: Role
    issued_at: datetime
    expires_at: datetime
    token_id: Optional[str] = None


def _secret(secret: Optional[str]) -> str:
    value = settings.jwt_secret if secret is None else secret
    if not value:
        raise TokenConfigurationError("JWT signing secret is not configured")
    return value


def check_signing_config() -> None:
    """Fail fast if tokens cannot be signed with the current settings."""
    _secret(None)


def create_access_token(
    user_id: Union[uuid.UUID, str],
    email: str,
    role: Union[Role, str],
    *,
    secret: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed access token for a user."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        minutes=expires_minutes
        if expires_minutes is not None
        else settings.access_token_expire_minutes
    )
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": Role(role).value,
        "type": "access",
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": expires,
    }
    return jwt.encode(payload, _secret(secret), algorithm=settings.jwt_algorithm)


def verify_token(token: str, *, secret: Optional[str] = None) -> TokenClaims:
    """Verify and decode an access token.

    Returns the claims on success.
    Raises a TokenError subclass on failure.
    """
    try:
        payload = jwt.decode(
            token,
            _secret(secret),
            algorithms=[settings.jwt_algorithm],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidSignatureError:
        raise InvalidSignatureError("Token signature is invalid")
    except jwt.InvalidTokenError as e:
        raise MalformedTokenError(f"Invalid token: {e}")

    try:
        return TokenClaims(
            user_id=uuid.UUID(str(payload["sub"])),
            email=payload["email"],
            role=Role(payload["role"]),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            token_id=payload.get("jti"),
        )
    except (ValueError, TypeError) as e:
        raise MalformedTokenError(f"Invalid token claims: {e}")
