"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request.

- get_current_user: "hard" auth, raises 401 with a reason code
- get_current_user_optional: "soft" auth, returns None on any failure
- authorize(*guards): authenticates, then runs the guard chain in order

FastAPI caches dependencies per request, so a route that uses both
authorize(...) and get_current_user only authenticates once.
"""

import json
from typing import Optional

import structlog
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from learnercircle.auth.guards import Guard, RequestParams, run_guards
from learnercircle.auth.identity import AuthenticatedIdentity, Authenticator, TokenDenylist
from learnercircle.db.engine import get_db
from learnercircle.services.user_service import UserService

BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def get_token_denylist() -> Optional[TokenDenylist]:
    """No revocation store by default. Override to plug one in."""
    return None


def get_authenticator(
    db: AsyncSession = Depends(get_db),
    denylist: Optional[TokenDenylist] = Depends(get_token_denylist),
) -> Authenticator:
    return Authenticator(UserService(db), denylist=denylist)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    authenticator: Authenticator = Depends(get_authenticator),
) -> AuthenticatedIdentity:
    """Extract current identity (required — 401 if no valid token)."""
    identity = await authenticator.authenticate(authorization)
    request.state.identity = identity
    structlog.contextvars.bind_contextvars(user_id=str(identity.user_id))
    return identity


async def get_current_user_optional(
    request: Request,
    authorization: Optional[str] = Header(None),
    authenticator: Authenticator = Depends(get_authenticator),
) -> Optional[AuthenticatedIdentity]:
    """Extract current identity (optional — None for anonymous or bad tokens)."""
    identity = await authenticator.authenticate_optional(authorization)
    request.state.identity = identity
    if identity is not None:
        structlog.contextvars.bind_contextvars(user_id=str(identity.user_id))
    return identity


async def request_params(request: Request) -> RequestParams:
    """Collect path, JSON body and query values for guards to inspect."""
    body = {}
    if request.method in BODY_METHODS and "json" in request.headers.get("content-type", ""):
        raw = await request.body()
        if raw:
            try:
                decoded = json.loads(raw)
            except ValueError:
                # Malformed JSON is reported by the route's own body validation.
                decoded = None
            if isinstance(decoded, dict):
                body = decoded
    return RequestParams(
        path=dict(request.path_params),
        body=body,
        query=dict(request.query_params),
    )


def authorize(*guards: Guard):
    """Build a dependency that authenticates and then runs `guards` in order."""

    async def dependency(
        request: Request,
        identity: AuthenticatedIdentity = Depends(get_current_user),
    ) -> AuthenticatedIdentity:
        params = await request_params(request)
        await run_guards(identity, params, guards)
        return identity

    return dependency
