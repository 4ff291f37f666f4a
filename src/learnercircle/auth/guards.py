"""Access policy guards.

Learn: A guard is an async function of (identity, request parameters) that
returns None to let the request through or raises a typed error to stop it.
Guards know nothing about HTTP, so they are unit-tested with plain
RequestParams objects; dependencies.authorize() adapts them to FastAPI.

Each protected endpoint lists its guards explicitly:

    @router.get("/users/{user_id}", dependencies=[Depends(authorize(require_self_or_admin))])

run_guards() executes them in order and stops at the first failure
(short-circuit AND).
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Sequence

import structlog

from learnercircle.auth.identity import AuthenticatedIdentity
from learnercircle.auth.roles import Role
from learnercircle.errors import (
    ACCESS_DENIED,
    BATCH_ACCESS_DENIED,
    INSUFFICIENT_ROLE,
    NO_AUTH,
    NO_BATCH_ID,
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)

logger = structlog.get_logger()

USER_ID_KEYS = ("user_id", "userId")
BATCH_ID_KEYS = ("batch_id", "batchId")


@dataclass
class RequestParams:
    """The parts of a request a guard may read: path, body and query values."""

    path: Mapping[str, Any] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)

    def first(
        self,
        keys: Sequence[str],
        sources: Sequence[str] = ("path", "body", "query"),
    ) -> Optional[str]:
        """First non-empty value for any of `keys`, searching `sources` in order."""
        for source in sources:
            values = getattr(self, source)
            for key in keys:
                value = values.get(key)
                if value not in (None, ""):
                    return str(value)
        return None


Guard = Callable[[Optional[AuthenticatedIdentity], RequestParams], Awaitable[None]]


def _require_identity(identity: Optional[AuthenticatedIdentity]) -> AuthenticatedIdentity:
    if identity is None:
        raise AuthenticationError("Authentication required", code=NO_AUTH)
    return identity


# ─── Role-set guard ──────────────────────────────────────


def require_role(*roles: Role) -> Guard:
    """Pass iff the caller's role is one of `roles`."""
    allowed = frozenset(roles)
    names = " or ".join(r.value for r in roles)

    async def guard(identity: Optional[AuthenticatedIdentity], params: RequestParams) -> None:
        identity = _require_identity(identity)
        if identity.role not in allowed:
            raise AuthorizationError(
                f"Access denied. Required role: {names}", code=INSUFFICIENT_ROLE
            )

    guard.__name__ = f"require_role({names})"
    return guard


require_admin = require_role(Role.ADMIN)
require_tutor_or_admin = require_role(Role.TUTOR, Role.ADMIN)
require_authenticated = require_role(Role.STUDENT, Role.TUTOR, Role.ADMIN, Role.PARENT)


# ─── Self-or-admin guard ─────────────────────────────────


async def require_self_or_admin(
    identity: Optional[AuthenticatedIdentity], params: RequestParams
) -> None:
    """Admins may touch any user; everyone else only their own record."""
    identity = _require_identity(identity)
    if identity.is_admin:
        return
    target = params.first(USER_ID_KEYS)
    if target is not None and target == str(identity.user_id):
        return
    raise AuthorizationError(
        "Access denied - can only access your own data", code=ACCESS_DENIED
    )


# ─── Resource-membership (batch) guard ──────────────────


class BatchAccessPolicy(Protocol):
    async def can_access(self, identity: AuthenticatedIdentity, batch_id: str) -> bool: ...


class AllowAllBatchAccess:
    """Placeholder until enrollments exist: every tutor and student is let in.

    This is not an access rule. Replace it with an enrollment-backed policy
    once batches and enrollments are modelled.
    """

    async def can_access(self, identity: AuthenticatedIdentity, batch_id: str) -> bool:
        logger.warning(
            "batch_access.placeholder_allow",
            user_id=str(identity.user_id),
            role=identity.role.value,
            batch_id=batch_id,
        )
        return True


BATCH_POLICY_ROLES = frozenset({Role.TUTOR, Role.STUDENT})


def require_batch_access(policy: Optional[BatchAccessPolicy] = None) -> Guard:
    """Gate access to a batch named in the path or body."""
    policy = policy or AllowAllBatchAccess()

    async def guard(identity: Optional[AuthenticatedIdentity], params: RequestParams) -> None:
        batch_id = params.first(BATCH_ID_KEYS, sources=("path", "body"))
        if batch_id is None:
            raise ValidationError("Batch ID required", code=NO_BATCH_ID)
        identity = _require_identity(identity)
        if identity.is_admin:
            return
        if identity.role in BATCH_POLICY_ROLES and await policy.can_access(identity, batch_id):
            return
        raise AuthorizationError("Access denied to this batch", code=BATCH_ACCESS_DENIED)

    return guard


async def run_guards(
    identity: Optional[AuthenticatedIdentity],
    params: RequestParams,
    guards: Sequence[Guard],
) -> None:
    """Run guards in order; the first failure propagates and the rest are skipped."""
    for guard in guards:
        await guard(identity, params)
