"""Role dashboards and admin user management.

Learn: Each route declares its own guard chain via authorize(). The
dashboards themselves are placeholders until courses and batches land;
what they exercise today is the role gating in front of them.
"""

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnercircle.auth.dependencies import authorize
from learnercircle.auth.guards import require_admin, require_authenticated, require_tutor_or_admin
from learnercircle.auth.identity import AuthenticatedIdentity
from learnercircle.auth.roles import Role
from learnercircle.db.engine import get_db
from learnercircle.errors import NotFoundError
from learnercircle.schemas.auth import UserStatusUpdate
from learnercircle.services.user_service import UserService

logger = structlog.get_logger()

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


def _dashboard(area: str, identity: AuthenticatedIdentity) -> dict:
    return {
        "message": f"{area} dashboard",
        "user": identity.user.get_secure_profile("self"),
    }


# ─── Dashboards ─────────────────────────────────────────


@router.get("/admin")
async def admin_dashboard(identity: AuthenticatedIdentity = Depends(authorize(require_admin))):
    return _dashboard("Admin", identity)


@router.get("/tutor")
async def tutor_dashboard(
    identity: AuthenticatedIdentity = Depends(authorize(require_tutor_or_admin)),
):
    return _dashboard("Tutor", identity)


@router.get("/student")
async def student_dashboard(
    identity: AuthenticatedIdentity = Depends(authorize(require_authenticated)),
):
    return _dashboard("Student", identity)


# ─── Admin: user management ─────────────────────────────


@router.get("/admin/users")
async def list_users(
    role: Optional[Role] = None,
    identity: AuthenticatedIdentity = Depends(authorize(require_admin)),
    svc: UserService = Depends(_svc),
):
    users = await svc.list_users(role=role)
    return {"success": True, "users": [u.get_secure_profile(Role.ADMIN.value) for u in users]}


@router.patch("/admin/users/{user_id}/status")
async def set_user_status(
    user_id: uuid.UUID,
    body: UserStatusUpdate,
    identity: AuthenticatedIdentity = Depends(authorize(require_admin)),
    svc: UserService = Depends(_svc),
):
    """Activate or deactivate an account. Takes effect on the user's next request."""
    user = await svc.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    await svc.set_active(user, body.is_active)
    await svc.db.commit()
    logger.info(
        "admin.user_status_changed",
        admin_id=str(identity.user_id),
        user_id=str(user.id),
        is_active=body.is_active,
    )
    return {"success": True, "user": user.get_secure_profile(Role.ADMIN.value)}
