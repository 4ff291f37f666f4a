"""User profile routes.

Learn: GET uses *optional* auth so the same URL serves three audiences:
the user themself and admins see the full profile, everyone else
(other users, anonymous visitors) sees the public view. PATCH is
guarded by require_self_or_admin.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnercircle.auth.dependencies import authorize, get_current_user_optional
from learnercircle.auth.guards import require_self_or_admin
from learnercircle.auth.identity import AuthenticatedIdentity
from learnercircle.db.engine import get_db
from learnercircle.errors import NotFoundError
from learnercircle.schemas.auth import UserUpdate
from learnercircle.services.user_service import UserService

router = APIRouter(prefix="/users")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


async def _load(svc: UserService, user_id: uuid.UUID):
    user = await svc.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.get("/{user_id}")
async def get_user(
    user_id: uuid.UUID,
    viewer: Optional[AuthenticatedIdentity] = Depends(get_current_user_optional),
    svc: UserService = Depends(_svc),
):
    user = await _load(svc, user_id)
    viewer_key = viewer.viewer_of(user.id) if viewer else None
    return {"success": True, "user": user.get_secure_profile(viewer_key)}


@router.patch("/{user_id}")
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    identity: AuthenticatedIdentity = Depends(authorize(require_self_or_admin)),
    svc: UserService = Depends(_svc),
):
    user = await _load(svc, user_id)
    await svc.update(user, **body.model_dump(exclude_unset=True))
    await svc.db.commit()
    return {"success": True, "user": user.get_secure_profile(identity.viewer_of(user.id))}
