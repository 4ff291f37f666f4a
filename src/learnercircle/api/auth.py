"""Auth API — login, registration, first-admin bootstrap, session helpers.

Learn: Routes for the identity lifecycle:
- POST /auth/login → email/password → token + profile + redirect
- POST /auth/register → new account (students self-serve, other roles need an admin)
- POST /auth/create-admin → one-time bootstrap of the first admin
- GET /auth/profile → the caller's own profile
- POST /auth/refresh → a new token for an authenticated caller
- POST /auth/logout → acknowledgement only; the client drops its token
- GET /auth/check → cheap "is my token still good?" probe
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnercircle.auth.dependencies import get_current_user, get_current_user_optional
from learnercircle.auth.identity import AuthenticatedIdentity
from learnercircle.auth.roles import Role
from learnercircle.db.engine import get_db
from learnercircle.schemas.auth import LoginRequest, RegisterRequest
from learnercircle.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


# ─── Login ───────────────────────────────────────────────


@router.post("/login")
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → JWT + self profile + dashboard path."""
    result = await svc.login(body.email, body.password)
    await svc.db.commit()
    return result.to_response("Login successful")


# ─── Register ────────────────────────────────────────────


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    caller: Optional[AuthenticatedIdentity] = Depends(get_current_user_optional),
    svc: AuthService = Depends(_svc),
):
    """Create an account. Non-student roles require an admin bearer token."""
    result = await svc.register(body, caller=caller)
    await svc.db.commit()
    return result.to_response("Registration successful")


# ─── First admin ─────────────────────────────────────────


@router.post("/create-admin", status_code=201)
async def create_admin(
    payload: Optional[dict[str, Any]] = Body(None),
    svc: AuthService = Depends(_svc),
):
    """Bootstrap the first admin. 409 once any admin exists, whatever the body.

    The body is taken raw and validated as CreateAdminRequest by the service,
    after the existence check.
    """
    result = await svc.create_first_admin(payload)
    await svc.db.commit()
    return result.to_response("Admin account created", redirect="/admin")


# ─── Session helpers ────────────────────────────────────


@router.get("/profile")
async def profile(
    identity: AuthenticatedIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    return {"success": True, "user": await svc.profile(identity)}


@router.post("/refresh")
async def refresh(
    identity: AuthenticatedIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    """Mint a new token with the same lifetime. Picks up role changes."""
    result = await svc.refresh(identity)
    return {
        "success": True,
        "token": result.token,
        "user": result.user.get_secure_profile("self"),
    }


@router.post("/logout")
async def logout(identity: AuthenticatedIdentity = Depends(get_current_user)):
    """Tokens aren't tracked server-side; the client just forgets its token."""
    return {"success": True, "message": "Logged out successfully"}


@router.get("/check")
async def check(identity: AuthenticatedIdentity = Depends(get_current_user)):
    user = identity.user
    return {
        "authenticated": True,
        "user": {
            "id": str(identity.user_id),
            "email": identity.email,
            "role": Role(identity.role).value,
            "first_name": user.first_name,
        },
    }
