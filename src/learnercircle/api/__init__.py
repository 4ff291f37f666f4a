"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: Unlike a router-wide dependencies=[...] list, each protected route
here declares its own guard chain with authorize(...), so the access
rule sits next to the handler it protects. Health, login, register and
create-admin are open.
"""

from fastapi import APIRouter

from learnercircle.api.auth import router as auth_router
from learnercircle.api.batches import router as batches_router
from learnercircle.api.dashboards import router as dashboards_router
from learnercircle.api.health import router as health_router
from learnercircle.api.users import router as users_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(dashboards_router, tags=["dashboards", "admin"])
api_router.include_router(batches_router, tags=["batches"])
