"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (signing config, Redis, the
database pool). Middleware, CORS, error handlers and routers are all
registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from learnercircle import __version__
from learnercircle.api import api_router
from learnercircle.auth.jwt import check_signing_config
from learnercircle.config import settings
from learnercircle.errors import AuthenticationError, LearnerCircleError, field_errors

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at shutdown.
    A missing signing secret stops the process here instead of failing
    every login later.
    """
    check_signing_config()
    logger.info(
        "learnercircle.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from learnercircle.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("learnercircle.redis_connected", url=settings.redis_url)
    except (RedisError, OSError) as e:
        # Redis only backs rate limiting — run without it
        logger.warning("learnercircle.redis_unavailable", error=str(e))

    yield

    logger.info("learnercircle.shutdown")
    await close_redis()

    from learnercircle.db.engine import engine
    await engine.dispose()


# ─── Error handlers ──────────────────────────────────────


async def handle_app_error(request: Request, exc: LearnerCircleError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    if exc.status_code >= 500:
        logger.error("request.failed", code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": field_errors(exc.errors())},
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) if settings.is_development else "Something went wrong",
        },
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Learner Circle",
        description="Role-based learning platform API — auth, profiles and dashboards",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from learnercircle.middleware.rate_limit import RateLimitMiddleware
    from learnercircle.middleware.request_id import RequestIdMiddleware
    from learnercircle.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LearnerCircleError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: learnercircle.main:app)
app = create_app()
