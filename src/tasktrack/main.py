"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, database engine).
Middleware, CORS, exception handlers, and routers all registered here.

Settings are loaded when tasktrack.config is first imported, so a
missing TASKTRACK_JWT_SECRET stops the process before it binds a port.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tasktrack import __version__
from tasktrack.api import api_router
from tasktrack.config import settings
from tasktrack.exception_handlers import register_exception_handlers

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "tasktrack.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from tasktrack.redis_client import close_redis, init_redis
    try:
        await init_redis()
        logger.info("tasktrack.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("tasktrack.redis_unavailable", error=str(e))
        # Redis is optional: app works without rate limiting

    yield

    logger.info("tasktrack.shutdown")
    await close_redis()

    from tasktrack.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="TaskTrack API",
        description="Multi-tenant task tracking with JWT auth and per-task ownership",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from tasktrack.middleware.rate_limit import RateLimitMiddleware
    from tasktrack.middleware.request_id import RequestIdMiddleware
    from tasktrack.middleware.security import SecurityHeadersMiddleware

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

    register_exception_handlers(app)

    # Mount API routes
    app.include_router(api_router)

    @app.get("/", include_in_schema=False)
    async def index():
        return {
            "name": "TaskTrack API",
            "version": __version__,
            "documentation": "/docs",
            "endpoints": {"auth": "/api/v1/auth", "tasks": "/api/v1/tasks"},
        }

    return app


# Default app instance (used by uvicorn: tasktrack.main:app)
app = create_app()
