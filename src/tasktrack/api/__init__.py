"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Router-level dependencies run before the route's
own parameters are validated, so an unauthenticated request is rejected
before its body is looked at or any task is fetched. Health and auth
routers are open; /auth/me and /auth/users authenticate per route.
"""

from fastapi import APIRouter, Depends

from tasktrack.api.auth import router as auth_router
from tasktrack.api.health import router as health_router
from tasktrack.api.tasks import router as tasks_router
from tasktrack.auth.dependencies import get_current_identity

# All protected routers require authentication
_auth = [Depends(get_current_identity)]

api_router = APIRouter(prefix="/api/v1")

# Open routes: no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: require a valid bearer token
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
