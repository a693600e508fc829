"""FastAPI exception handlers for the TaskTrack error taxonomy.

Every handler answers with the same `{"detail": ...}` shape FastAPI
uses for HTTPException, so clients see one error format.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tasktrack.errors import StoreFailure, TaskTrackError, Unauthenticated

logger = structlog.get_logger()


async def task_track_error_handler(
    request: Request, exc: TaskTrackError
) -> JSONResponse:
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def store_failure_handler(request: Request, exc: StoreFailure) -> JSONResponse:
    """Log the underlying fault; the client only gets a generic 500."""
    logger.error(
        "store.failure",
        method=request.method,
        path=request.url.path,
        error=exc.message,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StoreFailure, store_failure_handler)
    app.add_exception_handler(TaskTrackError, task_track_error_handler)
