"""Global error handlers: consistent JSON error responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from snapquest.exceptions import (
    InvalidInputError,
    NotFoundError,
    PersistenceError,
    SnapQuestError,
)

logger = structlog.get_logger()

_UPLOAD_FAILED = "Upload failed. Your photo was not recorded; please try again."


def status_for(exc: SnapQuestError) -> int:
    """HTTP status for a domain error family."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, InvalidInputError):
        return 422
    if isinstance(exc, PersistenceError):
        return 503
    return 400


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": jsonable_errors(exc)},
        )

    @app.exception_handler(SnapQuestError)
    async def domain_exception_handler(request: Request, exc: SnapQuestError) -> JSONResponse:
        status = status_for(exc)
        if isinstance(exc, PersistenceError):
            logger.error("persistence_failure", path=request.url.path, error=exc.detail)
            return JSONResponse(status_code=status, content={"detail": _UPLOAD_FAILED})
        return JSONResponse(status_code=status, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without non-serializable context objects."""
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
