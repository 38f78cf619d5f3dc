"""Global error handlers: engine errors mapped to consistent JSON responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vpe.errors import (
    EngineError,
    IdempotencyConflictError,
    InvalidAmountError,
    SeasonEndedError,
    StorageError,
    UnknownChannelError,
    UnknownEventError,
    UnknownSeasonError,
)

logger = structlog.get_logger()

_STATUS_BY_ERROR: dict[type[EngineError], int] = {
    InvalidAmountError: 422,
    UnknownChannelError: 422,
    SeasonEndedError: 409,
    IdempotencyConflictError: 409,
    UnknownSeasonError: 404,
    UnknownEventError: 404,
    StorageError: 503,
}


def error_status(exc: EngineError) -> int:
    for error_type, status in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status
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

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
        """Engine errors carry their own status; SeasonEnded also names the current season."""
        status = error_status(exc)
        content: dict[str, object] = {"detail": str(exc), "error": type(exc).__name__}
        if isinstance(exc, SeasonEndedError):
            content["current_season_id"] = exc.current_season_id
        if status >= 500:
            logger.error("engine_error", path=request.url.path, error=str(exc), exc_info=exc)
        else:
            logger.info("engine_rejected", path=request.url.path, error=type(exc).__name__)
        return JSONResponse(status_code=status, content=content)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.info("request_rejected", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always return JSON."""
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
    """Validation errors without the raw ``ctx`` objects, which may not be JSON-serialisable."""
    return [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]
