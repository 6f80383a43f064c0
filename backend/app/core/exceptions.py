"""
Exception types and the handlers that render every error as
``{"success": false, "message": ...}``.
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger("errors")


class ImmutableRecordError(Exception):
    """Raised when code tries to modify or delete an append-only record."""

    def __init__(self, model: str, operation: str):
        self.model = model
        self.operation = operation
        super().__init__(f"{model} records are immutable ({operation} rejected)")


def _error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
    **extra,
) -> JSONResponse:
    body = {"success": False, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s - %s", request.method, request.url.path, exc.detail)
    return _error_response(
        exc.status_code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return _error_response(
        422,
        "Invalid request parameters",
        errors=errors,
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "%s %s - database error: %s",
        request.method, request.url.path, exc,
        exc_info=exc,
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database operation failed")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    settings = get_settings()
    logger.error("%s %s - %s", request.method, request.url.path, exc, exc_info=exc)
    detail = str(exc) if settings.DEBUG and not settings.is_production else None
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        detail=detail,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-rendering handlers on the application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
