import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.exceptions import AppException
from src.shared.schemas import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)

STALE_RECORD_MESSAGE = "Record was modified by another request. Reload and try again."


def _error_response(
    status_code: int,
    message: str,
    errors: list[ErrorDetail] | None = None,
    details: dict | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        message=message,
        errors=errors if errors is not None else [ErrorDetail(field=None, message=message)],
        details=details or None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render domain errors (quantity, transition, payment, posting) in the common envelope."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s rejected (%s): %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
    return _error_response(
        exc.status_code,
        exc.message,
        errors=[ErrorDetail(field=exc.details.get("field"), message=exc.message)],
        details=exc.details,
    )


def _field_path(loc: tuple) -> str | None:
    # "body" / "query" prefixes are noise for API clients
    if loc and loc[0] in ("body", "query", "path"):
        loc = loc[1:]
    return ".".join(str(part) for part in loc) if loc else None


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request payloads that fail schema validation."""
    errors = [
        ErrorDetail(
            field=_field_path(tuple(error.get("loc", ()))),
            message=error.get("msg", "Invalid value"),
        )
        for error in exc.errors()
    ]
    return _error_response(422, "Validation error", errors=errors)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = str(exc.detail) if exc.detail else "HTTP error"
    return _error_response(exc.status_code, message)


async def stale_data_handler(request: Request, exc: Exception) -> JSONResponse:
    """Optimistic lock lost on a purchase order: the other writer won."""
    logger.warning("stale write on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(409, STALE_RECORD_MESSAGE)


def _friendly_db_error(exc: Exception) -> tuple[str, int]:
    """
    Map a raw database error to a stable message and status code.

    Driver text is only passed through when debug is on.
    """
    raw = str(getattr(exc, "orig", exc))
    lower = raw.lower()

    if "column" in lower and ("does not exist" in lower or "no such column" in lower):
        return "Database schema is out of date. Run the latest migrations and try again.", 500
    if "unique" in lower or "duplicate key" in lower:
        return "Record already exists", 409
    if "could not obtain lock" in lower or "database is locked" in lower:
        return "Record is busy. Retry the request.", 409
    if settings.debug:
        return raw, 500
    return "Database error", 500


async def sqlalchemy_db_error_handler(request: Request, exc: Exception) -> JSONResponse:
    message, status_code = _friendly_db_error(exc)
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _error_response(status_code, message)
