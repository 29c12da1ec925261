from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "inventory_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(InventoryError):
    """A required field is missing or a value is out of range."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class NotFoundError(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class InvalidStateError(NotFoundError):
    """The record exists but is not in a state that allows the operation.

    Subclasses ``NotFoundError`` so callers that only look for "no usable
    record" keep working when, for example, a movement was already returned.
    """

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"


class InsufficientStockError(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    code = "insufficient_stock"

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            f"Not enough units available. Requested: {requested}, available: {available}",
            details={"requested": requested, "available": available},
        )
        self.requested = requested
        self.available = available


class BackendUnavailableError(InventoryError):
    """The database call failed or timed out."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "backend_unavailable"


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def inventory_exception_handler(request: Request, exc: InventoryError):
    if exc.status_code >= 500:
        logger.error("inventory.error", extra={"extra_data": {"code": exc.code, "path": request.url.path}})
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_encoder(exc.errors(), custom_encoder={Exception: str})},
    )


async def operational_error_handler(request: Request, exc: OperationalError):
    logger.exception("database.unavailable")
    return ErrorEnvelope(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code=BackendUnavailableError.code,
        message="The inventory database is unavailable",
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(InventoryError, inventory_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(OperationalError, operational_error_handler)


__all__ = [
    "BackendUnavailableError",
    "ErrorEnvelope",
    "InsufficientStockError",
    "InvalidStateError",
    "InventoryError",
    "NotFoundError",
    "ValidationError",
    "register_exception_handlers",
]
