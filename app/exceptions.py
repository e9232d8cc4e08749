import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class FieldError(BaseModel):
    """A single field-level validation failure."""

    field: str
    message: str


class BusinessRuleError(BaseModel):
    """A general business-rule failure with the numbers behind it."""

    rules: list[str]
    message: str
    context: dict[str, Any] = {}


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int
    errors: list[FieldError] | None = None
    business_error: BusinessRuleError | None = None


class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Submission input or a business rule rejected the request. Nothing was written."""

    def __init__(
        self,
        message: str = "Leave request validation failed",
        field_errors: list[FieldError] | None = None,
        business_error: BusinessRuleError | None = None,
    ) -> None:
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.field_errors = field_errors or []
        self.business_error = business_error


class NotFound(AppError):
    """Referenced request, category, or ledger entry does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class Unauthorized(AppError):
    """Actor lacks the relationship or role a transition requires."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class InvalidTransition(AppError):
    """Request is no longer in a state that admits the trigger.

    Usually means someone else already acted on the request; callers may
    treat it as already handled.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class ConsistencyFault(AppError):
    """A terminal transition could not be applied atomically and was refused."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _log_app_error(request: Request, exc: AppError) -> None:
    route = f"{request.method} {request.url.path}"
    if isinstance(exc, Unauthorized):
        logger.warning("Unauthorized on %s: %s", route, exc.message)
    elif isinstance(exc, InvalidTransition):
        logger.info("Stale transition on %s: %s", route, exc.message)
    elif exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s: %s", type(exc).__name__, route, exc.message)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    _log_app_error(request, exc)
    body = ErrorResponse(
        error=type(exc).__name__,
        detail=exc.message,
        status_code=exc.status_code,
    )
    if isinstance(exc, ValidationError):
        body.errors = exc.field_errors or None
        body.business_error = exc.business_error
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        FieldError(field=".".join(str(part) for part in err["loc"][1:]) or "body", message=err["msg"])
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail="Request body is invalid",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            errors=errors,
        ).model_dump(mode="json"),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
