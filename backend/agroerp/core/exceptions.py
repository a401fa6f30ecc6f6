import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(AppError):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            code=f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} with ID {resource_id} was not found.",
            status_code=404,
            details={"id": resource_id},
        )


class ConflictError(AppError):
    def __init__(self, message: str, code: str = "CONFLICT", details: dict | None = None):
        super().__init__(code=code, message=message, status_code=409, details=details)


class ForbiddenError(AppError):
    def __init__(
        self,
        message: str = "You do not have permission to perform this action.",
        code: str = "FORBIDDEN",
        details: dict | None = None,
    ):
        super().__init__(code=code, message=message, status_code=403, details=details)


class ValidationError(AppError):
    def __init__(self, message: str, code: str = "VALIDATION_ERROR", details: dict | None = None):
        super().__init__(code=code, message=message, status_code=422, details=details)


class StoreError(AppError):
    """A store write or read failed; *code* names the operation that fired it."""

    def __init__(self, code: str, message: str, error: Exception | str):
        super().__init__(
            code=code,
            message=message,
            status_code=500,
            details={"error": str(error)},
        )


# ---------------------------------------------------------------------------
# Period lifecycle
# ---------------------------------------------------------------------------


class AuthRequired(AppError):
    def __init__(self):
        super().__init__(
            code="AUTH_REQUIRED",
            message="Authentication is required for this operation.",
            status_code=401,
        )


class Unauthorized(ForbiddenError):
    def __init__(self, firm_id: Any, user_id: Any):
        super().__init__(
            message="You are not allowed to close periods of this firm.",
            code="UNAUTHORIZED",
            details={"firm_id": str(firm_id), "user_id": str(user_id)},
        )


class OpenPeriodConflict(ConflictError):
    def __init__(self, existing_period_id: Any):
        super().__init__(
            "The firm already has an active period.",
            code="OPEN_GESTION_EXISTS",
            details={"gestion_id": str(existing_period_id)},
        )
        self.existing_period_id = existing_period_id


class AlreadyClosed(ConflictError):
    def __init__(self, period_id: Any):
        super().__init__(
            "The period is already closed.",
            code="GESTION_ALREADY_CLOSED",
            details={"gestion_id": str(period_id)},
        )


class NotClosed(ConflictError):
    def __init__(self, period_id: Any):
        super().__init__(
            "Only closed periods accept this operation.",
            code="GESTION_NOT_CLOSED",
            details={"gestion_id": str(period_id)},
        )


class PeriodLocked(ConflictError):
    def __init__(self, period_id: Any):
        super().__init__(
            "Data belonging to a closed period cannot be modified.",
            code="GESTION_LOCKED",
            details={"gestion_id": str(period_id)},
        )


class PendingAgriculturalWorks(ValidationError):
    def __init__(self, count: int):
        super().__init__(
            f"Cannot close: {count} agricultural work(s) pending approval.",
            code="PENDING_AGRICULTURAL_WORKS",
            details={"count": count},
        )
        self.count = count


class PendingLivestockWorks(ValidationError):
    def __init__(self, count: int):
        super().__init__(
            f"Cannot close: {count} livestock work(s) pending approval.",
            code="PENDING_LIVESTOCK_WORKS",
            details={"count": count},
        )
        self.count = count


class MissingReopenReason(ValidationError):
    def __init__(self):
        super().__init__("A reopen reason is required.", code="MISSING_REOPEN_REASON")


class MissingDescription(ValidationError):
    def __init__(self):
        super().__init__("An adjustment description is required.", code="MISSING_DESCRIPTION")


# ---------------------------------------------------------------------------
# Valuation
# ---------------------------------------------------------------------------


class ValuationError(AppError):
    """Tagged valuation failure (ANIMALS_FETCH_ERROR, VALUATION_SAVE_ERROR, ...)."""

    def __init__(self, code: str, message: str, error: Exception | str | None = None):
        super().__init__(
            code=code,
            message=message,
            status_code=500,
            details={"error": str(error)} if error is not None else None,
        )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.message,
                    "details": exc.details or None,
                }
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": "HTTP_ERROR",
                    "message": exc.detail,
                    "details": None,
                }
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": str(exc),
                    "details": None,
                }
            },
        )
