"""
Error taxonomy for the report pipeline.

Every error carries a machine-readable `code` so API clients can branch on it
without parsing messages. Handlers at the bottom render the response envelope
`{"success": false, "error": {...}}`.
"""

from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from focus_reports.core.logging import get_logger

logger = get_logger(__name__)


class ReportPipelineError(Exception):
    """Base class for all report pipeline errors."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(ReportPipelineError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class GoalNotFoundError(NotFoundError):
    code = "GOAL_NOT_FOUND"

    def __init__(self, goal_id: str):
        super().__init__(message=f"Goal {goal_id} not found", details={"goal_id": goal_id})


class ReportNotFoundError(NotFoundError):
    code = "REPORT_NOT_FOUND"

    def __init__(self, report_id: str | None = None, goal_id: str | None = None):
        if report_id:
            message = f"Report {report_id} not found"
            details = {"report_id": report_id}
        else:
            message = f"No report found for goal {goal_id}"
            details = {"goal_id": goal_id}
        super().__init__(message=message, details=details)


class PreconditionError(ReportPipelineError):
    """Raised when a memo generation step is requested before its inputs exist."""

    http_status = status.HTTP_400_BAD_REQUEST
    code = "PRECONDITION_FAILED"

    def __init__(self, message: str, missing_phase: str):
        super().__init__(message=message, details={"missing_phase": missing_phase})
        self.missing_phase = missing_phase


class InvalidMemoError(ReportPipelineError):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "INVALID_MEMO"


class GenerationError(ReportPipelineError):
    """Raised when the completion provider fails after its fallback attempt."""

    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "GENERATION_FAILED"

    def __init__(
        self,
        message: str = "AI analysis generation failed, please try again later",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, details=details)


class GenerationTimeoutError(ReportPipelineError):
    http_status = status.HTTP_504_GATEWAY_TIMEOUT
    code = "GENERATION_TIMEOUT"

    def __init__(self, timeout_seconds: float):
        super().__init__(
            message="AI analysis service response timeout, please click the generate button again",
            details={"timeout_seconds": timeout_seconds},
        )


class EmbeddingError(ReportPipelineError):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "EMBEDDING_FAILED"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


async def pipeline_exception_handler(request: Request, exc: ReportPipelineError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.http_status,
        content={"success": False, "error": exc.to_dict()},
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append(
            {
                "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
                "message": error["msg"],
                "type": error["type"],
            }
        )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed.",
                "details": {"errors": field_errors},
            },
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
        },
    )
