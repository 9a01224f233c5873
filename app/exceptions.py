"""
RFC 7807 Problem Details exception handling.

Every failure the inspection engine surfaces is an ``InspectionException``
rendered as ``application/problem+json``. Failures it recovers from locally
(missing floors/flats inside a bulk update, sequence lookup fallbacks) are
reported through result objects or logs instead.

See: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel, Field
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from datetime import datetime

from app.middleware.request_id import NO_REQUEST, generate_id, get_request_id

logger = logging.getLogger(__name__)

PROBLEM_TYPE_BASE = "https://inspection.example.org/problems"
PROBLEM_MEDIA_TYPE = "application/problem+json"

TITLES = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    422: "Validation Error",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class ErrorCode(str, Enum):
    """Machine-readable codes carried in every problem body."""

    VALIDATION_ERROR = "VAL_001"

    NOT_FOUND = "RES_001"
    ALREADY_EXISTS = "RES_002"
    CONFLICT = "RES_003"

    BUSINESS_RULE_VIOLATION = "BIZ_001"

    DATABASE_ERROR = "EXT_004"

    INTERNAL_ERROR = "SRV_001"
    SERVICE_UNAVAILABLE = "SRV_002"


# Fallback codes for plain HTTPExceptions raised by FastAPI/Starlette
STATUS_CODES = {
    400: ErrorCode.VALIDATION_ERROR,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.VALIDATION_ERROR,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


class ProblemDetail(BaseModel):
    """
    RFC 7807 problem body.

    ``code``, ``timestamp``, ``trace_id``, ``errors`` and ``extra`` are
    extension members; ``extra`` holds problem-specific data such as the
    completion percentage of a rejected submit.
    """

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    code: str
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")
    trace_id: str
    errors: Optional[List[Dict[str, Any]]] = None
    extra: Optional[Dict[str, Any]] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "type": "https://inspection.example.org/problems/biz-001",
                "title": "Bad Request",
                "status": 400,
                "detail": "Structure is not complete enough to submit (83% complete)",
                "instance": "/api/v2/structures/5f0c.../submit",
                "code": "BIZ_001",
                "timestamp": "2026-01-29T10:30:00Z",
                "trace_id": "abc123def456",
                "extra": {"overall_percentage": 83, "missing": ["flat_ratings_completed"]},
            }
        }
    }


def _trace_id() -> str:
    """Reuse the request ID when inside a request, otherwise mint one."""
    request_id = get_request_id()
    if request_id and request_id != NO_REQUEST:
        return request_id
    return generate_id()


def problem_type(code: ErrorCode) -> str:
    return f"{PROBLEM_TYPE_BASE}/{code.value.lower().replace('_', '-')}"


class InspectionException(HTTPException):
    """
    Base for every error the API reports as a problem body.

    Subclasses fix ``status`` and ``code``; raise sites only supply the
    detail and any extension members.
    """

    status: int = 500
    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        detail: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        extra: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=self.status, detail=detail, headers=headers)
        self.errors = errors
        self.extra = extra
        self.instance = instance
        self.trace_id = _trace_id()

    def to_problem_detail(self, instance: Optional[str] = None) -> ProblemDetail:
        return ProblemDetail(
            type=problem_type(self.code),
            title=TITLES.get(self.status_code, "Error"),
            status=self.status_code,
            detail=self.detail,
            instance=self.instance or instance,
            code=self.code.value,
            trace_id=self.trace_id,
            errors=self.errors,
            extra=self.extra,
        )


class NotFoundError(InspectionException):
    """Structure, floor or flat lookup failed (404)."""

    status = 404
    code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str, resource_id: Any):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} was not found")


class ValidationError(InspectionException):
    """Input rejected by the codec or a rating write (422)."""

    status = 422
    code = ErrorCode.VALIDATION_ERROR


class DuplicateIdentityError(InspectionException):
    """Structural identity number already used by another structure (409)."""

    status = 409
    code = ErrorCode.ALREADY_EXISTS

    def __init__(self, identity_number: str):
        self.identity_number = identity_number
        super().__init__(
            f"Structural identity number {identity_number} is already in use",
            extra={"structural_identity_number": identity_number},
        )


class IncompleteStructureError(InspectionException):
    """Submit attempted before every intake milestone is complete (400)."""

    status = 400
    code = ErrorCode.BUSINESS_RULE_VIOLATION

    def __init__(self, percentage: int, missing: Optional[List[str]] = None):
        self.percentage = percentage
        self.missing = missing or []
        super().__init__(
            f"Structure is not complete enough to submit ({percentage}% complete)",
            extra={"overall_percentage": percentage, "missing": self.missing},
        )


class SequenceResolutionError(Exception):
    """Next-sequence lookup failed; callers fall back to a timestamp sequence."""

    code = ErrorCode.DATABASE_ERROR

    def __init__(self, location_prefix: str, reason: str):
        self.location_prefix = location_prefix
        self.reason = reason
        super().__init__(f"Could not resolve sequence for {location_prefix}: {reason}")


# Exception handlers for FastAPI

def problem_response(
    problem: ProblemDetail,
    request: Request,
    allowed_origins: Optional[List[str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Render a problem body, echoing CORS headers for allowed origins."""
    response = JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers,
    )
    origin = request.headers.get("origin", "")
    if allowed_origins and origin in allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"
    return response


def _plain_problem(status_code: int, code: ErrorCode, detail: str, request: Request, **members) -> ProblemDetail:
    return ProblemDetail(
        type=problem_type(code),
        title=TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        code=code.value,
        trace_id=members.pop("trace_id", None) or _trace_id(),
        **members,
    )


def create_exception_handlers(allowed_origins: List[str]):
    """
    Build the handlers registered in main.py.

    Usage:
        handlers = create_exception_handlers(allowed_origins)
        app.add_exception_handler(InspectionException, handlers["inspection"])
    """

    async def handle_inspection_exception(request: Request, exc: InspectionException) -> JSONResponse:
        logger.warning(
            "%s %s: %s",
            exc.code.value,
            request.url.path,
            exc.detail,
            extra={"trace_id": exc.trace_id, "status_code": exc.status_code},
        )
        problem = exc.to_problem_detail(instance=str(request.url.path))
        return problem_response(problem, request, allowed_origins, headers=exc.headers)

    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        problem = _plain_problem(exc.status_code, code, str(exc.detail), request)
        return problem_response(problem, request, allowed_origins, headers=getattr(exc, "headers", None))

    async def handle_validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Pydantic request errors, one entry per offending field."""
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        problem = _plain_problem(422, ErrorCode.VALIDATION_ERROR, "Request validation failed", request, errors=errors)
        return problem_response(problem, request, allowed_origins)

    async def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
        trace_id = _trace_id()
        logger.exception("Unhandled exception on %s", request.url.path, extra={"trace_id": trace_id})

        # Don't expose internal details in production
        from app.config import settings
        detail = str(exc) if settings.DEBUG else "An unexpected error occurred"

        problem = _plain_problem(500, ErrorCode.INTERNAL_ERROR, detail, request, trace_id=trace_id)
        return problem_response(problem, request, allowed_origins)

    return {
        "inspection": handle_inspection_exception,
        "http": handle_http_exception,
        "validation": handle_validation_exception,
        "generic": handle_generic_exception,
    }
