"""
Response envelopes shared by every endpoint.

Success:  {"success": true,  "message", "data", "meta"}
List:     {"success": true,  "message", "data": [...], "pagination", "meta"}
Error:    {"success": false, "error": {"code", "message", "details"}, "meta"}

meta.request_id is the X-Request-ID bound by RequestIDMiddleware, so a
client can quote it when reporting a failed call.
"""
from datetime import UTC, datetime
from typing import Any, Generic, Literal, TypeVar

import structlog
from pydantic import BaseModel, Field

from .config import get_settings

T = TypeVar("T")


def _current_request_id() -> str | None:
    return structlog.contextvars.get_contextvars().get("request_id")


def _api_version() -> str:
    return get_settings().APP_VERSION


class ResponseMeta(BaseModel):
    request_id: str | None = Field(default_factory=_current_request_id, description="X-Request-ID of the call")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: str = Field(default_factory=_api_version)


class GenericResponse(BaseModel, Generic[T]):
    """
    Single-object envelope.

    Example:
        @router.get("/patients/{patient_id}", response_model=GenericResponse[PatientResponse])
        async def get_patient(patient_id: int, user: StaffUser, db: DbSession):
            patient = await PatientRepository(db).get_by_id(patient_id)
            return GenericResponse(message="Patient retrieved", data=PatientResponse.model_validate(patient))
    """

    success: bool = True
    message: str
    data: T
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class PaginationMeta(BaseModel):
    total: int
    page: int = Field(ge=1)
    page_size: int = Field(ge=1)
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def from_total(cls, total: int, page: int, page_size: int) -> "PaginationMeta":
        total_pages = max(1, -(-total // page_size))
        return cls(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """List envelope; page numbers start at 1."""

    success: bool = True
    message: str
    data: list[T]
    pagination: PaginationMeta
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class ErrorDetail(BaseModel):
    code: str = Field(description="Machine-readable code, e.g. APPOINTMENT_CONFLICT")
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Body of every non-2xx response produced by the exception handlers."""

    success: Literal[False] = False
    error: ErrorDetail
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class HealthCheck(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    service: str
    version: str
    environment: str
    checks: dict[str, HealthCheck] = Field(default_factory=dict)
