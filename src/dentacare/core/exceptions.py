"""
Clinic Exception Classes.

Provides a hierarchy of domain-specific exceptions that are automatically
converted to appropriate HTTP responses by the global exception handler.
"""

from typing import Any


class AppException(Exception):
    """
    Base exception for all application-specific errors.
    
    All custom exceptions should inherit from this class.
    The global exception handler converts these to HTTP responses.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "APP_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }

# ============================================
# 4xx Client Errors
# ============================================

class BadRequestError(AppException):
    """Invalid request data or parameters (400)."""

    def __init__(
        self,
        message: str = "Invalid request",
        error_code: str = "BAD_REQUEST",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=400,
            details=details,
        )

class UnauthorizedError(AppException):
    """Authentication required or failed (401)."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: str = "UNAUTHORIZED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=401,
            details=details,
        )

class ForbiddenError(AppException):
    """Permission denied (403)."""

    def __init__(
        self,
        message: str = "Permission denied",
        error_code: str = "FORBIDDEN",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=403,
            details=details,
        )

class NotFoundError(AppException):
    """Resource not found (404)."""

    def __init__(
        self,
        message: str = "Resource not found",
        error_code: str = "NOT_FOUND",
        resource_type: str | None = None,
        resource_id: str | int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=404,
            details=details,
        )

class ConflictError(AppException):
    """Resource conflict, e.g., duplicate entry (409)."""

    def __init__(
        self,
        message: str = "Resource conflict",
        error_code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=409,
            details=details,
        )

class ValidationError(AppException):
    """Data validation failed (422)."""

    def __init__(
        self,
        message: str = "Validation failed",
        error_code: str = "VALIDATION_ERROR",
        errors: list[dict[str, Any]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if errors:
            details["validation_errors"] = errors
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=422,
            details=details,
        )

# ============================================
# 5xx Server Errors
# ============================================

class InternalServerError(AppException):
    """Internal server error (500)."""

    def __init__(
        self,
        message: str = "Internal server error",
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=500,
            details=details,
        )

class ServiceUnavailableError(AppException):
    """Service temporarily unavailable (503)."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        error_code: str = "SERVICE_UNAVAILABLE",
        retry_after: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if retry_after:
            details["retry_after_seconds"] = retry_after
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=503,
            details=details,
        )

# ============================================
# Domain-Specific Exceptions
# ============================================

class ResourceNotFoundError(NotFoundError):
    """A clinic resource (patient, appointment, item, ...) was not found."""

    def __init__(self, resource_type: str, resource_id: str | int | None = None) -> None:
        label = resource_type.replace("_", " ").capitalize()
        super().__init__(
            message=f"{label} not found: {resource_id}" if resource_id is not None else f"{label} not found",
            error_code=f"{resource_type.upper()}_NOT_FOUND",
            resource_type=resource_type,
            resource_id=resource_id,
        )

class TenantAccessError(ForbiddenError):
    """Caller tried to touch a row belonging to another clinic."""

    def __init__(self, clinic_id: int | None = None) -> None:
        details: dict[str, Any] = {}
        if clinic_id is not None:
            details["clinic_id"] = clinic_id
        super().__init__(
            message="Resource belongs to a clinic outside your tenant scope",
            error_code="TENANT_ACCESS_DENIED",
            details=details,
        )

class FeatureDisabledError(ForbiddenError):
    """Feature toggle is switched off for the clinic."""

    def __init__(self, feature_name: str, clinic_id: int | None = None) -> None:
        super().__init__(
            message=f"Feature '{feature_name}' is disabled for this clinic",
            error_code="FEATURE_DISABLED",
            details={"feature_name": feature_name, "clinic_id": clinic_id},
        )

class InvalidStatusTransitionError(ConflictError):
    """Requested status change is not allowed from the current status."""

    def __init__(self, entity: str, current: str, requested: str) -> None:
        super().__init__(
            message=f"Cannot move {entity} from '{current}' to '{requested}'",
            error_code="INVALID_STATUS_TRANSITION",
            details={"entity": entity, "current_status": current, "requested_status": requested},
        )

class TreatmentBlockedError(ConflictError):
    """Treatment cannot start while required forms await verification."""

    def __init__(self, appointment_id: int, pending_forms: list[dict[str, Any]]) -> None:
        super().__init__(
            message="Treatment is blocked until all required forms are verified",
            error_code="TREATMENT_BLOCKED",
            details={"appointment_id": appointment_id, "pending_forms": pending_forms},
        )

class VerificationStateError(ConflictError):
    """Verification action applied to an item that is no longer reviewable."""

    def __init__(self, entity: str, entity_id: int, current_status: str) -> None:
        super().__init__(
            message=f"{entity.replace('_', ' ').capitalize()} {entity_id} is already '{current_status}'",
            error_code="VERIFICATION_STATE_ERROR",
            details={"entity": entity, "entity_id": entity_id, "current_status": current_status},
        )

class FormValidationError(ValidationError):
    """Submitted form answers do not satisfy the form definition."""

    def __init__(self, form_id: int, errors: list[dict[str, Any]]) -> None:
        super().__init__(
            message="Form submission is invalid",
            error_code="FORM_VALIDATION_ERROR",
            errors=errors,
            details={"form_id": form_id},
        )

class InsufficientStockError(ConflictError):
    """One or more inventory items cannot cover the requested quantity."""

    def __init__(self, shortages: list[dict[str, Any]]) -> None:
        names = ", ".join(str(s.get("name", s.get("item_id"))) for s in shortages)
        super().__init__(
            message=f"Insufficient stock for: {names}",
            error_code="INSUFFICIENT_STOCK",
            details={"shortages": shortages},
        )

class InvalidQRCodeError(BadRequestError):
    """Check-in code failed signature or expiry checks."""

    def __init__(self, message: str = "Invalid check-in code", error_code: str = "INVALID_QR_CODE") -> None:
        super().__init__(message=message, error_code=error_code)

class ConfigurationError(AppException):
    """Application configuration error."""

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            status_code=500,
            details=details,
        )

class FileValidationError(BadRequestError):
    """File upload validation failed."""

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        allowed_types: list[str] | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if filename:
            details["filename"] = filename
        if allowed_types:
            details["allowed_types"] = allowed_types
        super().__init__(
            message=message,
            error_code="FILE_VALIDATION_ERROR",
            details=details,
        )

class AIServiceError(ServiceUnavailableError):
    """AI/Gemini service error."""

    def __init__(
        self,
        message: str = "AI service temporarily unavailable",
        original_error: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if original_error:
            details["original_error"] = original_error
        super().__init__(
            message=message,
            error_code="AI_SERVICE_ERROR",
            retry_after=60,
            details=details,
        )
