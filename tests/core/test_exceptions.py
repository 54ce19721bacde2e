"""Tests for custom exceptions in core.exceptions."""

from src.dentacare.core.exceptions import (
    AIServiceError,
    AppException,
    BadRequestError,
    ConflictError,
    FeatureDisabledError,
    FileValidationError,
    FormValidationError,
    ForbiddenError,
    InsufficientStockError,
    InvalidQRCodeError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
    TenantAccessError,
    TreatmentBlockedError,
    UnauthorizedError,
    VerificationStateError,
)


def test_app_exception_to_dict():
    """Test the to_dict method serialization."""
    exc = AppException("Test message", "TEST_CODE", 400, {"key": "value"})
    data = exc.to_dict()
    assert data["error"]["code"] == "TEST_CODE"
    assert data["error"]["message"] == "Test message"
    assert data["error"]["details"]["key"] == "value"
    assert exc.status_code == 400


def test_http_error_instantiation():
    """Test standard HTTP exception instantiations."""
    assert BadRequestError().status_code == 400
    assert UnauthorizedError().status_code == 401
    assert ForbiddenError().status_code == 403
    assert ConflictError().status_code == 409


def test_resource_not_found_builds_code_and_message():
    exc = ResourceNotFoundError("inventory_item", 12)
    assert exc.status_code == 404
    assert exc.error_code == "INVENTORY_ITEM_NOT_FOUND"
    assert exc.message == "Inventory item not found: 12"
    assert exc.details == {"resource_type": "inventory_item", "resource_id": 12}


def test_tenant_and_feature_errors_are_forbidden():
    tenant = TenantAccessError(clinic_id=4)
    assert tenant.status_code == 403
    assert tenant.details == {"clinic_id": 4}

    feature = FeatureDisabledError("qr_checkin", 4)
    assert feature.status_code == 403
    assert feature.error_code == "FEATURE_DISABLED"
    assert feature.details["feature_name"] == "qr_checkin"


def test_workflow_conflicts():
    transition = InvalidStatusTransitionError("appointment", "completed", "booked")
    assert transition.status_code == 409
    assert transition.details["current_status"] == "completed"

    blocked = TreatmentBlockedError(5, [{"form_id": 1, "verification_status": "pending_verification"}])
    assert blocked.error_code == "TREATMENT_BLOCKED"
    assert blocked.details["pending_forms"][0]["form_id"] == 1

    state = VerificationStateError("payment_proof", 3, "approved")
    assert state.message == "Payment proof 3 is already 'approved'"


def test_insufficient_stock_lists_names():
    exc = InsufficientStockError(
        [
            {"item_id": 1, "name": "Gloves", "requested": 5, "available": 2},
            {"item_id": 2, "name": "Masks", "requested": 1, "available": 0},
        ]
    )
    assert exc.status_code == 409
    assert exc.message == "Insufficient stock for: Gloves, Masks"
    assert len(exc.details["shortages"]) == 2


def test_form_validation_error_carries_field_errors():
    exc = FormValidationError(9, [{"field": "name", "message": "Name is required"}])
    assert exc.status_code == 422
    assert exc.details["form_id"] == 9
    assert exc.details["validation_errors"][0]["field"] == "name"


def test_qr_and_file_errors_are_bad_requests():
    assert InvalidQRCodeError().status_code == 400
    expired = InvalidQRCodeError(message="Check-in code has expired", error_code="QR_CODE_EXPIRED")
    assert expired.error_code == "QR_CODE_EXPIRED"

    file_error = FileValidationError("Too large", filename="scan.pdf", allowed_types=["pdf"])
    assert file_error.status_code == 400
    assert file_error.details == {"filename": "scan.pdf", "allowed_types": ["pdf"]}


def test_ai_service_error():
    exc = AIServiceError(original_error="timeout")
    assert exc.status_code == 503
    assert exc.details["original_error"] == "timeout"
    assert exc.details["retry_after_seconds"] == 60
