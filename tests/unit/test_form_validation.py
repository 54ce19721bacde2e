"""Unit tests for digital form answer validation."""

from src.dentacare.models.form import DigitalForm
from src.dentacare.services.form_service import validate_responses


def _form(fields, requires_signature=False) -> DigitalForm:
    return DigitalForm(
        id=1,
        clinic_id=1,
        name="Medical history",
        form_fields=fields,
        requires_signature=requires_signature,
        requires_verification=True,
        is_active=True,
        version=1,
    )


def _fields(errors):
    return [error["field"] for error in errors]


def test_valid_submission_has_no_errors():
    form = _form(
        [
            {"id": "name", "label": "Full name", "type": "text", "required": True},
            {"id": "email", "label": "Email", "type": "email"},
            {"id": "phone", "label": "Phone", "type": "phone"},
            {"id": "dob", "label": "Date of birth", "type": "date"},
            {"id": "smoker", "label": "Smoker", "type": "radio", "options": ["yes", "no"]},
            {"id": "visits", "label": "Visits per year", "type": "number"},
        ]
    )
    responses = {
        "name": "Jane Doe",
        "email": "jane@mailbox.com",
        "phone": "+1 (555) 010-1234",
        "dob": "1990-04-12",
        "smoker": "no",
        "visits": "2",
    }
    assert validate_responses(form, responses) == []


def test_all_problems_are_collected():
    form = _form(
        [
            {"id": "name", "label": "Full name", "type": "text", "required": True},
            {"id": "email", "label": "Email", "type": "email"},
            {"id": "dob", "label": "Date of birth", "type": "date"},
            {"id": "visits", "label": "Visits", "type": "number"},
        ]
    )
    errors = validate_responses(form, {"email": "not-an-email", "dob": "12/04/1990", "visits": "often"})
    assert _fields(errors) == ["name", "email", "dob", "visits"]
    assert errors[0]["message"] == "Full name is required"


def test_optional_empty_fields_are_skipped():
    form = _form([{"id": "notes", "label": "Notes", "type": "textarea"}])
    assert validate_responses(form, {"notes": ""}) == []
    assert validate_responses(form, {}) == []


def test_required_checkbox_must_be_ticked():
    form = _form([{"id": "consent", "label": "Consent", "type": "checkbox", "required": True}])
    assert _fields(validate_responses(form, {"consent": False})) == ["consent"]
    assert validate_responses(form, {"consent": True}) == []


def test_choice_options_accept_value_objects():
    form = _form(
        [
            {
                "id": "conditions",
                "label": "Conditions",
                "type": "checkbox",
                "options": [{"value": "diabetes", "label": "Diabetes"}, {"value": "asthma", "label": "Asthma"}],
            },
            {"id": "blood", "label": "Blood type", "type": "select", "options": ["A", "B", "O"]},
        ]
    )
    assert validate_responses(form, {"conditions": ["asthma"], "blood": "O"}) == []

    errors = validate_responses(form, {"conditions": ["asthma", "gout"], "blood": "Z"})
    assert _fields(errors) == ["conditions", "blood"]
    assert "gout" in errors[0]["message"]


def test_boolean_is_not_a_number():
    form = _form([{"id": "count", "label": "Count", "type": "number"}])
    assert _fields(validate_responses(form, {"count": True})) == ["count"]


def test_short_phone_rejected():
    form = _form([{"id": "phone", "label": "Phone", "type": "phone"}])
    assert _fields(validate_responses(form, {"phone": "12-34"})) == ["phone"]


def test_signature_required_when_form_demands_it():
    form = _form([], requires_signature=True)
    assert _fields(validate_responses(form, {}, signature_data=None)) == ["signature"]
    assert _fields(validate_responses(form, {}, signature_data="   ")) == ["signature"]
    assert validate_responses(form, {}, signature_data="data:image/png;base64,AAAA") == []
