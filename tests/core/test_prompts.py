"""Tests for prompt template loading."""

import pytest

from src.dentacare.core.exceptions import ConfigurationError
from src.dentacare.core.prompts import PromptManager, get_prompt_manager


def test_shipped_templates_load():
    manager = get_prompt_manager()

    config = manager.get_assistant_config("treatment_draft")
    assert config["response_key"] == "draft"
    assert "Jan 05, 2026" in manager.format("reminders.day_before", date="Jan 05, 2026", time="10:30 AM")


def test_assistant_prompt_embeds_request_data():
    prompt = get_prompt_manager().get_assistant_prompt(
        "invoice_draft", {"treatments": ["Scaling"]}, {"clinic_id": 7}
    )
    assert '"clinic_id": 7' in prompt
    assert '"Scaling"' in prompt
    assert prompt.index("## ROLE") < prompt.index("## OUTPUT")


def test_unknown_request_type():
    with pytest.raises(KeyError):
        get_prompt_manager().get_assistant_config("diagnose")


def test_incomplete_file_is_rejected(tmp_path):
    path = tmp_path / "prompts.yaml"
    path.write_text(
        "clinic_assistant:\n"
        "  preamble: hi\n"
        "  instruction: json\n"
        "  unavailable_suggestion: manual\n"
        "  request_types:\n"
        "    form_autofill:\n"
        "      system_prompt: fill\n"
        "reminders:\n"
        "  title: Reminder\n"
        "  day_before: tomorrow {time}\n",
        encoding="utf-8",
    )

    with pytest.raises(ConfigurationError) as exc_info:
        PromptManager(path)

    missing = exc_info.value.details["missing"]
    assert "reminders.hour_before" in missing
    assert "clinic_assistant.request_types.form_autofill.max_tokens" in missing


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        PromptManager(tmp_path / "absent.yaml")
