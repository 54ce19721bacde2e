"""
Prompt and message templates.

Assistant prompts and patient-facing notification texts live in
config/prompts.yaml so wording can change without a deploy of code.
The file is validated once at load: every assistant request type must
define its prompt, token budget, response key and review message, and
the reminder templates must exist.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PATH = Path(__file__).resolve().parents[3] / "config" / "prompts.yaml"

REQUEST_TYPE_KEYS = ("system_prompt", "max_tokens", "response_key", "review_message")
REQUIRED_TEXTS = (
    "clinic_assistant.preamble",
    "clinic_assistant.instruction",
    "clinic_assistant.unavailable_suggestion",
    "reminders.title",
    "reminders.day_before",
    "reminders.hour_before",
)


class PromptManager:
    """
    Read-only view over prompts.yaml.

    Usage:
        manager = get_prompt_manager()
        manager.get("reminders.title")
        manager.format("reminders.hour_before", date="Jan 05, 2026", time="10:30 AM")
    """

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path = config_path or DEFAULT_PATH
        self._data = self._load()
        self._validate()
        logger.info(
            "Loaded %d assistant request types from %s",
            len(self._data["clinic_assistant"]["request_types"]),
            self.config_path,
        )

    def _load(self) -> dict[str, Any]:
        try:
            with open(self.config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Prompt configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"{self.config_path} must contain a mapping")
        return data

    def _validate(self) -> None:
        missing = [path for path in REQUIRED_TEXTS if not isinstance(self._lookup(path), str)]
        request_types = self._lookup("clinic_assistant.request_types")
        if not isinstance(request_types, dict) or not request_types:
            missing.append("clinic_assistant.request_types")
        else:
            for name, block in request_types.items():
                missing.extend(
                    f"clinic_assistant.request_types.{name}.{key}"
                    for key in REQUEST_TYPE_KEYS
                    if not isinstance(block, dict) or key not in block
                )
        if missing:
            raise ConfigurationError("Prompt configuration incomplete", details={"missing": missing})

    def _lookup(self, path: str) -> Any:
        value: Any = self._data
        for key in path.split("."):
            if not isinstance(value, dict) or key not in value:
                return None
            value = value[key]
        return value

    def get(self, path: str, default: str | None = None) -> str:
        """Text at a dot path, e.g. "clinic_assistant.preamble"."""
        value = self._lookup(path)
        if isinstance(value, str):
            return value
        if default is not None:
            return default
        raise KeyError(f"Prompt not found: {path}")

    def format(self, path: str, **kwargs: Any) -> str:
        try:
            return self.get(path).format(**kwargs)
        except KeyError as e:
            raise ValueError(f"Missing template variable in {path}: {e}")

    def get_assistant_config(self, request_type: str) -> dict[str, Any]:
        """system_prompt, max_tokens, response_key and review_message for a request type."""
        config = self._lookup(f"clinic_assistant.request_types.{request_type}")
        if not isinstance(config, dict):
            raise KeyError(f"Unknown assistant request type: {request_type}")
        return config

    def get_assistant_prompt(self, request_type: str, payload: dict[str, Any], context: dict[str, Any]) -> str:
        config = self.get_assistant_config(request_type)
        sections = (
            self.get("clinic_assistant.preamble"),
            f"## ROLE\n{config['system_prompt']}",
            f"## CLINIC CONTEXT (JSON)\n{json.dumps(context, ensure_ascii=False, indent=2, default=str)}",
            f"## REQUEST DATA (JSON)\n{json.dumps(payload, ensure_ascii=False, indent=2, default=str)}",
            f"## OUTPUT\n{self.get('clinic_assistant.instruction')}",
        )
        return "\n\n".join(sections)


_prompt_manager: PromptManager | None = None


def get_prompt_manager() -> PromptManager:
    global _prompt_manager
    if _prompt_manager is None:
        _prompt_manager = PromptManager()
    return _prompt_manager
