"""
AI Assistant Service.

Thin layer over Gemini for staff drafting aids. Every request type has
its own role prompt, token budget and response key in config/prompts.yaml.
Output is always a suggestion; nothing is written to clinical records here.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import AIServiceError, BadRequestError
from ..core.prompts import get_prompt_manager
from ..models.enums import AIRequestType
from ..models.user import User
from ..repositories.audit_repository import AuditRepository
from .clinic_service import FEATURE_AI_ASSISTANT, ClinicService
from .gemini_service import get_gemini_service

logger = logging.getLogger(__name__)

FILE_REQUEST_TYPES = (AIRequestType.INSURANCE_EXTRACT.value, AIRequestType.DOCUMENT_ANALYZE.value)


class AIAssistantService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.prompts = get_prompt_manager()
        self.gemini = get_gemini_service()
        self.clinics = ClinicService(session)
        self.audit = AuditRepository(session)

    def _config_for(self, request_type: str) -> dict[str, Any]:
        try:
            return self.prompts.get_assistant_config(request_type)
        except KeyError:
            raise BadRequestError(
                message=f"Unknown assistant request type '{request_type}'",
                error_code="INVALID_REQUEST_TYPE",
                details={"allowed_types": [t.value for t in AIRequestType]},
            )

    async def assist(
        self,
        user: User,
        clinic_id: int,
        request_type: str,
        payload: dict[str, Any],
        context: dict[str, Any] | None = None,
        patient_id: int | None = None,
        file_content: bytes | None = None,
        mime_type: str | None = None,
    ) -> dict[str, Any]:
        """
        Run one assistant request and audit it.

        Raises:
            BadRequestError: Unknown request type
            FeatureDisabledError: ai_assistant toggle is off for the clinic
            AIServiceError: Gemini unavailable or returned unusable output;
                details carry a manual-fallback suggestion
        """
        config = self._config_for(request_type)
        await self.clinics.ensure_feature_enabled(clinic_id, FEATURE_AI_ASSISTANT)

        context = dict(context or {})
        context.setdefault("clinic_id", clinic_id)
        prompt = self.prompts.get_assistant_prompt(request_type, payload, context)
        use_file = file_content is not None and request_type in FILE_REQUEST_TYPES

        try:
            if not self.gemini.is_configured:
                raise AIServiceError(message="AI assistant is not configured")
            result = await self.gemini.generate_structured(
                prompt,
                system_instruction=config["system_prompt"],
                max_tokens=config["max_tokens"],
                file_content=file_content if use_file else None,
                mime_type=mime_type if use_file else None,
            )
        except AIServiceError as e:
            logger.warning(f"Assistant request {request_type} failed for clinic {clinic_id}: {e.message}")
            e.details["suggestion"] = self.prompts.get("clinic_assistant.unavailable_suggestion")
            raise

        await self.audit.record(
            action_type="ai_assistance",
            action_description=f"AI assistant used: {request_type}",
            clinic_id=clinic_id,
            user_id=user.id,
            patient_id=patient_id,
            entity_type="ai_request",
            new_values={"request_type": request_type, "with_file": use_file},
        )
        logger.info(f"Assistant request {request_type} served for clinic {clinic_id}")

        return {
            "request_type": request_type,
            config["response_key"]: result,
            "review_message": config["review_message"],
            "requires_review": True,
        }
