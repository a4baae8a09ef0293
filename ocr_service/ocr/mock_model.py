from __future__ import annotations

from ocr_service.ocr.base import VisionModel


class MockVisionModel(VisionModel):
    async def invoke(
        self,
        model_id: str,
        *,
        system_prompt: str,
        user_prompt: str,
        image_url: str,
        temperature: float = 0.0,
        max_tokens: int = 7000,
    ) -> str | None:
        # Canned transcription for development/testing
        return (
            "Meeting notes - 14 March\n"
            "Agenda: budget review, hiring plan, office move\n"
            "Action items:\n"
            "1. Send revised budget to finance by Friday\n"
            "2. Schedule interviews for [illegible] role\n"
        )
