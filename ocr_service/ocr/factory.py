from __future__ import annotations

from ocr_service.core.config import Settings, settings
from ocr_service.core.exceptions import ConfigurationError
from ocr_service.ocr.base import VisionModel
from ocr_service.ocr.mock_model import MockVisionModel


def get_vision_model(config: Settings | None = None) -> VisionModel:
    """Return the configured vision model instance.

    VISION_PROVIDER options:
        mock — canned transcription (dev/test, no credentials required)
        groq — GroqVisionModel (requires GROQ_API_KEY)
    """
    config = config or settings
    provider = config.vision_provider.lower().strip()

    if provider == "mock":
        return MockVisionModel()

    if provider == "groq":
        if not config.groq_api_key:
            raise ConfigurationError("GROQ_API_KEY is not set")
        from ocr_service.ocr.groq_model import GroqVisionModel
        return GroqVisionModel(
            api_key=config.groq_api_key,
            base_url=config.groq_base_url,
            timeout=config.request_timeout_seconds,
        )

    raise ValueError(f"Unknown VISION_PROVIDER={config.vision_provider!r}")
