"""GroqVisionModel: hosted Llama vision models via Groq's OpenAI-compatible API."""
from __future__ import annotations

import logging

from openai import AsyncOpenAI

from ocr_service.ocr.base import VisionModel

logger = logging.getLogger(__name__)


class GroqVisionModel(VisionModel):
    """Vision model backed by Groq chat completions.

    Config (via .env):
        VISION_PROVIDER=groq
        GROQ_API_KEY=...
        GROQ_BASE_URL=https://api.groq.com/openai/v1
        REQUEST_TIMEOUT_SECONDS=60

    The SDK's built-in retries are disabled; ModelInvoker owns retry and
    fallback. The request timeout is the only timeout applied to a call.
    """

    def __init__(self, api_key: str, base_url: str, timeout: float = 60.0) -> None:
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

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
        response = await self._client.chat.completions.create(
            model=model_id,
            temperature=temperature,
            max_tokens=max_tokens,
            messages=[
                {"role": "system", "content": system_prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": user_prompt},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                },
            ],
        )
        if not response.choices:
            return None

        text = response.choices[0].message.content
        logger.debug(
            "groq_completion_received",
            extra={"model": model_id, "chars": len(text) if text else 0},
        )
        return text
