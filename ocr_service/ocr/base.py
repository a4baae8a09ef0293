from __future__ import annotations


class VisionModel:
    """Hosted multimodal model that transcribes an image given a prompt pair."""

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
        raise NotImplementedError
