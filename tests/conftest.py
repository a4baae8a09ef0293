"""Shared pytest configuration and fixtures."""
from __future__ import annotations

import io
import os
from unittest.mock import AsyncMock

import pytest

# Provide required env vars before any app module is imported
os.environ.setdefault("VISION_PROVIDER", "mock")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from PIL import Image  # noqa: E402

from ocr_service.extraction.invoker import ModelInvoker  # noqa: E402
from ocr_service.ocr.base import VisionModel  # noqa: E402

PRIMARY = "primary-model"
FALLBACK = "fallback-model"


class ScriptedVisionModel(VisionModel):
    """Replays a per-model script of results: str / None is returned, exceptions are raised."""

    def __init__(self, script: dict[str, list]) -> None:
        self._script = {model: list(steps) for model, steps in script.items()}
        self.calls: list[str] = []
        self.requests: list[dict] = []

    async def invoke(self, model_id: str, **kwargs) -> str | None:
        self.calls.append(model_id)
        self.requests.append(kwargs)
        steps = self._script.get(model_id)
        if not steps:
            raise AssertionError(f"unexpected call to {model_id}")
        step = steps.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step


@pytest.fixture
def scripted_model():
    return ScriptedVisionModel


@pytest.fixture
def make_invoker():
    """Build a ModelInvoker over a scripted model with a recording no-op sleep."""
    def _make(script: dict[str, list], **kwargs):
        model = ScriptedVisionModel(script)
        sleep = AsyncMock()
        invoker = ModelInvoker(model, PRIMARY, FALLBACK, sleep=sleep, **kwargs)
        return invoker, model, sleep
    return _make


@pytest.fixture
def make_image_bytes():
    def _make(size=(64, 32), color=(255, 255, 255), mode="RGB", fmt="PNG") -> bytes:
        buffer = io.BytesIO()
        Image.new(mode, size, color).save(buffer, format=fmt)
        return buffer.getvalue()
    return _make
