"""Async client for ``POST /api/extract-text``.

Normalizes the image locally, uploads it and returns an ExtractionResult.
Progress is reported as ProgressStage values pushed around the client's own
steps; they are illustrative and say nothing about server-side progress.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

import httpx

from ocr_service.core.exceptions import ExtractionClientError
from ocr_service.extraction.result import ExtractionResult
from ocr_service.imaging.normalizer import (
    CONTRAST,
    MAX_DIMENSION,
    ExtractionRequest,
    UploadedImage,
    prepare_upload,
)

logger = logging.getLogger(__name__)

EXTRACT_PATH = "/api/extract-text"


class ProgressStage(Enum):
    IDLE = (0, "")
    OPTIMIZING = (20, "Optimizing image…")
    ANALYZING = (55, "Analyzing text regions…")
    TRANSCRIBING = (85, "Transcribing text…")
    COMPLETED = (100, "Completed")

    def __init__(self, percent: int, message: str) -> None:
        self.percent = percent
        self.message = message


ProgressCallback = Callable[[ProgressStage], None]


class ExtractionClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 120.0,
        normalize: bool = True,
        max_dimension: int = MAX_DIMENSION,
        contrast: float = CONTRAST,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._normalize = normalize
        self._max_dimension = max_dimension
        self._contrast = contrast
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> ExtractionClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def extract(
        self,
        image: UploadedImage,
        on_progress: ProgressCallback | None = None,
    ) -> ExtractionResult:
        """Upload *image* and return the server's result.

        Raises:
            ExtractionClientError: transport failure or a response that is not
                the API's JSON shape. Progress is reset to IDLE first.
        """
        notify = on_progress or (lambda stage: None)
        try:
            notify(ProgressStage.OPTIMIZING)
            request = self._prepare(image)

            notify(ProgressStage.ANALYZING)
            files = {"image": (request.image.filename, request.image.data, request.image.mime_type)}

            notify(ProgressStage.TRANSCRIBING)
            response = await self._post(files)
            result = self._parse(response)
        except Exception:
            notify(ProgressStage.IDLE)
            raise

        notify(ProgressStage.COMPLETED if result.success else ProgressStage.IDLE)
        return result

    def _prepare(self, image: UploadedImage) -> ExtractionRequest:
        if not self._normalize:
            return ExtractionRequest(image=image, normalized=False)
        return prepare_upload(image, max_dimension=self._max_dimension, contrast=self._contrast)

    async def _post(self, files: dict) -> httpx.Response:
        try:
            return await self._http.post(EXTRACT_PATH, files=files)
        except httpx.HTTPError as exc:
            logger.error("extract_request_failed", extra={"error": str(exc)})
            raise ExtractionClientError(f"Request to {EXTRACT_PATH} failed: {exc}") from exc

    @staticmethod
    def _parse(response: httpx.Response) -> ExtractionResult:
        try:
            body = response.json()
        except ValueError as exc:
            raise ExtractionClientError(
                f"Unexpected response from {EXTRACT_PATH} (status {response.status_code})"
            ) from exc
        if not isinstance(body, dict):
            raise ExtractionClientError(f"Unexpected response body: {body!r}")

        if response.is_success and body.get("success"):
            confidence = body.get("confidence")
            return ExtractionResult.ok(
                text=body.get("text") or "",
                confidence=float(confidence) if isinstance(confidence, (int, float)) else 0.0,
            )

        if "error" in body:
            return ExtractionResult.failed(str(body["error"]), details=body.get("details"))

        raise ExtractionClientError(f"Unexpected response from {EXTRACT_PATH} (status {response.status_code})")
