from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from ocr_service.core.config import settings
from ocr_service.core.exceptions import MissingInputError
from ocr_service.extraction.invoker import ModelInvoker
from ocr_service.extraction.service import ExtractionService
from ocr_service.imaging.normalizer import UploadedImage
from ocr_service.ocr.factory import get_vision_model
from ocr_service.schemas import ErrorResponse, ExtractTextResponse

logger = logging.getLogger(__name__)
router = APIRouter()


async def read_upload(image: UploadFile | None = File(None)) -> UploadedImage:
    """Read the multipart `image` field; runs before the service is built."""
    if image is None:
        raise MissingInputError("No image provided")
    data = await image.read()
    if not data:
        raise MissingInputError("No image provided")
    return UploadedImage(
        data=data,
        mime_type=image.content_type or "",
        filename=image.filename or "image.png",
    )


def get_extraction_service() -> ExtractionService:
    invoker = ModelInvoker(
        get_vision_model(),
        settings.primary_model,
        settings.fallback_model,
        max_attempts=settings.max_attempts,
        backoff_seconds=settings.retry_backoff_seconds,
    )
    return ExtractionService(
        invoker,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        max_upload_bytes=settings.max_upload_bytes,
    )


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post(
    "/api/extract-text",
    response_model=ExtractTextResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def extract_text(
    uploaded: UploadedImage = Depends(read_upload),
    service: ExtractionService = Depends(get_extraction_service),
):
    result = await service.extract(uploaded)
    if not result.success:
        body = ErrorResponse(error=result.error or "", details=result.details)
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))

    return ExtractTextResponse(text=result.text, confidence=result.confidence)
