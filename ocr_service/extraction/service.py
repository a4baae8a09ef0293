"""Image-to-text extraction through a hosted vision model.

Validates the upload, embeds it as a data URL, sends it with a fixed OCR
prompt pair to the ModelInvoker (primary model, then fallback) and scores
the returned transcription.
"""
from __future__ import annotations

import base64
import logging
import mimetypes

from ocr_service.confidence.confidence import compute_confidence
from ocr_service.core.exceptions import ExhaustedError, InvalidInputError, MissingInputError
from ocr_service.extraction.invoker import ModelInvoker, ModelRequest
from ocr_service.extraction.result import ExtractionResult
from ocr_service.imaging.normalizer import UploadedImage

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"
FAILURE_MESSAGE = "Failed to extract text from image"


# ---------------------------------------------------------------------------
# OCR prompts
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = "\n".join([
    "You are a production-grade OCR engine.",
    "Extract ALL visible text exactly as written. Maintain reading order and line breaks.",
    "Handle cursive and connected handwriting carefully: distinguish 'rn' vs 'm', 'cl' vs 'd', "
    "'o' vs 'a', '0' vs 'O', '1' vs 'l' vs 'I', '5' vs 'S', '2' vs 'Z'.",
    "Prefer literal transcription over normalization; do not expand abbreviations. "
    "If a token is unreadable, use [illegible].",
    "Avoid hallucinations. Output only what is truly present in the image.",
])

USER_PROMPT = (
    "Output: Plain text only with original line breaks. "
    "If no text is present, output exactly: No text detected."
)


def resolve_mime_type(image: UploadedImage) -> str:
    """Declared type, else a guess from the filename, else image/png."""
    declared = (image.mime_type or "").split(";")[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(image.filename or "")
    return guessed or DEFAULT_MIME_TYPE


def to_data_url(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class ExtractionService:
    def __init__(
        self,
        invoker: ModelInvoker,
        *,
        temperature: float = 0.0,
        max_tokens: int = 7000,
        max_upload_bytes: int | None = None,
    ) -> None:
        self._invoker = invoker
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._max_upload_bytes = max_upload_bytes

    def validate(self, image: UploadedImage | None) -> str:
        """Check the upload and return its effective MIME type."""
        if image is None or image.size == 0:
            raise MissingInputError("No image provided")

        if self._max_upload_bytes is not None and image.size > self._max_upload_bytes:
            raise InvalidInputError(
                "Invalid image upload",
                details=f"Image is {image.size} bytes; limit is {self._max_upload_bytes}",
            )

        mime_type = resolve_mime_type(image)
        if not mime_type.startswith("image/"):
            raise InvalidInputError("Invalid image upload", details=f"Unsupported content type {mime_type!r}")
        return mime_type

    async def extract(self, image: UploadedImage | None) -> ExtractionResult:
        mime_type = self.validate(image)
        logger.info(
            "extraction_started",
            extra={"upload_filename": image.filename, "mime_type": mime_type, "size": image.size},
        )

        request = ModelRequest(
            system_prompt=SYSTEM_PROMPT,
            user_prompt=USER_PROMPT,
            image_url=to_data_url(image.data, mime_type),
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

        try:
            invocation = await self._invoker.invoke(request)
        except ExhaustedError as exc:
            logger.error(
                "extraction_failed",
                extra={"error": str(exc), "attempts": len(exc.attempts)},
            )
            return ExtractionResult.failed(FAILURE_MESSAGE, details=str(exc))

        confidence = compute_confidence(invocation.text)
        text = invocation.text.strip()
        logger.info(
            "extraction_succeeded",
            extra={
                "model": invocation.model_id,
                "attempts": len(invocation.attempts),
                "chars": len(text),
                "confidence": confidence,
            },
        )
        return ExtractionResult.ok(text, confidence)
