"""Exception hierarchy for the OCR extraction service."""

from __future__ import annotations


class OCRServiceError(Exception):
    """Base exception for service failures."""


class InvalidInputError(OCRServiceError):
    """The uploaded payload is not an acceptable image."""

    def __init__(self, message: str, details: str | None = None) -> None:
        self.details = details
        super().__init__(message)


class MissingInputError(InvalidInputError):
    """No image was supplied."""


class ImageDecodeError(OCRServiceError):
    """Image bytes could not be decoded."""


class ConfigurationError(OCRServiceError):
    """Invalid or missing configuration."""


class ModelInvocationError(OCRServiceError):
    """A single call to the vision model failed."""

    def __init__(self, message: str, model_id: str, cause: BaseException | None = None) -> None:
        self.model_id = model_id
        self.cause = cause
        super().__init__(message)


class TransientModelError(ModelInvocationError):
    """Failure that may succeed on retry."""


class PermanentModelError(ModelInvocationError):
    """Model is missing or inaccessible; retrying is futile."""


class EmptyResponseError(TransientModelError):
    """Model answered with no text."""


class ExhaustedError(OCRServiceError):
    """Primary and fallback models both failed.

    ``cause`` is the primary model's last error when there is one, otherwise
    the fallback's.
    """

    def __init__(
        self,
        primary_error: ModelInvocationError | None,
        fallback_error: ModelInvocationError | None,
        attempts: tuple = (),
    ) -> None:
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        self.attempts = attempts
        self.cause = primary_error or fallback_error
        super().__init__(str(self.cause) if self.cause else "All model attempts failed")


class ExtractionClientError(OCRServiceError):
    """Transport-level failure talking to the extraction API."""
