from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction request.

    ``confidence`` is set iff ``success`` is true; ``error``/``details`` only
    on failure. A failed result never carries text.
    """
    success: bool
    text: str = ""
    confidence: float | None = None
    error: str | None = None
    details: str | None = None

    @classmethod
    def ok(cls, text: str, confidence: float) -> ExtractionResult:
        return cls(success=True, text=text, confidence=confidence)

    @classmethod
    def failed(cls, error: str, details: str | None = None) -> ExtractionResult:
        return cls(success=False, error=error, details=details)
