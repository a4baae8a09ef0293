from __future__ import annotations

from pydantic import BaseModel, Field


class ExtractTextResponse(BaseModel):
    success: bool = True
    text: str
    confidence: float = Field(ge=0.0, le=1.0)


class ErrorResponse(BaseModel):
    """Body for every non-200 answer; ``details`` is omitted when empty."""
    error: str
    details: str | None = None
