"""Confidence scoring module.

Derives a heuristic reliability score (0.05 – 0.98) for a transcription from
surface statistics of the returned text. The score is not a calibrated
probability; it rewards longer, multi-line output and penalises
``[illegible]`` markers.
"""
from __future__ import annotations

import re

NO_TEXT_SENTINEL = "No text detected"
ILLEGIBLE_MARKER = "[illegible]"

FLOOR = 0.05
CEILING = 0.98
BASE_SCORE = 0.25
MAX_ILLEGIBLE_PENALTY = 0.20

_ILLEGIBLE_RE = re.compile(re.escape(ILLEGIBLE_MARKER), re.IGNORECASE)


def compute_confidence(text: str | None) -> float:
    """Score *text* as returned by the vision model.

    Increments:
        length > 40          +0.15
        length > 200         +0.10
        non-blank lines > 2  +0.08
        words > 20           +0.07
    Penalty:
        min(0.20, illegible / words * 0.5)
    """
    if not text or text == NO_TEXT_SENTINEL or not text.strip():
        return FLOOR

    words = text.split()
    lines = [line for line in text.split("\n") if line.strip()]

    c = BASE_SCORE
    if len(text) > 40:
        c += 0.15
    if len(text) > 200:
        c += 0.1
    if len(lines) > 2:
        c += 0.08
    if len(words) > 20:
        c += 0.07

    illegible = len(_ILLEGIBLE_RE.findall(text))
    if illegible > 0:
        c -= min(MAX_ILLEGIBLE_PENALTY, (illegible / max(len(words), 1)) * 0.5)

    return min(CEILING, max(FLOOR, c))


def confidence_label(score: float) -> str:
    """Display tier for a score: high | good | fair | low."""
    if score >= 0.85:
        return "high"
    if score >= 0.7:
        return "good"
    if score >= 0.5:
        return "fair"
    return "low"
