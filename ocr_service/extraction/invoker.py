"""Retry and fallback driver for vision model calls.

Every call to the external model is reduced to an ``AttemptOutcome``:

    Success(text)      non-empty text returned
    Transient(error)   anything else; retried with linear backoff
    Permanent(error)   model missing / inaccessible; stop retrying this model

A tenacity ``AsyncRetrying`` loop consumes those outcomes per model (retrying
only on ``Transient``). The primary model is tried first; if it ends without
``Success`` the fallback model runs under the same rules. When both fail the
primary's last error is surfaced through ``ExhaustedError``.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_incrementing

from ocr_service.core.exceptions import (
    EmptyResponseError,
    ExhaustedError,
    ModelInvocationError,
    PermanentModelError,
    TransientModelError,
)
from ocr_service.ocr.base import VisionModel

logger = logging.getLogger(__name__)

# Provider error messages that mean retrying the same model is futile
PERMANENT_ERROR_MARKERS = ("does not exist", "do not have access")
PERMANENT_STATUS_CODES = frozenset({403, 404})


# ---------------------------------------------------------------------------
# Attempt outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Success:
    text: str


@dataclass(frozen=True)
class Transient:
    error: ModelInvocationError


@dataclass(frozen=True)
class Permanent:
    error: ModelInvocationError


AttemptOutcome = Union[Success, Transient, Permanent]


@dataclass(frozen=True)
class ModelAttempt:
    model_id: str
    attempt: int
    outcome: AttemptOutcome


@dataclass(frozen=True)
class ModelRequest:
    system_prompt: str
    user_prompt: str
    image_url: str
    temperature: float = 0.0
    max_tokens: int = 7000


@dataclass(frozen=True)
class Invocation:
    text: str
    model_id: str
    attempts: tuple[ModelAttempt, ...]


def classify_error(exc: BaseException, model_id: str) -> AttemptOutcome:
    """Map an exception raised by the model call onto an outcome."""
    message = str(exc)
    status_code = getattr(exc, "status_code", None)
    if any(marker in message for marker in PERMANENT_ERROR_MARKERS) or status_code in PERMANENT_STATUS_CODES:
        return Permanent(PermanentModelError(message, model_id, cause=exc))
    return Transient(TransientModelError(message, model_id, cause=exc))


def _last_outcome(retry_state: RetryCallState) -> AttemptOutcome:
    return retry_state.outcome.result()


# ---------------------------------------------------------------------------
# Invoker
# ---------------------------------------------------------------------------

class ModelInvoker:
    def __init__(
        self,
        model: VisionModel,
        primary_model: str,
        fallback_model: str,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 0.3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._model = model
        self._primary_model = primary_model
        self._fallback_model = fallback_model
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

    async def invoke(self, request: ModelRequest) -> Invocation:
        attempts: list[ModelAttempt] = []

        primary = await self._run_model(self._primary_model, request, attempts)
        if isinstance(primary, Success):
            return Invocation(primary.text, self._primary_model, tuple(attempts))

        logger.warning(
            "primary_model_failed_fallback",
            extra={
                "model": self._primary_model,
                "fallback_model": self._fallback_model,
                "error": str(primary.error),
            },
        )

        fallback = await self._run_model(self._fallback_model, request, attempts)
        if isinstance(fallback, Success):
            return Invocation(fallback.text, self._fallback_model, tuple(attempts))

        logger.error(
            "fallback_model_failed",
            extra={"model": self._fallback_model, "error": str(fallback.error)},
        )
        raise ExhaustedError(primary.error, fallback.error, tuple(attempts))

    async def _run_model(
        self,
        model_id: str,
        request: ModelRequest,
        attempts: list[ModelAttempt],
    ) -> AttemptOutcome:
        """Drive up to max_attempts calls against one model; return the final outcome."""
        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_incrementing(start=self._backoff_seconds, increment=self._backoff_seconds),
            retry=retry_if_result(lambda outcome: isinstance(outcome, Transient)),
            retry_error_callback=_last_outcome,
        )
        history: list[ModelAttempt] = []
        outcome = await retrying(self._attempt, model_id, request, history)
        attempts.extend(history)
        return outcome

    async def _attempt(
        self,
        model_id: str,
        request: ModelRequest,
        history: list[ModelAttempt],
    ) -> AttemptOutcome:
        number = len(history) + 1
        logger.info(
            "model_call_started",
            extra={"model": model_id, "attempt": number, "max_attempts": self._max_attempts},
        )
        try:
            text = await self._model.invoke(
                model_id,
                system_prompt=request.system_prompt,
                user_prompt=request.user_prompt,
                image_url=request.image_url,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
            )
        except Exception as exc:
            outcome = classify_error(exc, model_id)
        else:
            if text:
                outcome = Success(text)
            else:
                outcome = Transient(EmptyResponseError("Model returned empty response", model_id))

        history.append(ModelAttempt(model_id, number, outcome))
        if not isinstance(outcome, Success):
            logger.warning(
                "model_call_failed",
                extra={
                    "model": model_id,
                    "attempt": number,
                    "permanent": isinstance(outcome, Permanent),
                    "error": str(outcome.error),
                },
            )
        return outcome
