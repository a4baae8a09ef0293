"""Retry/fallback tests for ModelInvoker: scripted model, sleep recorded not awaited."""
from __future__ import annotations

import pytest

from ocr_service.core.exceptions import (
    EmptyResponseError,
    ExhaustedError,
    PermanentModelError,
    TransientModelError,
)
from ocr_service.extraction.invoker import (
    ModelInvoker,
    ModelRequest,
    Permanent,
    Success,
    Transient,
    classify_error,
)

PRIMARY = "primary-model"
FALLBACK = "fallback-model"

REQUEST = ModelRequest(
    system_prompt="system",
    user_prompt="user",
    image_url="data:image/png;base64,AAAA",
    temperature=0.0,
    max_tokens=7000,
)


class _StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


def _waits(sleep) -> list[float]:
    return [call.args[0] for call in sleep.await_args_list]


# ---------------------------------------------------------------------------
# classify_error
# ---------------------------------------------------------------------------

def test_classify_does_not_exist_is_permanent() -> None:
    outcome = classify_error(RuntimeError("The model `x` does not exist"), PRIMARY)
    assert isinstance(outcome, Permanent)
    assert isinstance(outcome.error, PermanentModelError)
    assert outcome.error.model_id == PRIMARY


def test_classify_no_access_is_permanent() -> None:
    outcome = classify_error(RuntimeError("You do not have access to this model"), PRIMARY)
    assert isinstance(outcome, Permanent)


def test_classify_status_code_404_is_permanent() -> None:
    assert isinstance(classify_error(_StatusError("not found", 404), PRIMARY), Permanent)


def test_classify_rate_limit_is_transient() -> None:
    exc = _StatusError("rate limit reached", 429)
    outcome = classify_error(exc, PRIMARY)
    assert isinstance(outcome, Transient)
    assert isinstance(outcome.error, TransientModelError)
    assert outcome.error.cause is exc
    assert str(outcome.error) == "rate limit reached"


# ---------------------------------------------------------------------------
# Primary success paths
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_first_attempt_success_stops_immediately(make_invoker) -> None:
    invoker, model, sleep = make_invoker({PRIMARY: ["Hello"]})
    result = await invoker.invoke(REQUEST)

    assert result.text == "Hello"
    assert result.model_id == PRIMARY
    assert model.calls == [PRIMARY]
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_two_transient_failures_then_success_skips_fallback(make_invoker) -> None:
    invoker, model, sleep = make_invoker({
        PRIMARY: [RuntimeError("timeout"), RuntimeError("503 overloaded"), "attempt three"],
        FALLBACK: ["should not be used"],
    })
    result = await invoker.invoke(REQUEST)

    assert result.text == "attempt three"
    assert result.model_id == PRIMARY
    assert model.calls == [PRIMARY, PRIMARY, PRIMARY]
    assert [a.attempt for a in result.attempts] == [1, 2, 3]
    assert isinstance(result.attempts[-1].outcome, Success)
    assert _waits(sleep) == pytest.approx([0.3, 0.6])


@pytest.mark.asyncio
async def test_request_is_forwarded_to_model(make_invoker) -> None:
    invoker, model, _ = make_invoker({PRIMARY: ["ok"]})
    await invoker.invoke(REQUEST)

    sent = model.requests[0]
    assert sent["system_prompt"] == "system"
    assert sent["user_prompt"] == "user"
    assert sent["image_url"] == REQUEST.image_url
    assert sent["temperature"] == 0.0
    assert sent["max_tokens"] == 7000


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_permanent_error_switches_to_fallback_without_waiting(make_invoker) -> None:
    invoker, model, sleep = make_invoker({
        PRIMARY: [RuntimeError("The model `primary-model` does not exist or you do not have access to it.")],
        FALLBACK: ["fallback text"],
    })
    result = await invoker.invoke(REQUEST)

    assert result.text == "fallback text"
    assert result.model_id == FALLBACK
    assert model.calls == [PRIMARY, FALLBACK]
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_all_transient_failures_exhaust_both_models(make_invoker) -> None:
    invoker, model, sleep = make_invoker({
        PRIMARY: [RuntimeError("p1"), RuntimeError("p2"), RuntimeError("p3")],
        FALLBACK: [RuntimeError("f1"), RuntimeError("f2"), RuntimeError("f3")],
    })
    with pytest.raises(ExhaustedError) as excinfo:
        await invoker.invoke(REQUEST)

    exc = excinfo.value
    assert model.calls == [PRIMARY] * 3 + [FALLBACK] * 3
    assert len(exc.attempts) == 6
    assert str(exc) == "p3"
    assert exc.cause is exc.primary_error
    assert exc.primary_error.model_id == PRIMARY
    assert str(exc.fallback_error) == "f3"
    assert _waits(sleep) == pytest.approx([0.3, 0.6, 0.3, 0.6])


@pytest.mark.asyncio
async def test_permanent_errors_on_both_models(make_invoker) -> None:
    invoker, model, sleep = make_invoker({
        PRIMARY: [RuntimeError("model does not exist")],
        FALLBACK: [RuntimeError("you do not have access")],
    })
    with pytest.raises(ExhaustedError) as excinfo:
        await invoker.invoke(REQUEST)

    assert model.calls == [PRIMARY, FALLBACK]
    assert str(excinfo.value) == "model does not exist"
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_fallback_permanent_error_stops_fallback_retries(make_invoker) -> None:
    invoker, model, sleep = make_invoker({
        PRIMARY: [RuntimeError("p1"), RuntimeError("p2"), RuntimeError("p3")],
        FALLBACK: [RuntimeError("f1"), RuntimeError("model does not exist")],
    })
    with pytest.raises(ExhaustedError) as excinfo:
        await invoker.invoke(REQUEST)

    assert model.calls == [PRIMARY] * 3 + [FALLBACK] * 2
    assert str(excinfo.value) == "p3"
    assert _waits(sleep) == pytest.approx([0.3, 0.6, 0.3])


# ---------------------------------------------------------------------------
# Empty responses
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_empty_response_is_retried_then_falls_back(make_invoker) -> None:
    invoker, model, _ = make_invoker({PRIMARY: ["", None, ""], FALLBACK: ["recovered"]})
    result = await invoker.invoke(REQUEST)

    assert result.text == "recovered"
    assert result.model_id == FALLBACK
    primary_outcomes = [a.outcome for a in result.attempts if a.model_id == PRIMARY]
    assert len(primary_outcomes) == 3
    assert all(isinstance(o, Transient) for o in primary_outcomes)
    assert all(isinstance(o.error, EmptyResponseError) for o in primary_outcomes)


@pytest.mark.asyncio
async def test_empty_responses_everywhere_surface_primary_empty_error(make_invoker) -> None:
    invoker, _, _ = make_invoker({PRIMARY: ["", "", ""], FALLBACK: [RuntimeError("f1"), "", ""]})
    with pytest.raises(ExhaustedError) as excinfo:
        await invoker.invoke(REQUEST)

    assert isinstance(excinfo.value.cause, EmptyResponseError)
    assert excinfo.value.cause.model_id == PRIMARY


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_single_attempt_configuration(make_invoker) -> None:
    invoker, model, sleep = make_invoker(
        {PRIMARY: [RuntimeError("p1")], FALLBACK: ["ok"]},
        max_attempts=1,
    )
    result = await invoker.invoke(REQUEST)

    assert result.text == "ok"
    assert model.calls == [PRIMARY, FALLBACK]
    sleep.assert_not_awaited()


def test_rejects_zero_attempts(scripted_model) -> None:
    with pytest.raises(ValueError):
        ModelInvoker(scripted_model({}), PRIMARY, FALLBACK, max_attempts=0)
