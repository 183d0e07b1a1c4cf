import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.agent.base import StageSpec, parse_json_response, run_stage
from app.agent.errors import ErrorCategory, PipelineError, timeout_error, validation_error
from app.agent.llm_client import LLMResponse


def _client(*responses):
    client = MagicMock()
    client.model_name = "fake-model"
    client.invoke = AsyncMock(side_effect=list(responses))
    return client


def _response(text, **kwargs):
    return LLMResponse(text=text, model="fake-model", prompt_tokens=5, completion_tokens=7, **kwargs)


def _parse_number(raw_text, stage_input, cache):
    data = parse_json_response(raw_text, stage="numbers", fallback_keys=("value",))
    if not isinstance(data.get("value"), int):
        raise PipelineError(validation_error("value must be an integer"))
    return data["value"] + stage_input


def _spec(**overrides):
    fields = dict(
        name="numbers",
        system_prompt="Return a number.",
        build_prompt=lambda stage_input, cache: f"Add to {stage_input}",
        parse_response=_parse_number,
    )
    fields.update(overrides)
    return StageSpec(**fields)


@pytest.mark.asyncio
async def test_run_stage_success_collects_metrics():
    client = _client(_response('{"value": 40}', attempts=2))

    result = await run_stage(_spec(temperature=0.1, max_tokens=50), 2, client=client)

    assert result.success
    assert result.stage == "numbers"
    assert result.output == 42
    assert result.metrics.model == "fake-model"
    assert result.metrics.attempts == 2
    assert result.metrics.total_tokens == 12
    client.invoke.assert_awaited_once_with(
        "Return a number.",
        "Add to 2",
        model=None,
        fallback_models=(),
        temperature=0.1,
        max_tokens=50,
    )


@pytest.mark.asyncio
async def test_run_stage_resolves_locally_without_model_call():
    client = _client()

    result = await run_stage(_spec(resolve_locally=lambda stage_input, cache: stage_input * 10), 3, client=client)

    assert result.success
    assert result.output == 30
    client.invoke.assert_not_awaited()


@pytest.mark.asyncio
async def test_run_stage_local_resolution_can_decline():
    client = _client(_response('{"value": 1}'))

    result = await run_stage(_spec(resolve_locally=lambda stage_input, cache: None), 1, client=client)

    assert result.output == 2
    client.invoke.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_stage_parse_failure_becomes_stage_failure():
    client = _client(_response('{"value": "many"}'))

    result = await run_stage(_spec(), 0, client=client)

    assert not result.success
    assert result.error.category == ErrorCategory.VALIDATION
    assert result.error.context["stage"] == "numbers"
    assert client.invoke.await_count == 1


@pytest.mark.asyncio
async def test_run_stage_regenerates_unusable_responses():
    client = _client(_response("I cannot answer that."), _response('{"value": 5}'))

    result = await run_stage(_spec(max_regenerations=1), 0, client=client)

    assert result.success
    assert result.output == 5
    assert client.invoke.await_count == 2
    assert result.metrics.prompt_tokens == 10


@pytest.mark.asyncio
async def test_run_stage_gives_up_after_regenerations():
    client = _client(_response("nope"), _response("still nope"))

    result = await run_stage(_spec(max_regenerations=1), 0, client=client)

    assert not result.success
    assert result.error.category == ErrorCategory.API
    assert result.error.message == "Could not parse the numbers response as JSON"


@pytest.mark.asyncio
async def test_run_stage_does_not_regenerate_transport_failures():
    client = _client(PipelineError(timeout_error("model timed out")))

    result = await run_stage(_spec(max_regenerations=3), 0, client=client)

    assert not result.success
    assert result.error.category == ErrorCategory.TIMEOUT
    assert client.invoke.await_count == 1


@pytest.mark.asyncio
async def test_run_stage_unexpected_exception_is_normalized():
    def explode(raw_text, stage_input, cache):
        raise KeyError("boom")

    result = await run_stage(_spec(parse_response=explode), 0, client=_client(_response("{}")))

    assert not result.success
    assert result.error.category == ErrorCategory.UNEXPECTED


@pytest.mark.asyncio
async def test_run_stage_propagates_cancellation():
    client = _client(asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await run_stage(_spec(), 0, client=client)


def test_parse_json_response_raises_retryable_api_error():
    with pytest.raises(PipelineError) as exc_info:
        parse_json_response("no json here", stage="moodboard")

    error = exc_info.value.error
    assert error.category == ErrorCategory.API
    assert error.retryable
    assert error.context["response_preview"] == "no json here"
