import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from openai import AsyncOpenAI

from app.agent.errors import AppError, ErrorCategory, PipelineError, llm_api_error, retry_with_backoff
from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMResponse:
    text: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    attempts: int = 1


def _token_count(usage: Any, name: str) -> int:
    value = getattr(usage, name, 0) if usage is not None else 0
    return value if isinstance(value, int) else 0


class LLMClient:
    """Provider-agnostic LLM client speaking the OpenAI chat completions API."""

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.model_name = model_name or settings.MODEL_DEFAULT
        self._sleep = sleep

        self.client = AsyncOpenAI(
            base_url=base_url or settings.LLM_BASE_URL,
            api_key=api_key or settings.LLM_API_KEY,
        )

    def _chat_completion_kwargs(
        self, model_name: str, *, temperature: float | None, max_tokens: int | None
    ) -> dict:
        """Build provider/model-compatible kwargs for chat completions."""
        kwargs: dict[str, Any] = {}
        # GPT-5 family rejects non-default temperature values and the legacy max_tokens name.
        if model_name.lower().startswith("gpt-5"):
            if max_tokens is not None:
                kwargs["max_completion_tokens"] = max_tokens
            return kwargs
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        return kwargs

    async def _complete(
        self,
        model_name: str,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float | None,
        max_tokens: int | None,
    ) -> LLMResponse:
        logger.info("Issuing request to model %s...", model_name)
        response = await asyncio.wait_for(
            self.client.chat.completions.create(
                model=model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                **self._chat_completion_kwargs(model_name, temperature=temperature, max_tokens=max_tokens),
            ),
            timeout=settings.LLM_TIMEOUT_SECONDS,
        )

        if not getattr(response, "choices", None):
            logger.error("Received 0 choices from %s: %s", model_name, response)
            raise PipelineError(llm_api_error(f"Provider {model_name} returned no output", model=model_name))

        content = response.choices[0].message.content
        text = content.strip() if isinstance(content, str) else ""
        if not text:
            raise PipelineError(llm_api_error(f"Model {model_name} returned empty content", model=model_name))

        usage = getattr(response, "usage", None)
        logger.info("Successfully received response from %s.", model_name)
        return LLMResponse(
            text=text,
            model=model_name,
            prompt_tokens=_token_count(usage, "prompt_tokens"),
            completion_tokens=_token_count(usage, "completion_tokens"),
        )

    async def invoke(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        fallback_models: Sequence[str] = (),
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Send one chat completion, retrying transient failures on each model and
        falling back through `fallback_models` in order. Raises PipelineError
        with the last failure once every model has been tried.
        """
        models = list(dict.fromkeys(name for name in (model or self.model_name, *fallback_models) if name))
        models_tried: list[str] = []
        last_error: AppError | None = None

        for index, model_name in enumerate(models):
            models_tried.append(model_name)
            attempts = 0

            async def call() -> LLMResponse:
                nonlocal attempts
                attempts += 1
                return await self._complete(
                    model_name,
                    system_prompt,
                    user_prompt,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )

            try:
                response = await retry_with_backoff(
                    call,
                    max_retries=settings.LLM_MAX_RETRIES,
                    initial_delay=settings.LLM_RETRY_INITIAL_DELAY,
                    backoff_factor=settings.LLM_RETRY_BACKOFF,
                    max_delay=settings.LLM_RETRY_MAX_DELAY,
                    sleep=self._sleep,
                    context={"model": model_name},
                )
                return replace(response, attempts=attempts)
            except PipelineError as exc:
                last_error = exc.error
                if last_error.category == ErrorCategory.AUTHENTICATION:
                    logger.error("Authentication failed for %s; not trying other models.", model_name)
                    break
                if index + 1 < len(models):
                    logger.warning(
                        "Model %s failed after %s attempt(s): %s. Falling back to %s.",
                        model_name,
                        attempts,
                        last_error.message,
                        models[index + 1],
                    )

        if last_error is None:
            last_error = llm_api_error("No model configured for this request", retryable=False)
        logger.error("All models failed (%s): %s", ", ".join(models_tried), last_error.message)
        raise PipelineError(last_error.with_context(models_tried=models_tried))
