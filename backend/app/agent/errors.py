"""
Error taxonomy shared by every pipeline stage.

Failures are normalized once into an immutable `AppError` and travel by value
across stage boundaries. Inside a stage the same value may be raised wrapped in
`PipelineError`; `run_stage` converts it back into a `StageFailure`.
"""
import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

import openai
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorCategory(str, Enum):
    NETWORK = "network"
    DATABASE = "database"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    STORAGE = "storage"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    VALIDATION = "validation"
    BUSINESS_LOGIC = "business_logic"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    API = "api"
    LLM_API = "llm_api"
    EXTERNAL = "external"
    USER_INPUT = "user_input"
    RENDERING = "rendering"
    SVG = "svg"
    SVG_PARSING = "svg_parsing"
    SVG_VALIDATION = "svg_validation"
    SVG_RENDERING = "svg_rendering"
    INTERNAL = "internal"
    UNEXPECTED = "unexpected"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ErrorCode(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    INVALID_INPUT = "invalid_input"
    AUTHENTICATION_FAILED = "authentication_failed"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    API_ERROR = "api_error"
    LLM_API_ERROR = "llm_api_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"
    DATABASE_ERROR = "database_error"
    STORAGE_ERROR = "storage_error"
    BUSINESS_RULE_VIOLATION = "business_rule_violation"
    RENDERING_ERROR = "rendering_error"
    SVG_ERROR = "svg_error"
    SVG_PARSING_ERROR = "svg_parsing_error"
    SVG_VALIDATION_ERROR = "svg_validation_error"
    SVG_RENDERING_ERROR = "svg_rendering_error"
    INTERNAL_ERROR = "internal_error"
    UNEXPECTED_ERROR = "unexpected_error"
    UNKNOWN_ERROR = "unknown_error"


# category -> (default severity, HTTP-equivalent status, stable code)
CATEGORY_DEFAULTS: dict[ErrorCategory, tuple[ErrorSeverity, int, ErrorCode]] = {
    ErrorCategory.NETWORK: (ErrorSeverity.ERROR, 502, ErrorCode.NETWORK_ERROR),
    ErrorCategory.DATABASE: (ErrorSeverity.ERROR, 500, ErrorCode.DATABASE_ERROR),
    ErrorCategory.AUTHENTICATION: (ErrorSeverity.ERROR, 401, ErrorCode.AUTHENTICATION_FAILED),
    ErrorCategory.AUTHORIZATION: (ErrorSeverity.ERROR, 403, ErrorCode.FORBIDDEN),
    ErrorCategory.STORAGE: (ErrorSeverity.ERROR, 500, ErrorCode.STORAGE_ERROR),
    ErrorCategory.RATE_LIMIT: (ErrorSeverity.WARNING, 429, ErrorCode.RATE_LIMITED),
    ErrorCategory.TIMEOUT: (ErrorSeverity.WARNING, 504, ErrorCode.TIMEOUT),
    ErrorCategory.RESOURCE_EXHAUSTED: (ErrorSeverity.ERROR, 503, ErrorCode.SERVICE_UNAVAILABLE),
    ErrorCategory.VALIDATION: (ErrorSeverity.WARNING, 400, ErrorCode.VALIDATION_FAILED),
    ErrorCategory.BUSINESS_LOGIC: (ErrorSeverity.ERROR, 500, ErrorCode.BUSINESS_RULE_VIOLATION),
    ErrorCategory.NOT_FOUND: (ErrorSeverity.WARNING, 404, ErrorCode.NOT_FOUND),
    ErrorCategory.CONFLICT: (ErrorSeverity.WARNING, 409, ErrorCode.CONFLICT),
    ErrorCategory.API: (ErrorSeverity.ERROR, 502, ErrorCode.API_ERROR),
    ErrorCategory.LLM_API: (ErrorSeverity.ERROR, 502, ErrorCode.LLM_API_ERROR),
    ErrorCategory.EXTERNAL: (ErrorSeverity.ERROR, 502, ErrorCode.EXTERNAL_SERVICE_ERROR),
    ErrorCategory.USER_INPUT: (ErrorSeverity.INFO, 400, ErrorCode.INVALID_INPUT),
    ErrorCategory.RENDERING: (ErrorSeverity.ERROR, 500, ErrorCode.RENDERING_ERROR),
    ErrorCategory.SVG: (ErrorSeverity.ERROR, 422, ErrorCode.SVG_ERROR),
    ErrorCategory.SVG_PARSING: (ErrorSeverity.ERROR, 422, ErrorCode.SVG_PARSING_ERROR),
    ErrorCategory.SVG_VALIDATION: (ErrorSeverity.ERROR, 422, ErrorCode.SVG_VALIDATION_ERROR),
    ErrorCategory.SVG_RENDERING: (ErrorSeverity.ERROR, 422, ErrorCode.SVG_RENDERING_ERROR),
    ErrorCategory.INTERNAL: (ErrorSeverity.FATAL, 500, ErrorCode.INTERNAL_ERROR),
    ErrorCategory.UNEXPECTED: (ErrorSeverity.FATAL, 500, ErrorCode.UNEXPECTED_ERROR),
    ErrorCategory.UNKNOWN: (ErrorSeverity.ERROR, 500, ErrorCode.UNKNOWN_ERROR),
}

RETRYABLE_CATEGORIES: frozenset[ErrorCategory] = frozenset(
    {
        ErrorCategory.NETWORK,
        ErrorCategory.TIMEOUT,
        ErrorCategory.RATE_LIMIT,
        ErrorCategory.API,
        ErrorCategory.LLM_API,
        ErrorCategory.EXTERNAL,
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _request_id() -> str:
    return uuid.uuid4().hex[:12]


class AppError(BaseModel):
    """Normalized, immutable description of a single failure."""
    model_config = ConfigDict(frozen=True)

    category: ErrorCategory
    severity: ErrorSeverity
    code: ErrorCode
    status: int
    message: str
    retryable: bool
    timestamp: datetime = Field(default_factory=_utcnow)
    request_id: str = Field(default_factory=_request_id)
    context: dict[str, Any] = Field(default_factory=dict)
    cause: str | None = None

    def with_context(self, **extra: Any) -> "AppError":
        """Return a copy with `extra` merged into the context."""
        if not extra:
            return self
        return self.model_copy(update={"context": {**self.context, **extra}})


class PipelineError(Exception):
    """Carries an `AppError` through code that signals failure by raising."""

    def __init__(self, error: AppError):
        super().__init__(error.message)
        self.error = error


def create_app_error(
    error: Any,
    *,
    category: ErrorCategory | None = None,
    message: str | None = None,
    code: ErrorCode | None = None,
    severity: ErrorSeverity | None = None,
    status: int | None = None,
    retryable: bool | None = None,
    context: dict[str, Any] | None = None,
) -> AppError:
    """
    Build an AppError from any failure value: an exception, a message string,
    an existing AppError or a PipelineError. Unset fields fall back to the
    defaults of the resolved category.
    """
    if isinstance(error, PipelineError):
        error = error.error

    if isinstance(error, AppError):
        overrides = {
            "category": category,
            "message": message,
            "code": code,
            "severity": severity,
            "status": status,
            "retryable": retryable,
        }
        update: dict[str, Any] = {key: value for key, value in overrides.items() if value is not None}
        if category is not None and category != error.category:
            default_severity, default_status, default_code = CATEGORY_DEFAULTS[category]
            update.setdefault("severity", default_severity)
            update.setdefault("status", default_status)
            update.setdefault("code", default_code)
            update.setdefault("retryable", category in RETRYABLE_CATEGORIES)
        if context:
            update["context"] = {**error.context, **context}
        return error.model_copy(update=update) if update else error

    cause: str | None = None
    if isinstance(error, BaseException):
        base_message = str(error) or type(error).__name__
        cause = f"{type(error).__name__}: {error}"
    elif isinstance(error, str) and error:
        base_message = error
    else:
        base_message = "An unexpected error occurred"
        cause = repr(error) if error is not None else None

    resolved_category = category or ErrorCategory.UNKNOWN
    default_severity, default_status, default_code = CATEGORY_DEFAULTS[resolved_category]
    return AppError(
        category=resolved_category,
        severity=severity or default_severity,
        code=code or default_code,
        status=status or default_status,
        message=message or base_message,
        retryable=(resolved_category in RETRYABLE_CATEGORIES) if retryable is None else retryable,
        context=dict(context or {}),
        cause=cause,
    )


def _classify_exception(exc: BaseException) -> tuple[ErrorCategory, str | None]:
    # APITimeoutError subclasses APIConnectionError, so it has to be checked first.
    if isinstance(exc, openai.APITimeoutError):
        return ErrorCategory.TIMEOUT, "The model request timed out"
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return ErrorCategory.TIMEOUT, "The operation timed out"
    if isinstance(exc, openai.APIConnectionError):
        return ErrorCategory.NETWORK, "Could not connect to the model provider"
    if isinstance(exc, openai.RateLimitError):
        return ErrorCategory.RATE_LIMIT, "Rate limit exceeded by the model provider"
    if isinstance(exc, openai.AuthenticationError):
        return ErrorCategory.AUTHENTICATION, "Authentication with the model provider failed. Check LLM_API_KEY."
    if isinstance(exc, openai.PermissionDeniedError):
        return ErrorCategory.AUTHORIZATION, "The model provider refused the request"
    if isinstance(exc, openai.NotFoundError):
        return ErrorCategory.NOT_FOUND, "The requested model is not available or does not exist"
    if isinstance(exc, (openai.BadRequestError, openai.UnprocessableEntityError)):
        return ErrorCategory.VALIDATION, None
    if isinstance(exc, openai.APIStatusError):
        return ErrorCategory.LLM_API, None
    if isinstance(exc, ValidationError):
        return ErrorCategory.VALIDATION, f"Response failed schema validation ({exc.error_count()} error(s))"
    return ErrorCategory.UNEXPECTED, None


def normalize_error(exc: BaseException | AppError, context: dict[str, Any] | None = None) -> AppError:
    """Map any raised value onto the taxonomy."""
    if isinstance(exc, PipelineError):
        return exc.error.with_context(**(context or {}))
    if isinstance(exc, AppError):
        return exc.with_context(**(context or {}))

    category, message = _classify_exception(exc)
    merged_context = dict(context or {})
    if isinstance(exc, ValidationError):
        merged_context["errors"] = [
            {"loc": ".".join(str(part) for part in item.get("loc", ())), "msg": item.get("msg", "")}
            for item in exc.errors()
        ]
    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int):
        merged_context.setdefault("provider_status", status_code)
    return create_app_error(exc, category=category, message=message, context=merged_context)


def validation_error(message: str, **context: Any) -> AppError:
    return create_app_error(message, category=ErrorCategory.VALIDATION, context=context)


def network_error(message: str, **context: Any) -> AppError:
    return create_app_error(message, category=ErrorCategory.NETWORK, context=context)


def timeout_error(message: str, **context: Any) -> AppError:
    return create_app_error(message, category=ErrorCategory.TIMEOUT, context=context)


def rate_limit_error(message: str, **context: Any) -> AppError:
    return create_app_error(message, category=ErrorCategory.RATE_LIMIT, context=context)


def svg_error(message: str, *, category: ErrorCategory = ErrorCategory.SVG_VALIDATION, **context: Any) -> AppError:
    return create_app_error(message, category=category, context=context)


def llm_api_error(message: str, *, retryable: bool | None = None, **context: Any) -> AppError:
    return create_app_error(message, category=ErrorCategory.LLM_API, retryable=retryable, context=context)


def api_error(message: str, *, retryable: bool | None = None, **context: Any) -> AppError:
    return create_app_error(message, category=ErrorCategory.API, retryable=retryable, context=context)


def internal_error(message: str, **context: Any) -> AppError:
    return create_app_error(message, category=ErrorCategory.INTERNAL, context=context)


def unexpected_error(error: Any, **context: Any) -> AppError:
    return create_app_error(error, category=ErrorCategory.UNEXPECTED, context=context)


def public_error(error: AppError, *, debug: bool | None = None) -> dict[str, Any]:
    """User-facing payload. Context and cause are only exposed in debug mode."""
    show_internals = settings.debug_errors if debug is None else debug
    payload: dict[str, Any] = {
        "message": error.message,
        "code": error.code.value,
        "category": error.category.value,
        "status": error.status,
        "retryable": error.retryable,
        "request_id": error.request_id,
        "timestamp": error.timestamp.isoformat(),
    }
    if show_internals:
        payload["context"] = error.context
        payload["cause"] = error.cause
    return payload


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Attempt %s failed (%s). Retrying in %.2fs...",
        retry_state.attempt_number,
        exc,
        delay,
    )


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    initial_delay: float = 0.5,
    backoff_factor: float = 2.0,
    max_delay: float | None = None,
    retry_condition: Callable[[AppError], bool] | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    context: dict[str, Any] | None = None,
) -> T:
    """
    Run `operation`, retrying while the current failure is retryable (or while
    `retry_condition` accepts it). The n-th retry waits
    `initial_delay * backoff_factor ** (n - 1)` seconds, capped at `max_delay`.
    On exhaustion the last normalized error is raised as a PipelineError.
    """
    attempts = 0

    async def attempt() -> T:
        nonlocal attempts
        attempts += 1
        return await operation()

    def should_retry(exc: BaseException) -> bool:
        if isinstance(exc, asyncio.CancelledError):
            return False
        error = normalize_error(exc)
        if retry_condition is not None:
            return retry_condition(error)
        return error.retryable

    wait_kwargs: dict[str, float] = {"multiplier": initial_delay, "exp_base": backoff_factor, "min": 0}
    if max_delay is not None:
        wait_kwargs["max"] = max_delay

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(0, max_retries) + 1),
        wait=wait_exponential(**wait_kwargs),
        retry=retry_if_exception(should_retry),
        sleep=sleep,
        before_sleep=_log_retry,
        reraise=True,
    )
    try:
        return await retrying(attempt)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        error = normalize_error(exc, context={**(context or {}), "attempts": attempts})
        raise PipelineError(error) from exc
