import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .errors import ERRORS_BY_KIND, AIErrorKind, AIServiceError, ProviderError, UnknownAIError


logger = logging.getLogger(__name__)

T = TypeVar("T")

BUSY_MARKERS = ("overloaded", "503", "unavailable")
AUTH_MARKERS = ("api key", "api_key_invalid", "permission_denied", "unauthenticated")
QUOTA_MARKERS = ("quota", "resource_exhausted", "rate limit")
CONTENT_MARKERS = ("safety", "blocked", "prohibited_content", "blocklist")

MAX_UNKNOWN_DETAIL_LENGTH = 200


def classify_provider_error(message: str, status_code: int | None = None) -> AIErrorKind:
    """Map an opaque provider failure onto the closed error taxonomy.

    Status codes win when present; otherwise the message text is matched
    against known provider phrases.
    """
    if status_code == 503:
        return AIErrorKind.SERVICE_BUSY
    if status_code in (401, 403):
        return AIErrorKind.AUTH_CONFIG
    if status_code == 429:
        return AIErrorKind.QUOTA_EXCEEDED

    text = (message or "").lower()
    if any(marker in text for marker in BUSY_MARKERS):
        return AIErrorKind.SERVICE_BUSY
    if any(marker in text for marker in AUTH_MARKERS):
        return AIErrorKind.AUTH_CONFIG
    if any(marker in text for marker in QUOTA_MARKERS):
        return AIErrorKind.QUOTA_EXCEEDED
    if any(marker in text for marker in CONTENT_MARKERS):
        return AIErrorKind.CONTENT_REJECTED
    return AIErrorKind.UNKNOWN


def to_service_error(exc: ProviderError) -> AIServiceError:
    kind = classify_provider_error(exc.message, exc.status_code)
    if kind is AIErrorKind.UNKNOWN:
        first_line = ((exc.message or "").strip() or "unknown error").splitlines()[0]
        return UnknownAIError(
            f"The AI request failed: {first_line[:MAX_UNKNOWN_DETAIL_LENGTH]}",
            detail=exc.message,
        )
    return ERRORS_BY_KIND[kind](detail=exc.message)


def _is_busy(exc: ProviderError) -> bool:
    return classify_provider_error(exc.message, exc.status_code) is AIErrorKind.SERVICE_BUSY


async def invoke_with_retry(
    primary: Callable[[], Awaitable[T]],
    fallback: Callable[[], Awaitable[T]] | None = None,
    *,
    max_retries: int = 3,
    initial_delay_ms: int = 1000,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run a model call, retrying service-busy failures with exponential backoff.

    Each attempt calls ``primary``; when it fails as service-busy and a
    ``fallback`` is given, the fallback is tried within the same attempt.
    Busy failures wait ``initial_delay_ms * 2**attempt`` before the next
    attempt. Any other failure, or a busy failure on the last attempt, is
    raised as the matching :class:`AIServiceError`.
    """
    attempts = max(1, max_retries)
    last_error: ProviderError | None = None

    for attempt in range(attempts):
        try:
            try:
                return await primary()
            except ProviderError as exc:
                if fallback is None or not _is_busy(exc):
                    raise
                logger.info("Primary model busy (%s), switching to fallback model", exc.message)
                return await fallback()
        except ProviderError as exc:
            last_error = exc
            if _is_busy(exc) and attempt < attempts - 1:
                delay_ms = initial_delay_ms * (2**attempt)
                logger.warning(
                    "AI service busy on attempt %d/%d, retrying in %d ms",
                    attempt + 1,
                    attempts,
                    delay_ms,
                )
                await sleep(delay_ms / 1000)
                continue
            raise to_service_error(exc) from exc

    raise to_service_error(last_error or ProviderError("retries exhausted"))
