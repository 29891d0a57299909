import asyncio

import pytest

from fitcoach.errors import (
    AIConfigurationError,
    AIErrorKind,
    ContentRejectedError,
    ProviderError,
    QuotaExceededError,
    ServiceBusyError,
    UnknownAIError,
)
from fitcoach.resilience import classify_provider_error, invoke_with_retry, to_service_error


OVERLOADED = "[503 Service Unavailable] The model is overloaded. Please try again later."


class Recorder:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds):
        sleeps.append(seconds)

    return _sleep


@pytest.mark.parametrize(
    "message,expected",
    [
        (OVERLOADED, AIErrorKind.SERVICE_BUSY),
        ("Error fetching from Gemini: [503 ] upstream", AIErrorKind.SERVICE_BUSY),
        ("[400 INVALID_ARGUMENT] API key not valid. Please pass a valid API key.", AIErrorKind.AUTH_CONFIG),
        ("API_KEY_INVALID", AIErrorKind.AUTH_CONFIG),
        ("[429 RESOURCE_EXHAUSTED] You exceeded your current quota.", AIErrorKind.QUOTA_EXCEEDED),
        ("Candidate was blocked due to SAFETY", AIErrorKind.CONTENT_REJECTED),
        ("Prompt was blocked due to PROHIBITED_CONTENT", AIErrorKind.CONTENT_REJECTED),
        ("[400 INVALID_ARGUMENT] Unable to process input image.", AIErrorKind.UNKNOWN),
        ("", AIErrorKind.UNKNOWN),
    ],
)
def test_classify_provider_error_messages(message, expected):
    assert classify_provider_error(message) is expected


def test_classify_prefers_status_code():
    assert classify_provider_error("something odd", status_code=503) is AIErrorKind.SERVICE_BUSY
    assert classify_provider_error("something odd", status_code=403) is AIErrorKind.AUTH_CONFIG
    assert classify_provider_error("something odd", status_code=429) is AIErrorKind.QUOTA_EXCEEDED


def test_returns_value_after_transient_failures(sleeps, fake_sleep):
    call = Recorder(ProviderError(OVERLOADED), ProviderError(OVERLOADED), "ok")

    result = run(invoke_with_retry(call, max_retries=3, initial_delay_ms=2000, sleep=fake_sleep))

    assert result == "ok"
    assert call.calls == 3
    assert sleeps == [2.0, 4.0]


def test_non_transient_error_is_not_retried(sleeps, fake_sleep):
    call = Recorder(ProviderError("API key not valid"), "never")

    with pytest.raises(AIConfigurationError) as excinfo:
        run(invoke_with_retry(call, max_retries=3, initial_delay_ms=2000, sleep=fake_sleep))

    assert call.calls == 1
    assert sleeps == []
    assert excinfo.value.user_message == "Service configuration error. Please contact support."


@pytest.mark.parametrize(
    "message,error_type",
    [
        ("You exceeded your current quota", QuotaExceededError),
        ("Candidate was blocked due to SAFETY", ContentRejectedError),
    ],
)
def test_other_fatal_errors_make_one_attempt(message, error_type, fake_sleep):
    call = Recorder(ProviderError(message))

    with pytest.raises(error_type):
        run(invoke_with_retry(call, sleep=fake_sleep))

    assert call.calls == 1


def test_busy_until_exhausted_raises_service_busy(sleeps, fake_sleep):
    call = Recorder(*[ProviderError(OVERLOADED)] * 3)

    with pytest.raises(ServiceBusyError) as excinfo:
        run(invoke_with_retry(call, max_retries=3, initial_delay_ms=2000, sleep=fake_sleep))

    assert call.calls == 3
    assert sleeps == [2.0, 4.0]
    assert excinfo.value.detail == OVERLOADED
    assert "busy" in excinfo.value.user_message


def test_fallback_used_when_primary_is_busy(sleeps, fake_sleep):
    primary = Recorder(ProviderError(OVERLOADED))
    fallback = Recorder("from fallback")

    result = run(invoke_with_retry(primary, fallback, sleep=fake_sleep))

    assert result == "from fallback"
    assert primary.calls == 1
    assert fallback.calls == 1
    assert sleeps == []


def test_fallback_not_used_for_non_busy_errors(fake_sleep):
    primary = Recorder(ProviderError("You exceeded your current quota"))
    fallback = Recorder("from fallback")

    with pytest.raises(QuotaExceededError):
        run(invoke_with_retry(primary, fallback, sleep=fake_sleep))

    assert fallback.calls == 0


def test_busy_primary_and_fallback_retry_both(sleeps, fake_sleep):
    primary = Recorder(ProviderError(OVERLOADED), "primary recovered")
    fallback = Recorder(ProviderError(OVERLOADED))

    result = run(invoke_with_retry(primary, fallback, initial_delay_ms=1000, sleep=fake_sleep))

    assert result == "primary recovered"
    assert primary.calls == 2
    assert fallback.calls == 1
    assert sleeps == [1.0]


def test_unknown_error_keeps_first_line_of_message(fake_sleep):
    call = Recorder(ProviderError("[400 INVALID_ARGUMENT] Unable to process input image.\ntrace line"))

    with pytest.raises(UnknownAIError) as excinfo:
        run(invoke_with_retry(call, sleep=fake_sleep))

    assert excinfo.value.user_message == (
        "The AI request failed: [400 INVALID_ARGUMENT] Unable to process input image."
    )
    assert "trace line" not in excinfo.value.user_message


def test_blank_unknown_error_message_gets_placeholder():
    error = to_service_error(ProviderError("   \n  "))

    assert isinstance(error, UnknownAIError)
    assert error.user_message == "The AI request failed: unknown error"
