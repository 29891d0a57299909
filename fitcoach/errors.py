from enum import Enum


class AIErrorKind(str, Enum):
    SERVICE_BUSY = "service_busy"
    AUTH_CONFIG = "auth_config"
    QUOTA_EXCEEDED = "quota_exceeded"
    CONTENT_REJECTED = "content_rejected"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


class ProviderError(Exception):
    """Raw failure reported by the AI provider, before classification."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AIServiceError(Exception):
    kind = AIErrorKind.UNKNOWN
    default_message = "The AI request failed. Please try again."

    def __init__(self, user_message: str | None = None, detail: str | None = None):
        self.user_message = user_message or self.default_message
        self.detail = detail
        super().__init__(detail or self.user_message)


class ServiceBusyError(AIServiceError):
    kind = AIErrorKind.SERVICE_BUSY
    default_message = "The AI service is currently busy. Please try again in a few moments."


class AIConfigurationError(AIServiceError):
    kind = AIErrorKind.AUTH_CONFIG
    default_message = "Service configuration error. Please contact support."


class MissingCredentialsError(AIConfigurationError):
    pass


class QuotaExceededError(AIServiceError):
    kind = AIErrorKind.QUOTA_EXCEEDED
    default_message = "Service limit reached. Please try again later."


class ContentRejectedError(AIServiceError):
    kind = AIErrorKind.CONTENT_REJECTED
    default_message = (
        "The request was blocked by the AI safety filters. "
        "Please try a different image or rephrase your message."
    )


class MalformedUpstreamResponseError(AIServiceError):
    kind = AIErrorKind.MALFORMED_RESPONSE
    default_message = "The AI returned a response we could not read. Please try again."


class UnknownAIError(AIServiceError):
    kind = AIErrorKind.UNKNOWN


ERRORS_BY_KIND: dict[AIErrorKind, type[AIServiceError]] = {
    AIErrorKind.SERVICE_BUSY: ServiceBusyError,
    AIErrorKind.AUTH_CONFIG: AIConfigurationError,
    AIErrorKind.QUOTA_EXCEEDED: QuotaExceededError,
    AIErrorKind.CONTENT_REJECTED: ContentRejectedError,
    AIErrorKind.MALFORMED_RESPONSE: MalformedUpstreamResponseError,
    AIErrorKind.UNKNOWN: UnknownAIError,
}
