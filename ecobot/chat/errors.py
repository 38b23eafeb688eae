"""Classified chat errors with stable user-facing messages."""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """Fixed set of categories surfaced to callers."""

    INVALID_INPUT = "InvalidInput"
    ALREADY_IN_PROGRESS = "AlreadyInProgress"
    AUTH_ERROR = "AuthError"
    PERMISSION_ERROR = "PermissionError"
    RATE_LIMITED = "RateLimited"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    NETWORK_ERROR = "NetworkError"
    CONTENT_BLOCKED = "ContentBlocked"
    UNSUPPORTED_PLATFORM = "UnsupportedPlatform"
    UNKNOWN = "Unknown"


class ChatError(Exception):
    """Base class for every error the chat core surfaces."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    user_message: str = "Something went wrong."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(self.user_message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(category={self.category.value!r}, detail={self.detail!r})"


class InvalidInputError(ChatError):
    category = ErrorCategory.INVALID_INPUT
    user_message = "Message cannot be empty."


class AlreadyInProgressError(ChatError):
    category = ErrorCategory.ALREADY_IN_PROGRESS
    user_message = "A message is already being processed. Please wait for the reply."


class AuthError(ChatError):
    category = ErrorCategory.AUTH_ERROR
    user_message = "Invalid API key. Please verify your API key is correct."


class PermissionDeniedError(ChatError):
    category = ErrorCategory.PERMISSION_ERROR
    user_message = (
        "Permission denied. Please check your API key permissions and billing status."
    )


class RateLimitedError(ChatError):
    category = ErrorCategory.RATE_LIMITED
    user_message = "API rate limit exceeded. Please wait a moment and try again."


class ServiceUnavailableError(ChatError):
    category = ErrorCategory.SERVICE_UNAVAILABLE
    user_message = (
        "The AI service is temporarily unavailable. Please try again in a few moments."
    )


class NetworkError(ChatError):
    category = ErrorCategory.NETWORK_ERROR
    user_message = "Network error. Please check your internet connection."


class ContentBlockedError(ChatError):
    category = ErrorCategory.CONTENT_BLOCKED
    user_message = (
        "The response was blocked by the provider's safety filters. "
        "Please rephrase your message."
    )


class UnsupportedPlatformError(ChatError):
    category = ErrorCategory.UNSUPPORTED_PLATFORM
    user_message = "Speech recognition is not supported on this platform."


class UnknownChatError(ChatError):
    """Fallback category; carries the original message verbatim."""

    category = ErrorCategory.UNKNOWN

    def __init__(self, detail: Optional[str] = None):
        self.user_message = f"AI service error: {detail or 'Unknown error occurred'}"
        super().__init__(detail)


ERRORS_BY_CATEGORY = {
    cls.category: cls
    for cls in (
        InvalidInputError,
        AlreadyInProgressError,
        AuthError,
        PermissionDeniedError,
        RateLimitedError,
        ServiceUnavailableError,
        NetworkError,
        ContentBlockedError,
        UnsupportedPlatformError,
        UnknownChatError,
    )
}


def error_for(category: ErrorCategory, detail: Optional[str] = None) -> ChatError:
    """Build the exception for a category."""
    return ERRORS_BY_CATEGORY[category](detail)
