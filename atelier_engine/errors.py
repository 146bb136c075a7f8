"""Provider failure taxonomy.

Every provider call site converts its own failure into a `ProviderError`
carrying one `ErrorCategory`. Callers decide fallback and user-facing text
from the category alone, never from message substrings.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class ErrorCategory(str, Enum):
    AUTHENTICATION_FAILURE = "authentication_failure"
    RATE_LIMITED = "rate_limited"
    INVALID_REQUEST = "invalid_request"
    UNSUPPORTED_MEDIA = "unsupported_media"
    SERVER_UNAVAILABLE = "server_unavailable"
    TRANSPORT_FAILURE = "transport_failure"
    NOT_CONFIGURED = "not_configured"
    NO_SELECTION = "no_selection"


class ProviderError(RuntimeError):
    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        *,
        status: int | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.status = status
        self.provider = provider


class Cancelled(Exception):
    """Raised when an operation observes its cancellation token."""


def classify_status(status: int | None) -> ErrorCategory:
    if status is None:
        return ErrorCategory.TRANSPORT_FAILURE
    if status in (401, 402, 403):
        return ErrorCategory.AUTHENTICATION_FAILURE
    if status == 415:
        return ErrorCategory.UNSUPPORTED_MEDIA
    if status == 429:
        return ErrorCategory.RATE_LIMITED
    if status >= 500:
        return ErrorCategory.SERVER_UNAVAILABLE
    if 400 <= status < 500:
        return ErrorCategory.INVALID_REQUEST
    return ErrorCategory.TRANSPORT_FAILURE


def categorize(exc: BaseException) -> ErrorCategory:
    category = getattr(exc, "category", None)
    if isinstance(category, ErrorCategory):
        return category
    if isinstance(exc, (ConnectionError, TimeoutError, ValueError)):
        return ErrorCategory.TRANSPORT_FAILURE
    return ErrorCategory.SERVER_UNAVAILABLE


def aggregate_category(categories: Iterable[ErrorCategory]) -> ErrorCategory:
    """Pick the category reported when a whole fallback chain failed.

    Credential problems are surfaced distinctly; anything else collapses
    into `SERVER_UNAVAILABLE` unless every attempt agreed on one category.
    """
    seen = list(categories)
    if not seen:
        return ErrorCategory.SERVER_UNAVAILABLE
    if all(category == seen[0] for category in seen):
        return seen[0]
    for category in (ErrorCategory.NOT_CONFIGURED, ErrorCategory.AUTHENTICATION_FAILURE):
        if category in seen:
            return category
    return ErrorCategory.SERVER_UNAVAILABLE


_TITLES: dict[ErrorCategory, str] = {
    ErrorCategory.AUTHENTICATION_FAILURE: "Authentication Error",
    ErrorCategory.RATE_LIMITED: "Rate Limit Exceeded",
    ErrorCategory.INVALID_REQUEST: "Invalid Request",
    ErrorCategory.UNSUPPORTED_MEDIA: "Unsupported Media",
    ErrorCategory.SERVER_UNAVAILABLE: "Service Unavailable",
    ErrorCategory.TRANSPORT_FAILURE: "Connection Error",
    ErrorCategory.NOT_CONFIGURED: "Configuration Error",
    ErrorCategory.NO_SELECTION: "No Image Selected",
}

_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.AUTHENTICATION_FAILURE: (
        "The provider rejected the API key. Verify the key is correct, has not expired, "
        "and that the account has sufficient credits."
    ),
    ErrorCategory.RATE_LIMITED: (
        "Too many requests were sent in a short time. Please wait a moment and try again."
    ),
    ErrorCategory.INVALID_REQUEST: (
        "The request was rejected as invalid. Try a simpler or more specific prompt."
    ),
    ErrorCategory.UNSUPPORTED_MEDIA: (
        "The image format is not supported. Please use a JPEG, PNG, or WebP image."
    ),
    ErrorCategory.SERVER_UNAVAILABLE: (
        "The generation service is temporarily unavailable. Please try again in a few minutes."
    ),
    ErrorCategory.TRANSPORT_FAILURE: (
        "I couldn't reach the service. Please check your internet connection and try again."
    ),
    ErrorCategory.NOT_CONFIGURED: (
        "No API key is configured for this service. Set VENICE_API_KEY (or OPENAI_API_KEY) "
        "in your environment or .env file."
    ),
    ErrorCategory.NO_SELECTION: (
        "This needs an image to work on. Type \"select image\" to choose one from the "
        "conversation, or upload a new image."
    ),
}


def user_title(category: ErrorCategory) -> str:
    return _TITLES[category]


def user_message(category: ErrorCategory) -> str:
    return _MESSAGES[category]
