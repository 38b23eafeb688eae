"""
Map raw completion failures onto the fixed error categories.

Checks run from most specific to least specific and stop at the first match:
HTTP status, then structured transport signals, then substring heuristics on
the error text. Text matching is best-effort; providers do not publish a
structured error schema for every failure.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import structlog

from .errors import ChatError, ErrorCategory, error_for
from ..providers.completion.base import CompletionFailure


logger = structlog.get_logger()


@dataclass(frozen=True)
class ClassificationRule:
    """One matching rule; any populated field that matches triggers it."""

    category: ErrorCategory
    statuses: Tuple[int, ...] = ()
    codes: Tuple[str, ...] = ()
    substrings: Tuple[str, ...] = ()

    def matches_status(self, status: Optional[int]) -> bool:
        return status is not None and status in self.statuses

    def matches_code(self, code: Optional[str]) -> bool:
        return code is not None and code.upper() in self.codes

    def matches_text(self, text: str) -> bool:
        return any(fragment in text for fragment in self.substrings)


STATUS_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(ErrorCategory.AUTH_ERROR, statuses=(401,)),
    ClassificationRule(ErrorCategory.PERMISSION_ERROR, statuses=(403,)),
    ClassificationRule(ErrorCategory.RATE_LIMITED, statuses=(429,)),
    ClassificationRule(ErrorCategory.SERVICE_UNAVAILABLE, statuses=(502, 503, 504)),
)

CODE_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(ErrorCategory.NETWORK_ERROR, codes=("NETWORK_ERROR", "ECONNREFUSED", "ENOTFOUND")),
    ClassificationRule(ErrorCategory.PERMISSION_ERROR, codes=("PERMISSION_DENIED",)),
    ClassificationRule(ErrorCategory.RATE_LIMITED, codes=("RESOURCE_EXHAUSTED", "RATE_LIMIT_EXCEEDED")),
)

OPENROUTER_TEXT_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        ErrorCategory.AUTH_ERROR,
        substrings=("api key", "invalid_api_key", "unauthorized", "no auth credentials"),
    ),
    ClassificationRule(
        ErrorCategory.PERMISSION_ERROR,
        substrings=("permission_denied", "permission denied", "forbidden"),
    ),
    ClassificationRule(
        ErrorCategory.RATE_LIMITED,
        substrings=("rate limit", "rate_limit", "quota", "too many requests"),
    ),
    ClassificationRule(
        ErrorCategory.SERVICE_UNAVAILABLE,
        substrings=("service unavailable", "unavailable", "overloaded"),
    ),
    ClassificationRule(
        ErrorCategory.NETWORK_ERROR,
        substrings=("network", "fetch", "connection", "timed out", "timeout"),
    ),
    ClassificationRule(
        ErrorCategory.CONTENT_BLOCKED,
        substrings=("safety", "moderation", "content_filter", "flagged"),
    ),
)

GEMINI_TEXT_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        ErrorCategory.AUTH_ERROR,
        substrings=("api_key", "api key", "unauthenticated"),
    ),
    ClassificationRule(
        ErrorCategory.PERMISSION_ERROR,
        substrings=("permission_denied", "permission denied"),
    ),
    ClassificationRule(
        ErrorCategory.RATE_LIMITED,
        substrings=("quota", "limit", "resource_exhausted", "resource exhausted"),
    ),
    ClassificationRule(
        ErrorCategory.SERVICE_UNAVAILABLE,
        substrings=("unavailable", "overloaded"),
    ),
    ClassificationRule(
        ErrorCategory.NETWORK_ERROR,
        substrings=("network", "fetch", "connection", "deadline exceeded", "timed out"),
    ),
    ClassificationRule(
        ErrorCategory.CONTENT_BLOCKED,
        substrings=("safety", "blocked", "prohibited content"),
    ),
)

TEXT_RULES_BY_PROVIDER = {
    "openrouter": OPENROUTER_TEXT_RULES,
    "gemini": GEMINI_TEXT_RULES,
}


class ErrorClassifier:
    """Deterministic, first-match-wins failure classifier."""

    def __init__(self, text_rules: Iterable[ClassificationRule] = OPENROUTER_TEXT_RULES):
        self.text_rules: List[ClassificationRule] = list(text_rules)

    @classmethod
    def for_provider(cls, provider_name: str) -> "ErrorClassifier":
        """Classifier with the text heuristics tuned for a provider."""
        return cls(TEXT_RULES_BY_PROVIDER.get(provider_name, OPENROUTER_TEXT_RULES))

    def categorize(self, failure: CompletionFailure) -> ErrorCategory:
        for rule in STATUS_RULES:
            if rule.matches_status(failure.status):
                return rule.category

        if failure.no_response:
            return ErrorCategory.NETWORK_ERROR
        if failure.blocked:
            return ErrorCategory.CONTENT_BLOCKED

        for rule in CODE_RULES:
            if rule.matches_code(failure.code):
                return rule.category

        text = (failure.message or "").lower()
        for rule in self.text_rules:
            if rule.matches_text(text):
                return rule.category

        return ErrorCategory.UNKNOWN

    def classify(self, failure: CompletionFailure) -> ChatError:
        """Convert a raw failure into its classified error."""
        category = self.categorize(failure)
        logger.debug(
            "Classified completion failure",
            category=category.value,
            status=failure.status,
            code=failure.code,
        )
        return error_for(category, failure.message)

    def classify_exception(self, exc: BaseException) -> ChatError:
        """Classify an arbitrary exception raised around a completion call."""
        if isinstance(exc, ChatError):
            return exc
        if isinstance(exc, CompletionFailure):
            return self.classify(exc)
        if isinstance(exc, (TimeoutError, ConnectionError)):
            return error_for(ErrorCategory.NETWORK_ERROR, str(exc) or type(exc).__name__)

        status = None
        for attr in ("status_code", "status", "code"):
            value = getattr(exc, attr, None)
            if isinstance(value, int) and not isinstance(value, bool):
                status = value
                break

        return self.classify(CompletionFailure(str(exc), status=status))
