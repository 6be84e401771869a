"""Domain exceptions for riskscope.

All domain-specific exceptions inherit from ``RiskScopeError`` so callers can
catch the full family with a single ``except`` clause when needed.

Only :class:`ConfigurationError` and :class:`CircuitOpenError` are meant to
reach the caller of an analysis; provider and parse failures are absorbed by
the retry loop and, on exhaustion, replaced by a fallback result.
"""

from __future__ import annotations

from typing import Any


class RiskScopeError(Exception):
    """Base exception for all riskscope errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class ConfigurationError(RiskScopeError):
    """Raised when required configuration (e.g. a provider API key) is missing.

    Fatal: never retried.
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        setting: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.setting = setting


class ProviderError(RiskScopeError):
    """Raised when the model endpoint answers non-2xx or cannot be reached.

    ``status`` is ``None`` for transport-level failures (connection refused,
    timeouts) where no HTTP response exists.
    """

    def __init__(
        self,
        message: str = "Model provider call failed",
        status: int | None = None,
        body: str = "",
        provider: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status = status
        self.body = body
        self.provider = provider


class ParseError(RiskScopeError):
    """Raised (or returned) when model text does not match the result schema."""

    def __init__(
        self,
        reason: str = "Unparseable model response",
        raw_snippet: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(reason, details)
        self.reason = reason
        self.raw_snippet = raw_snippet


class CircuitOpenError(RiskScopeError):
    """Fail-fast signal: the upstream model is considered degraded."""

    def __init__(
        self,
        message: str = "Analysis service temporarily degraded",
        consecutive_failures: int = 0,
        retry_after: float = 0.0,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.consecutive_failures = consecutive_failures
        self.retry_after = retry_after


class RetryExhaustedError(RiskScopeError):
    """Raised by the retry executor once every attempt has failed."""

    def __init__(
        self,
        message: str = "All attempts failed",
        attempts: int = 0,
        last_error: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.attempts = attempts
        self.last_error = last_error


class AnalysisCancelledError(RiskScopeError):
    """Raised when a caller-supplied cancellation signal aborts an analysis."""

    def __init__(
        self,
        message: str = "Analysis cancelled",
        attempts: int = 0,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.attempts = attempts
