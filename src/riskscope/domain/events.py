"""Telemetry events emitted by the analysis orchestrator.

Every event is a frozen dataclass inheriting from ``DomainEvent``.  Events
are the integration point for operability: the orchestrator publishes them
at each state transition; listeners (metrics exporters, the persistence
layer, tests) subscribe on the event bus.

All events carry a ``timestamp`` and a ``source_id`` identifying the
emitting component.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .enums import AnalysisMode, AssessmentStatus

# ---------------------------------------------------------------------------
# Base event
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    timestamp: float = field(default_factory=time.time)
    source_id: str = ""


# ---------------------------------------------------------------------------
# Request lifecycle
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalysisRequested(DomainEvent):
    fingerprint: int = 0
    mode: AnalysisMode | None = None
    company_count: int = 0
    assessment_id: str | None = None


@dataclass(frozen=True)
class AnalysisCompleted(DomainEvent):
    """An analysis produced a result (model-backed, cached, or fallback)."""

    fingerprint: int = 0
    attempts_used: int = 0
    used_fallback: bool = False
    from_cache: bool = False
    consistency_score: float = 0.0
    duration_ms: float = 0.0


@dataclass(frozen=True)
class AnalysisFailed(DomainEvent):
    """An analysis ended with an error surfaced to the caller."""

    fingerprint: int = 0
    error_type: str = ""
    error_message: str = ""


@dataclass(frozen=True)
class StatusChanged(DomainEvent):
    assessment_id: str = ""
    status: AssessmentStatus | None = None


@dataclass(frozen=True)
class SingleFlightJoined(DomainEvent):
    """A caller attached to an identical analysis already in flight."""

    fingerprint: int = 0


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CacheHit(DomainEvent):
    fingerprint: int = 0
    cache_key: str = ""


@dataclass(frozen=True)
class CacheMiss(DomainEvent):
    fingerprint: int = 0
    cache_key: str = ""


# ---------------------------------------------------------------------------
# Circuit breaker
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CircuitOpened(DomainEvent):
    consecutive_failures: int = 0


@dataclass(frozen=True)
class CircuitClosed(DomainEvent):
    reason: str = ""  # "success" or "cooldown"


@dataclass(frozen=True)
class CircuitRejected(DomainEvent):
    """A request was refused because the breaker is open."""

    fingerprint: int = 0
    consecutive_failures: int = 0


# ---------------------------------------------------------------------------
# Attempts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AttemptStarted(DomainEvent):
    fingerprint: int = 0
    attempt: int = 0
    max_attempts: int = 0


@dataclass(frozen=True)
class AttemptSucceeded(DomainEvent):
    fingerprint: int = 0
    attempt: int = 0
    provider_latency: float = 0.0


@dataclass(frozen=True)
class AttemptFailed(DomainEvent):
    fingerprint: int = 0
    attempt: int = 0
    error_type: str = ""
    error_message: str = ""
    will_retry: bool = False
    backoff_seconds: float = 0.0


@dataclass(frozen=True)
class FallbackUsed(DomainEvent):
    fingerprint: int = 0
    attempts: int = 0
    last_error_type: str = ""
    last_error_message: str = ""


@dataclass(frozen=True)
class ZoneMismatchDetected(DomainEvent):
    """Model-reported Z-Score zone disagrees with the documented thresholds."""

    fingerprint: int = 0
    company: str = ""
    score: float = 0.0
    reported_zone: str = ""
    expected_zone: str = ""
