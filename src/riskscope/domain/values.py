"""Value objects for riskscope.

All types here are frozen dataclasses -- immutable, compared by value.
They describe queries, requests, raw provider replies, cache entries and
breaker snapshots that have no identity beyond their content.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .enums import AnalysisMode, CircuitStatus
from .models import AnalysisResult

# ---------------------------------------------------------------------------
# CompanyQuery
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompanyQuery:
    """A normalized, order-irrelevant set of company names.

    ``keys`` holds the case-folded comparison form, sorted; ``names`` holds
    the first-seen display form of each key, in the same order.  Build with
    :func:`riskscope.services.fingerprint.normalize_company_names`.
    """

    names: tuple[str, ...]
    keys: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.keys:
            raise ValueError("CompanyQuery requires at least one company name")
        if len(self.names) != len(self.keys):
            raise ValueError(
                f"names length ({len(self.names)}) and keys length "
                f"({len(self.keys)}) must match"
            )
        if any(not key for key in self.keys):
            raise ValueError("company names must not be blank")
        if len(set(self.keys)) != len(self.keys):
            raise ValueError("CompanyQuery keys must be unique")

    @property
    def size(self) -> int:
        return len(self.keys)

    @property
    def key_set(self) -> frozenset[str]:
        return frozenset(self.keys)


# ---------------------------------------------------------------------------
# AnalysisRequest
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChatMessage:
    """A single message in the request conversation."""

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class AnalysisRequest:
    """Everything a provider needs for one model call.  Built per attempt."""

    fingerprint: int
    company_names: tuple[str, ...]
    mode: AnalysisMode
    temperature: float
    model_id: str
    max_tokens: int
    system_prompt: str
    messages: tuple[ChatMessage, ...]

    def __post_init__(self) -> None:
        if not (0.0 <= self.temperature <= 2.0):
            raise ValueError(
                f"temperature must be in [0, 2], got {self.temperature}"
            )
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")
        if not self.messages:
            raise ValueError("AnalysisRequest requires at least one message")

    def with_model(self, model_id: str) -> AnalysisRequest:
        """Return a copy targeting *model_id* (providers fill in defaults)."""
        return AnalysisRequest(
            fingerprint=self.fingerprint,
            company_names=self.company_names,
            mode=self.mode,
            temperature=self.temperature,
            model_id=model_id,
            max_tokens=self.max_tokens,
            system_prompt=self.system_prompt,
            messages=self.messages,
        )

    def to_wire(self, include_system_message: bool = False) -> dict[str, Any]:
        """Provider wire body ``{model, max_tokens, temperature, messages}``.

        Anthropic takes the system prompt as a separate field; OpenAI-style
        endpoints expect it as the first message (``include_system_message``).
        """
        messages = [m.to_dict() for m in self.messages]
        if include_system_message and self.system_prompt:
            messages.insert(0, {"role": "system", "content": self.system_prompt})
        return {
            "model": self.model_id,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": messages,
        }


# ---------------------------------------------------------------------------
# RawModelResponse
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawModelResponse:
    """Unparsed provider reply, normalized to a single ``text`` field."""

    text: str
    http_status: int = 200
    provider_latency: float = 0.0  # seconds
    model: str = ""
    usage: Mapping[str, int] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Cache / breaker state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CacheEntry:
    fingerprint: int
    mode: AnalysisMode
    company_keys: frozenset[str]
    result: AnalysisResult
    cached_at: datetime


@dataclass(frozen=True)
class CircuitState:
    """Point-in-time snapshot of a circuit breaker."""

    consecutive_failures: int = 0
    last_failure_at: float = 0.0  # monotonic clock reading; 0 = never
    is_open: bool = False

    @property
    def status(self) -> CircuitStatus:
        return CircuitStatus.OPEN if self.is_open else CircuitStatus.CLOSED


# ---------------------------------------------------------------------------
# Consistency / outcome
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConsistencyMetadata:
    """Reproducibility bookkeeping returned alongside every result."""

    score: float
    seed: int
    temperature: float
    attempts: int
    produced_at: datetime
    version: str = ""
    used_fallback: bool = False
    from_cache: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 100.0:
            raise ValueError(f"score must be in [0, 100], got {self.score}")

    def format_report(self) -> str:
        return (
            f"Analysis ID: {self.seed} | Temperature: {self.temperature} "
            f"| Attempts: {self.attempts}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "seed": self.seed,
            "temperature": self.temperature,
            "attempts": self.attempts,
            "produced_at": self.produced_at.isoformat(),
            "version": self.version,
            "used_fallback": self.used_fallback,
            "from_cache": self.from_cache,
        }


@dataclass(frozen=True)
class AnalysisOutcome:
    """Return value of ``AnalysisOrchestrator.analyze``."""

    result: AnalysisResult
    consistency: ConsistencyMetadata

    @property
    def used_fallback(self) -> bool:
        return self.result.metadata.used_fallback

    @property
    def from_cache(self) -> bool:
        return self.result.from_cache
