"""Reproducibility scoring for analysis results."""

from __future__ import annotations

from riskscope.domain.models import AnalysisResult
from riskscope.domain.values import ConsistencyMetadata

# Temperatures at or below this are treated as deterministic enough
_TEMPERATURE_ALLOWANCE = 0.2
_ATTEMPT_PENALTY = 5.0
_SEED_BONUS = 5.0


def consistency_score(temperature: float, attempts: int, has_seed: bool = True) -> float:
    """Score in [0, 100] estimating how reproducible a result is.

    Starts at 100, loses ``(t - 0.2) * 100`` above the temperature allowance
    and 5 points per retry, gains 5 points when a seed was embedded in the
    prompt, and is clamped to the valid range.
    """
    score = 100.0
    if temperature > _TEMPERATURE_ALLOWANCE:
        score -= (temperature - _TEMPERATURE_ALLOWANCE) * 100
    score -= _ATTEMPT_PENALTY * max(attempts - 1, 0)
    if has_seed:
        score += _SEED_BONUS
    return max(0.0, min(100.0, score))


def build_consistency(result: AnalysisResult, version: str = "") -> ConsistencyMetadata:
    """Derive :class:`ConsistencyMetadata` from a finished result."""
    metadata = result.metadata
    return ConsistencyMetadata(
        score=consistency_score(
            metadata.temperature,
            metadata.attempts_used,
            has_seed=metadata.fingerprint is not None,
        ),
        seed=metadata.fingerprint,
        temperature=metadata.temperature,
        attempts=metadata.attempts_used,
        produced_at=metadata.produced_at,
        version=version,
        used_fallback=metadata.used_fallback,
        from_cache=result.from_cache,
    )


def validate_consistency(first: AnalysisResult, second: AnalysisResult) -> bool:
    """Whether two results were produced for the same query and mode."""
    return (
        first.metadata.fingerprint == second.metadata.fingerprint
        and first.metadata.mode is second.metadata.mode
    )
