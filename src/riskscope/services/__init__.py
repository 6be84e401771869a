"""Services layer: the analysis pipeline and its collaborators."""

from riskscope.services.cache import CacheStats, ResultCache
from riskscope.services.circuit_breaker import CircuitBreaker
from riskscope.services.consistency import (
    build_consistency,
    consistency_score,
    validate_consistency,
)
from riskscope.services.fallback import build_fallback
from riskscope.services.fingerprint import (
    cache_key,
    fingerprint,
    normalize_company_names,
    normalize_name,
)
from riskscope.services.health import HealthReport, check_provider_health
from riskscope.services.orchestrator import AnalysisOrchestrator
from riskscope.services.parser import ParseOutcome, ResponseParser, strip_code_fence
from riskscope.services.prompts import PromptBuilder
from riskscope.services.retry import RetryExecutor

__all__ = [
    "AnalysisOrchestrator",
    "CacheStats",
    "CircuitBreaker",
    "HealthReport",
    "ParseOutcome",
    "PromptBuilder",
    "ResponseParser",
    "ResultCache",
    "RetryExecutor",
    "build_consistency",
    "build_fallback",
    "cache_key",
    "check_provider_health",
    "consistency_score",
    "fingerprint",
    "normalize_company_names",
    "normalize_name",
    "strip_code_fence",
    "validate_consistency",
]
