"""Domain layer: enums, exceptions, value objects, schema and events."""

from riskscope.domain.enums import (
    AnalysisMode,
    AssessmentStatus,
    CircuitStatus,
    CompanyType,
    OverallRating,
    RiskLevel,
    ZScoreZone,
)
from riskscope.domain.exceptions import (
    AnalysisCancelledError,
    CircuitOpenError,
    ConfigurationError,
    ParseError,
    ProviderError,
    RetryExhaustedError,
    RiskScopeError,
)
from riskscope.domain.models import (
    AnalysisMetadata,
    AnalysisPayload,
    AnalysisResult,
    CompanyAnalysis,
    PortfolioSummary,
    zone_for_score,
)
from riskscope.domain.values import (
    AnalysisOutcome,
    AnalysisRequest,
    CacheEntry,
    ChatMessage,
    CircuitState,
    CompanyQuery,
    ConsistencyMetadata,
    RawModelResponse,
)

__all__ = [
    # Enums
    "AnalysisMode",
    "AssessmentStatus",
    "CircuitStatus",
    "CompanyType",
    "OverallRating",
    "RiskLevel",
    "ZScoreZone",
    # Exceptions
    "AnalysisCancelledError",
    "CircuitOpenError",
    "ConfigurationError",
    "ParseError",
    "ProviderError",
    "RetryExhaustedError",
    "RiskScopeError",
    # Schema
    "AnalysisMetadata",
    "AnalysisPayload",
    "AnalysisResult",
    "CompanyAnalysis",
    "PortfolioSummary",
    "zone_for_score",
    # Values
    "AnalysisOutcome",
    "AnalysisRequest",
    "CacheEntry",
    "ChatMessage",
    "CircuitState",
    "CompanyQuery",
    "ConsistencyMetadata",
    "RawModelResponse",
]
