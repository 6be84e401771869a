"""Domain enumerations for riskscope.

These enums capture the fixed vocabularies used across the domain layer:
analysis modes, risk levels, Altman Z-Score zones and company-type formula
variants, overall ratings, assessment statuses, and circuit states.
"""

from enum import Enum


class AnalysisMode(Enum):
    """How much detail the model is asked to produce."""

    QUICK = "quick"
    DETAILED = "detailed"

    @classmethod
    def coerce(cls, value: "AnalysisMode | str") -> "AnalysisMode":
        """Accept either an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(
                f"mode must be one of {valid}, got {value!r}"
            ) from None


class RiskLevel(Enum):
    """Credit risk bucket."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ZScoreZone(Enum):
    """Altman Z-Score interpretation zone."""

    SAFE = "safe"
    GREY = "grey"
    DISTRESS = "distress"
    UNKNOWN = "unknown"  # model could not compute a score


class CompanyType(Enum):
    """Altman formula variant, each with its own zone thresholds."""

    PUBLIC_MANUFACTURING = "public_manufacturing"  # original Z
    PRIVATE_MANUFACTURING = "private_manufacturing"  # Z'
    NON_MANUFACTURING = "non_manufacturing"  # Z'' (also emerging markets)


class OverallRating(Enum):
    """Overall financial health rating."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class AssessmentStatus(Enum):
    """Lifecycle of a stored assessment record, as signalled by the core."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class CircuitStatus(Enum):
    """Circuit breaker gate position."""

    CLOSED = "closed"
    OPEN = "open"
