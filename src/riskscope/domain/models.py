"""Pydantic schema for the analysis envelope exchanged with the model.

The model is asked to answer with a JSON object whose keys match these
models (snake_case).  Validation is deliberately lenient on *values* (a
ratio the model reports as ``"N/A"`` becomes ``None``, an unrecognised
rating becomes ``unknown``) and strict on *shape*: ``companies`` must be a
non-empty list of objects, each carrying a non-blank ``name``.

Unknown keys are preserved (``extra="allow"``) so that presentation layers
can render fields this schema does not know about.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from .enums import AnalysisMode, CompanyType, OverallRating, RiskLevel, ZScoreZone

# ---------------------------------------------------------------------------
# Lenient coercion helpers
# ---------------------------------------------------------------------------


def _coerce_number(value: Any) -> float | None:
    """Turn model-reported numbers into floats; anything unusable is ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "").rstrip("%x")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _coerce_year(value: Any) -> int | None:
    number = _coerce_number(value)
    return int(number) if number is not None else None


def _enum_coercer(enum_cls: type, default: Any) -> Any:
    def _coerce(value: Any) -> Any:
        if value is None or isinstance(value, enum_cls):
            return value if value is not None else default
        try:
            return enum_cls(str(value).strip().lower())
        except ValueError:
            return default

    return _coerce


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    return [str(value)]


Number = Annotated[float | None, BeforeValidator(_coerce_number)]
Year = Annotated[int | None, BeforeValidator(_coerce_year)]
StringList = Annotated[list[str], BeforeValidator(_string_list)]
LenientRiskLevel = Annotated[
    RiskLevel | None, BeforeValidator(_enum_coercer(RiskLevel, None))
]
LenientZone = Annotated[
    ZScoreZone, BeforeValidator(_enum_coercer(ZScoreZone, ZScoreZone.UNKNOWN))
]
LenientRating = Annotated[
    OverallRating | None, BeforeValidator(_enum_coercer(OverallRating, OverallRating.UNKNOWN))
]
LenientCompanyType = Annotated[
    CompanyType,
    BeforeValidator(_enum_coercer(CompanyType, CompanyType.PUBLIC_MANUFACTURING)),
]


# ---------------------------------------------------------------------------
# Altman Z-Score zones
# ---------------------------------------------------------------------------

#: ``(distress_below, safe_above)`` per formula variant.
ZONE_THRESHOLDS: dict[CompanyType, tuple[float, float]] = {
    CompanyType.PUBLIC_MANUFACTURING: (1.8, 2.99),
    CompanyType.PRIVATE_MANUFACTURING: (1.23, 2.9),
    CompanyType.NON_MANUFACTURING: (1.1, 2.6),
}


def zone_for_score(
    score: float,
    company_type: CompanyType = CompanyType.PUBLIC_MANUFACTURING,
) -> ZScoreZone:
    """Map a Z-Score to its zone; both grey-zone bounds are inclusive."""
    distress_below, safe_above = ZONE_THRESHOLDS[company_type]
    if score > safe_above:
        return ZScoreZone.SAFE
    if score < distress_below:
        return ZScoreZone.DISTRESS
    return ZScoreZone.GREY


# ---------------------------------------------------------------------------
# Company-level schema
# ---------------------------------------------------------------------------


class _Schema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ZScoreCalculation(_Schema):
    """Component breakdown of an Altman Z-Score."""

    formula_components: dict[str, Any] = Field(default_factory=dict)
    working_capital_total_assets: Number = None
    retained_earnings_total_assets: Number = None
    ebit_total_assets: Number = None
    market_value_equity_total_debt: Number = None
    sales_total_assets: Number = None
    calculation_steps: StringList = Field(default_factory=list)
    assumptions: StringList = Field(default_factory=list)


class AltmanZScore(_Schema):
    score: Number = None
    zone: LenientZone = ZScoreZone.UNKNOWN
    company_type: LenientCompanyType = CompanyType.PUBLIC_MANUFACTURING
    interpretation: str | None = None
    calculation_details: ZScoreCalculation | None = None

    def expected_zone(self) -> ZScoreZone | None:
        """Zone implied by ``score`` under this formula's thresholds."""
        if self.score is None:
            return None
        return zone_for_score(self.score, self.company_type)

    @property
    def zone_consistent(self) -> bool:
        """``False`` only when both score and zone are known and disagree."""
        expected = self.expected_zone()
        if expected is None or self.zone is ZScoreZone.UNKNOWN:
            return True
        return expected is self.zone


class LiquidityRatios(_Schema):
    current_ratio: Number = None
    quick_ratio: Number = None
    cash_ratio: Number = None
    analysis: str | None = None


class SolvencyRatios(_Schema):
    debt_to_equity: Number = None
    times_interest_earned: Number = None
    debt_service_coverage: Number = None
    analysis: str | None = None


class ProfitabilityRatios(_Schema):
    roe: Number = None
    roa: Number = None
    gross_margin: Number = None
    net_margin: Number = None
    operating_margin: Number = None
    analysis: str | None = None


class YearRecord(_Schema):
    year: Year = None
    revenue: Number = None
    net_income: Number = None
    total_debt: Number = None
    zscore: Number = None
    key_events: str | None = None


class RiskAssessment(_Schema):
    credit_risk_level: LenientRiskLevel = None
    industry_risks: StringList = Field(default_factory=list)
    market_position: str | None = None
    recent_performance: str | None = None


class CompanyAnalysis(_Schema):
    """Validated per-company record.

    Quick-mode answers only populate ``name``, ``ticker``, ``risk_score``,
    ``risk_level``, ``key_metrics``, ``recommendation`` and ``confidence``;
    detailed answers populate the rest.
    """

    name: str
    ticker: str | None = None
    overall_rating: LenientRating = None
    risk_level: LenientRiskLevel = None
    risk_score: Number = None
    key_metrics: dict[str, Any] = Field(default_factory=dict)
    recommendation: str | None = None
    confidence: Number = None
    altman_z_score: AltmanZScore | None = None
    liquidity_ratios: LiquidityRatios | None = None
    solvency_ratios: SolvencyRatios | None = None
    profitability_ratios: ProfitabilityRatios | None = None
    financial_timeline: list[YearRecord] = Field(default_factory=list)
    risk_assessment: RiskAssessment | None = None
    key_strengths: StringList = Field(default_factory=list)
    key_weaknesses: StringList = Field(default_factory=list)
    recommendations: str | None = None
    future_outlook: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _name_not_blank(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("company name must be a non-blank string")
        return value.strip()

    @field_validator("key_metrics", mode="before")
    @classmethod
    def _metrics_mapping(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @model_validator(mode="after")
    def _risk_level_from_assessment(self) -> CompanyAnalysis:
        if self.risk_level is None and self.risk_assessment is not None:
            self.risk_level = self.risk_assessment.credit_risk_level
        return self

    @property
    def zone_mismatch(self) -> bool:
        return self.altman_z_score is not None and not self.altman_z_score.zone_consistent


# ---------------------------------------------------------------------------
# Portfolio / envelope
# ---------------------------------------------------------------------------


class ZScorePoint(_Schema):
    year: Year = None
    score: Number = Field(default=None, validation_alias=AliasChoices("score", "zscore"))


class PortfolioSummary(_Schema):
    average_risk_level: LenientRiskLevel = None
    diversification_analysis: str | None = None
    overall_recommendations: str | None = None
    zscore_trend: list[ZScorePoint] = Field(default_factory=list)


class AnalysisPayload(_Schema):
    """The JSON envelope as produced by the model."""

    analysis_id: str | None = None
    analysis_date: str | None = None
    companies: list[CompanyAnalysis] = Field(min_length=1)
    portfolio_summary: PortfolioSummary | None = None

    @field_validator("analysis_id", "analysis_date", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str | None:
        return None if value is None else str(value)


class AnalysisMetadata(BaseModel):
    """Provenance attached by the orchestrator, never by the model."""

    model_config = ConfigDict(frozen=True)

    fingerprint: int
    mode: AnalysisMode
    temperature: float
    model_id: str
    attempts_used: int
    produced_at: datetime
    used_fallback: bool = False
    cache_key: str = ""
    zone_mismatches: tuple[str, ...] = ()


class AnalysisResult(AnalysisPayload):
    """Final result handed to collaborators.  Never mutated once built."""

    model_config = ConfigDict(frozen=True)

    analysis_date: str
    metadata: AnalysisMetadata
    from_cache: bool = False

    @property
    def used_fallback(self) -> bool:
        return self.metadata.used_fallback

    @property
    def company_names(self) -> list[str]:
        return [company.name for company in self.companies]

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-ready dict for the persistence and presentation layers."""
        return self.model_dump(mode="json")

    @classmethod
    def from_payload(
        cls,
        payload: AnalysisPayload,
        metadata: AnalysisMetadata,
        analysis_date: str,
    ) -> AnalysisResult:
        data = payload.model_dump()
        data["analysis_date"] = payload.analysis_date or analysis_date
        data["analysis_id"] = payload.analysis_id or str(metadata.fingerprint)
        data["metadata"] = metadata
        return cls.model_validate(data)
