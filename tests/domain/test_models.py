"""Tests for the pydantic analysis schema."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from riskscope.domain.enums import (
    AnalysisMode,
    CompanyType,
    OverallRating,
    RiskLevel,
    ZScoreZone,
)
from riskscope.domain.models import (
    AltmanZScore,
    AnalysisMetadata,
    AnalysisPayload,
    AnalysisResult,
    CompanyAnalysis,
    PortfolioSummary,
    zone_for_score,
)
from riskscope.testing import sample_payload


class TestZoneForScore:
    """Altman zone thresholds per formula variant."""

    def test_public_manufacturing_zones(self) -> None:
        assert zone_for_score(3.5) is ZScoreZone.SAFE
        assert zone_for_score(2.5) is ZScoreZone.GREY
        assert zone_for_score(1.2) is ZScoreZone.DISTRESS

    def test_grey_bounds_are_inclusive(self) -> None:
        assert zone_for_score(2.99) is ZScoreZone.GREY
        assert zone_for_score(1.8) is ZScoreZone.GREY

    def test_private_manufacturing_thresholds(self) -> None:
        private = CompanyType.PRIVATE_MANUFACTURING
        assert zone_for_score(2.95, private) is ZScoreZone.SAFE
        assert zone_for_score(1.5, private) is ZScoreZone.GREY
        assert zone_for_score(1.2, private) is ZScoreZone.DISTRESS

    def test_non_manufacturing_thresholds(self) -> None:
        non_mfg = CompanyType.NON_MANUFACTURING
        assert zone_for_score(2.7, non_mfg) is ZScoreZone.SAFE
        assert zone_for_score(1.0, non_mfg) is ZScoreZone.DISTRESS


class TestAltmanZScore:
    """Zone consistency checks."""

    def test_consistent_zone(self) -> None:
        z = AltmanZScore(score=3.4, zone="safe")
        assert z.zone_consistent
        assert z.expected_zone() is ZScoreZone.SAFE

    def test_mismatched_zone_is_flagged(self) -> None:
        z = AltmanZScore(score=1.2, zone="safe")
        assert not z.zone_consistent
        assert z.expected_zone() is ZScoreZone.DISTRESS

    def test_unknown_zone_is_never_a_mismatch(self) -> None:
        assert AltmanZScore(score=1.2, zone="unknown").zone_consistent
        assert AltmanZScore(score=None, zone="safe").zone_consistent

    def test_unrecognised_zone_becomes_unknown(self) -> None:
        z = AltmanZScore(score=2.0, zone="orange")
        assert z.zone is ZScoreZone.UNKNOWN

    def test_company_type_is_lenient(self) -> None:
        z = AltmanZScore(score=2.0, zone="grey", company_type="Non_Manufacturing")
        assert z.company_type is CompanyType.NON_MANUFACTURING
        z = AltmanZScore(score=2.0, zone="grey", company_type="bank")
        assert z.company_type is CompanyType.PUBLIC_MANUFACTURING


class TestCompanyAnalysis:
    """Per-company record validation."""

    def test_numbers_are_coerced(self) -> None:
        company = CompanyAnalysis.model_validate(
            {
                "name": "Acme",
                "risk_score": "42",
                "confidence": 0.7,
                "liquidity_ratios": {"current_ratio": "1,250.5", "quick_ratio": "N/A"},
                "profitability_ratios": {"net_margin": "12.5%"},
            }
        )
        assert company.risk_score == 42.0
        assert company.liquidity_ratios is not None
        assert company.liquidity_ratios.current_ratio == 1250.5
        assert company.liquidity_ratios.quick_ratio is None
        assert company.profitability_ratios is not None
        assert company.profitability_ratios.net_margin == 12.5

    def test_booleans_are_not_numbers(self) -> None:
        company = CompanyAnalysis(name="Acme", risk_score=True)
        assert company.risk_score is None

    @pytest.mark.parametrize(
        "value", [float("nan"), float("inf"), float("-inf"), "NaN", "Infinity", "-inf", 10**400]
    )
    def test_non_finite_numbers_become_none(self, value) -> None:
        company = CompanyAnalysis(name="Acme", risk_score=value, confidence=value)
        assert company.risk_score is None
        assert company.confidence is None

    def test_non_finite_year_becomes_none(self) -> None:
        company = CompanyAnalysis.model_validate(
            {"name": "Acme", "financial_timeline": [{"year": float("inf"), "revenue": 10}]}
        )
        assert company.financial_timeline[0].year is None
        assert company.financial_timeline[0].revenue == 10.0

    def test_blank_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CompanyAnalysis(name="   ")

    def test_missing_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CompanyAnalysis.model_validate({"risk_score": 10})

    def test_name_is_trimmed(self) -> None:
        assert CompanyAnalysis(name="  Acme Corp ").name == "Acme Corp"

    def test_enums_are_lenient(self) -> None:
        company = CompanyAnalysis(name="Acme", risk_level="HIGH", overall_rating="stellar")
        assert company.risk_level is RiskLevel.HIGH
        assert company.overall_rating is OverallRating.UNKNOWN

    def test_risk_level_falls_back_to_credit_risk_level(self) -> None:
        company = CompanyAnalysis.model_validate(
            {"name": "Acme", "risk_assessment": {"credit_risk_level": "medium"}}
        )
        assert company.risk_level is RiskLevel.MEDIUM

    def test_string_lists_accept_single_string(self) -> None:
        company = CompanyAnalysis(name="Acme", key_strengths="brand")
        assert company.key_strengths == ["brand"]

    def test_unknown_keys_are_preserved(self) -> None:
        company = CompanyAnalysis.model_validate({"name": "Acme", "esg_score": 71})
        assert company.model_dump()["esg_score"] == 71

    def test_zone_mismatch_property(self) -> None:
        company = CompanyAnalysis(
            name="Acme", altman_z_score=AltmanZScore(score=1.0, zone="safe")
        )
        assert company.zone_mismatch


class TestAnalysisPayload:
    """Envelope validation."""

    def test_valid_payload(self) -> None:
        payload = AnalysisPayload.model_validate(sample_payload(["Apple Inc.", "Tesla"]))
        assert [c.name for c in payload.companies] == ["Apple Inc.", "Tesla"]
        assert isinstance(payload.portfolio_summary, PortfolioSummary)

    def test_empty_companies_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AnalysisPayload.model_validate({"companies": []})

    def test_analysis_id_is_stringified(self) -> None:
        payload = AnalysisPayload.model_validate(
            {"analysis_id": 12345, "companies": [{"name": "Acme"}]}
        )
        assert payload.analysis_id == "12345"

    def test_zscore_trend_accepts_zscore_alias(self) -> None:
        summary = PortfolioSummary.model_validate(
            {"zscore_trend": [{"year": "2023", "zscore": 2.4}]}
        )
        assert summary.zscore_trend[0].year == 2023
        assert summary.zscore_trend[0].score == 2.4


class TestAnalysisResult:
    """Final result assembly."""

    def _metadata(self, fixed_now) -> AnalysisMetadata:
        return AnalysisMetadata(
            fingerprint=777,
            mode=AnalysisMode.DETAILED,
            temperature=0.1,
            model_id="m",
            attempts_used=1,
            produced_at=fixed_now,
        )

    def test_from_payload_fills_missing_id_and_date(self, fixed_now) -> None:
        payload = AnalysisPayload.model_validate({"companies": [{"name": "Acme"}]})
        result = AnalysisResult.from_payload(payload, self._metadata(fixed_now), "2024-06-30")
        assert result.analysis_id == "777"
        assert result.analysis_date == "2024-06-30"
        assert result.company_names == ["Acme"]
        assert not result.from_cache
        assert not result.used_fallback

    def test_from_payload_keeps_model_date(self, fixed_now) -> None:
        payload = AnalysisPayload.model_validate(sample_payload(["Acme"]))
        result = AnalysisResult.from_payload(payload, self._metadata(fixed_now), "1999-01-01")
        assert result.analysis_date == "2024-06-30"

    def test_result_is_frozen(self, fixed_now) -> None:
        payload = AnalysisPayload.model_validate({"companies": [{"name": "Acme"}]})
        result = AnalysisResult.from_payload(payload, self._metadata(fixed_now), "2024-06-30")
        with pytest.raises(ValidationError):
            result.from_cache = True  # type: ignore[misc]

    def test_to_json_dict(self, fixed_now) -> None:
        payload = AnalysisPayload.model_validate(sample_payload(["Acme"]))
        result = AnalysisResult.from_payload(payload, self._metadata(fixed_now), "2024-06-30")
        data = result.to_json_dict()
        assert data["metadata"]["mode"] == "detailed"
        assert data["metadata"]["produced_at"].startswith("2024-06-30")
        assert data["companies"][0]["altman_z_score"]["zone"] == "safe"
