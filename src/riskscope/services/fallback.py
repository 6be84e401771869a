"""Deterministic placeholder analysis used when every model attempt fails.

Numbers are derived arithmetically from the query fingerprint, so repeated
failures for the same companies and mode yield identical figures.  The
result is structurally valid for every collaborator but clearly marked as
degraded (``metadata.used_fallback`` is ``True`` and the narrative fields say
so).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from riskscope.domain.enums import AnalysisMode, OverallRating, RiskLevel
from riskscope.domain.models import (
    AnalysisMetadata,
    AnalysisPayload,
    AnalysisResult,
    zone_for_score,
)
from riskscope.domain.values import CompanyQuery

# Per-company seed stride; prime so neighbouring companies do not share figures
_COMPANY_STRIDE = 7919

FALLBACK_CONFIDENCE = 0.5
_TIMELINE_YEARS = 5

_DEGRADED_NOTE = (
    "Automated analysis was unavailable; these figures are deterministic "
    "placeholders and must not be used for credit decisions."
)


def fallback_risk_score(seed: int) -> int:
    """``45 + seed mod 30``: always within [45, 74]."""
    return 45 + seed % 30


def _risk_level(score: float) -> RiskLevel:
    if score >= 65:
        return RiskLevel.HIGH
    if score >= 50:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _company_figures(seed: int) -> dict[str, float]:
    current_ratio = round(0.8 + (seed % 150) / 100, 2)
    return {
        "risk_score": float(fallback_risk_score(seed)),
        "z_score": round(1.5 + (seed % 200) / 100, 2),
        "current_ratio": current_ratio,
        "quick_ratio": round(current_ratio * 0.75, 2),
        "cash_ratio": round(current_ratio * 0.3, 2),
        "debt_to_equity": round(0.3 + (seed % 170) / 100, 2),
        "times_interest_earned": round(2.0 + (seed % 80) / 10, 1),
        "roe": round(4.0 + (seed % 160) / 10, 1),
        "roa": round(1.0 + (seed % 90) / 10, 1),
        "net_margin": round(2.0 + (seed % 180) / 10, 1),
        "operating_margin": round(4.0 + (seed % 200) / 10, 1),
    }


def _quick_company(name: str, figures: dict[str, float]) -> dict[str, Any]:
    return {
        "name": name,
        "ticker": None,
        "risk_score": figures["risk_score"],
        "risk_level": _risk_level(figures["risk_score"]).value,
        "key_metrics": {
            "altman_z_score": figures["z_score"],
            "current_ratio": figures["current_ratio"],
            "debt_to_equity": figures["debt_to_equity"],
            "net_margin": figures["net_margin"],
        },
        "recommendation": _DEGRADED_NOTE,
        "confidence": FALLBACK_CONFIDENCE,
        "overall_rating": OverallRating.UNKNOWN.value,
    }


def _detailed_company(
    name: str,
    seed: int,
    figures: dict[str, float],
    last_year: int,
) -> dict[str, Any]:
    company = _quick_company(name, figures)
    z_score = figures["z_score"]
    zone = zone_for_score(z_score)

    timeline = []
    for offset in range(_TIMELINE_YEARS):
        year = last_year - (_TIMELINE_YEARS - 1 - offset)
        drift = ((seed >> offset) % 21 - 10) / 100
        timeline.append(
            {
                "year": year,
                "revenue": None,
                "net_income": None,
                "total_debt": None,
                "zscore": round(z_score + drift, 2),
                "key_events": "No data (fallback analysis)",
            }
        )

    company.update(
        {
            "altman_z_score": {
                "score": z_score,
                "zone": zone.value,
                "company_type": "public_manufacturing",
                "interpretation": _DEGRADED_NOTE,
            },
            "liquidity_ratios": {
                "current_ratio": figures["current_ratio"],
                "quick_ratio": figures["quick_ratio"],
                "cash_ratio": figures["cash_ratio"],
                "analysis": _DEGRADED_NOTE,
            },
            "solvency_ratios": {
                "debt_to_equity": figures["debt_to_equity"],
                "times_interest_earned": figures["times_interest_earned"],
                "debt_service_coverage": None,
                "analysis": _DEGRADED_NOTE,
            },
            "profitability_ratios": {
                "roe": figures["roe"],
                "roa": figures["roa"],
                "gross_margin": None,
                "net_margin": figures["net_margin"],
                "operating_margin": figures["operating_margin"],
                "analysis": _DEGRADED_NOTE,
            },
            "financial_timeline": timeline,
            "risk_assessment": {
                "credit_risk_level": company["risk_level"],
                "industry_risks": [],
                "market_position": "Unavailable",
                "recent_performance": "Unavailable",
            },
            "key_strengths": [],
            "key_weaknesses": [],
            "recommendations": _DEGRADED_NOTE,
            "future_outlook": "Unavailable",
        }
    )
    return company


def _portfolio_summary(companies: list[dict[str, Any]]) -> dict[str, Any]:
    scores = [c["risk_score"] for c in companies]
    average = sum(scores) / len(scores)

    by_year: dict[int, list[float]] = {}
    for company in companies:
        for record in company.get("financial_timeline", []):
            by_year.setdefault(record["year"], []).append(record["zscore"])

    return {
        "average_risk_level": _risk_level(average).value,
        "diversification_analysis": _DEGRADED_NOTE,
        "overall_recommendations": _DEGRADED_NOTE,
        "zscore_trend": [
            {"year": year, "score": round(sum(values) / len(values), 2)}
            for year, values in sorted(by_year.items())
        ],
    }


def build_fallback(
    query: CompanyQuery,
    mode: AnalysisMode,
    fingerprint: int,
    *,
    attempts_used: int,
    temperature: float,
    model_id: str,
    produced_at: datetime,
    cache_key: str = "",
) -> AnalysisResult:
    """Synthesize a degraded but well-formed :class:`AnalysisResult`."""
    companies: list[dict[str, Any]] = []
    for index, name in enumerate(query.names):
        seed = fingerprint + index * _COMPANY_STRIDE
        figures = _company_figures(seed)
        if mode is AnalysisMode.QUICK:
            companies.append(_quick_company(name, figures))
        else:
            companies.append(
                _detailed_company(name, seed, figures, last_year=produced_at.year - 1)
            )

    data: dict[str, Any] = {
        "analysis_id": str(fingerprint),
        "analysis_date": produced_at.date().isoformat(),
        "companies": companies,
        "degraded_reason": "model unavailable",
    }
    if mode is AnalysisMode.DETAILED:
        data["portfolio_summary"] = _portfolio_summary(companies)

    metadata = AnalysisMetadata(
        fingerprint=fingerprint,
        mode=mode,
        temperature=temperature,
        model_id=model_id,
        attempts_used=attempts_used,
        produced_at=produced_at,
        used_fallback=True,
        cache_key=cache_key,
    )
    return AnalysisResult.from_payload(
        AnalysisPayload.model_validate(data),
        metadata,
        analysis_date=produced_at.date().isoformat(),
    )
