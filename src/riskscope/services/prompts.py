"""Prompt construction for financial risk analysis requests.

Uses ``langchain_core`` chat prompt templates to render a system message (the
JSON-only output contract) and a human message (the company list, the
traceability identifier and a mode-specific schema example).

The schema examples are passed in as template *variables*, never embedded in
the template text, so their braces are not mistaken for placeholders.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from langchain_core.prompts import ChatPromptTemplate

from riskscope.domain.enums import AnalysisMode
from riskscope.domain.values import AnalysisRequest, ChatMessage, CompanyQuery
from riskscope.services.fingerprint import normalize_company_names

DEFAULT_TEMPERATURE = 0.1

# -- Schema examples -----------------------------------------------------------

_QUICK_COMPANY_EXAMPLE: dict[str, Any] = {
    "name": "Company Name",
    "ticker": "TICKER or null",
    "risk_score": "number 0-100 (higher = riskier)",
    "risk_level": "low|medium|high",
    "key_metrics": {
        "altman_z_score": "number_or_null",
        "current_ratio": "number_or_null",
        "debt_to_equity": "number_or_null",
        "net_margin": "number_or_null",
    },
    "recommendation": "one or two sentences",
    "confidence": "number 0-1",
}

_DETAILED_COMPANY_EXAMPLE: dict[str, Any] = {
    "name": "Company Name",
    "ticker": "TICKER or null",
    "overall_rating": "excellent|good|fair|poor|critical",
    "risk_level": "low|medium|high",
    "altman_z_score": {
        "score": "number_or_null",
        "zone": "safe|grey|distress|unknown",
        "company_type": "public_manufacturing|private_manufacturing|non_manufacturing",
        "interpretation": "detailed explanation",
        "calculation_details": {
            "formula_components": {
                "A": "1.2 x Working Capital / Total Assets",
                "B": "1.4 x Retained Earnings / Total Assets",
                "C": "3.3 x EBIT / Total Assets",
                "D": "0.6 x Market Value of Equity / Total Liabilities",
                "E": "1.0 x Sales / Total Assets",
            },
            "working_capital_total_assets": "number_or_null",
            "retained_earnings_total_assets": "number_or_null",
            "ebit_total_assets": "number_or_null",
            "market_value_equity_total_debt": "number_or_null",
            "sales_total_assets": "number_or_null",
            "calculation_steps": ["step-by-step arithmetic"],
            "assumptions": ["data assumptions made"],
        },
    },
    "liquidity_ratios": {
        "current_ratio": "number_or_null",
        "quick_ratio": "number_or_null",
        "cash_ratio": "number_or_null",
        "analysis": "explanation",
    },
    "solvency_ratios": {
        "debt_to_equity": "number_or_null",
        "times_interest_earned": "number_or_null",
        "debt_service_coverage": "number_or_null",
        "analysis": "explanation",
    },
    "profitability_ratios": {
        "roe": "number_or_null",
        "roa": "number_or_null",
        "gross_margin": "number_or_null",
        "net_margin": "number_or_null",
        "operating_margin": "number_or_null",
        "analysis": "explanation",
    },
    "financial_timeline": [
        {
            "year": "number",
            "revenue": "number_or_null",
            "net_income": "number_or_null",
            "total_debt": "number_or_null",
            "zscore": "number_or_null",
            "key_events": "notable events or changes",
        }
    ],
    "risk_assessment": {
        "credit_risk_level": "low|medium|high",
        "industry_risks": ["list of risks"],
        "market_position": "description",
        "recent_performance": "analysis",
    },
    "key_strengths": ["list of strengths"],
    "key_weaknesses": ["list of weaknesses"],
    "recommendations": "detailed recommendations",
    "future_outlook": "analysis of future prospects",
}

_PORTFOLIO_EXAMPLE: dict[str, Any] = {
    "average_risk_level": "low|medium|high",
    "diversification_analysis": "analysis",
    "overall_recommendations": "portfolio-level recommendations",
    "zscore_trend": [{"year": "number", "score": "average z-score"}],
}

_MODE_INSTRUCTIONS: dict[AnalysisMode, str] = {
    AnalysisMode.QUICK: (
        "This is a QUICK screening. For each company report only the fields "
        "shown in the schema: a 0-100 risk score, the risk level, a handful "
        "of key metrics, a short recommendation and your confidence."
    ),
    AnalysisMode.DETAILED: (
        "This is a DETAILED assessment. For each company provide:\n"
        "1. Altman Z-Score with the component breakdown (A-E), the formula "
        "variant used, and the zone (public manufacturing: safe > 2.99, "
        "grey 1.8-2.99, distress < 1.8; private: 2.9 / 1.23; "
        "non-manufacturing: 2.6 / 1.1).\n"
        "2. Liquidity, solvency and profitability ratios.\n"
        "3. A financial timeline covering the last 5 fiscal years.\n"
        "4. Credit risk level, industry risks, market position and recent "
        "performance.\n"
        "5. Overall rating, key strengths and weaknesses, recommendations "
        "and future outlook.\n"
        "Also include a portfolio_summary across all companies."
    ),
}

_ANALYSIS_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are a senior credit analyst producing financial risk "
            "assessments for lenders and investors.\n\n"
            "Output contract:\n"
            "- Respond with a single JSON object and nothing else: no prose, "
            "no markdown, no code fences.\n"
            "- Use exactly the keys shown in the schema; use null when a "
            "figure is unavailable rather than inventing one.\n"
            "- Echo the analysis identifier you are given in the "
            "\"analysis_id\" field.\n"
            "- The same input must always produce the same assessment; be "
            "conservative and consistent.",
        ),
        (
            "human",
            "Analysis identifier: {analysis_id}\n"
            "Companies ({company_count}): {companies}\n\n"
            "{mode_instructions}\n\n"
            "Return JSON matching this schema:\n{schema}",
        ),
    ]
)


class PromptBuilder:
    """Builds :class:`AnalysisRequest` objects for a query.

    Parameters
    ----------
    temperature:
        Sampling temperature stamped on every request.  Defaults to 0.1.
    quick_max_tokens / detailed_max_tokens:
        Response budgets per mode.
    prompt:
        Optional replacement ``ChatPromptTemplate``; it must accept the
        ``analysis_id``, ``company_count``, ``companies``,
        ``mode_instructions`` and ``schema`` variables.
    """

    def __init__(
        self,
        temperature: float = DEFAULT_TEMPERATURE,
        quick_max_tokens: int = 4000,
        detailed_max_tokens: int = 8000,
        prompt: ChatPromptTemplate | None = None,
    ) -> None:
        self.temperature = temperature
        self._max_tokens = {
            AnalysisMode.QUICK: quick_max_tokens,
            AnalysisMode.DETAILED: detailed_max_tokens,
        }
        self._prompt = prompt or _ANALYSIS_PROMPT

    @staticmethod
    def schema_for(mode: AnalysisMode, company_count: int = 1) -> dict[str, Any]:
        """The JSON example the model is asked to follow."""
        company = (
            _QUICK_COMPANY_EXAMPLE if mode is AnalysisMode.QUICK else _DETAILED_COMPANY_EXAMPLE
        )
        schema: dict[str, Any] = {
            "analysis_id": "the analysis identifier given above",
            "analysis_date": "YYYY-MM-DD",
            "companies": [company],
        }
        if mode is AnalysisMode.DETAILED and company_count > 0:
            schema["portfolio_summary"] = _PORTFOLIO_EXAMPLE
        return schema

    def build(
        self,
        names: Iterable[str] | CompanyQuery,
        mode: AnalysisMode | str,
        fingerprint: int,
        model_id: str = "",
    ) -> AnalysisRequest:
        query = normalize_company_names(names)
        analysis_mode = AnalysisMode.coerce(mode)

        rendered = self._prompt.format_messages(
            analysis_id=str(fingerprint),
            company_count=query.size,
            companies=", ".join(query.names),
            mode_instructions=_MODE_INSTRUCTIONS[analysis_mode],
            schema=json.dumps(self.schema_for(analysis_mode, query.size), indent=2),
        )

        system_parts: list[str] = []
        messages: list[ChatMessage] = []
        for message in rendered:
            text = message.content if isinstance(message.content, str) else str(message.content)
            if message.type == "system":
                system_parts.append(text)
            elif message.type == "ai":
                messages.append(ChatMessage(role="assistant", content=text))
            else:
                messages.append(ChatMessage(role="user", content=text))

        return AnalysisRequest(
            fingerprint=fingerprint,
            company_names=query.names,
            mode=analysis_mode,
            temperature=self.temperature,
            model_id=model_id,
            max_tokens=self._max_tokens[analysis_mode],
            system_prompt="\n\n".join(system_parts),
            messages=tuple(messages),
        )
