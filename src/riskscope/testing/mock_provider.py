"""Scripted model provider and canned responses for tests and examples.

``ScriptedProvider`` replays a fixed sequence of replies (text, raw
responses or exceptions) without touching the network, and records every
request it receives so tests can assert on call counts and prompts.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable, Sequence
from typing import Any, Union

from riskscope.domain.values import AnalysisRequest, RawModelResponse
from riskscope.infrastructure.llm import ModelProvider

Reply = Union[str, RawModelResponse, BaseException]


class ScriptedProvider(ModelProvider):
    """A provider that answers from a script.

    Usage::

        provider = ScriptedProvider([ProviderError("boom", status=503), good_json])
        # first call raises, second returns good_json, later calls repeat it

    Parameters
    ----------
    replies:
        Consumed in order.  Strings become :class:`RawModelResponse` text;
        exceptions are raised.  Once exhausted the last reply repeats.
    gate:
        If set, every call waits for the event before answering.  Lets
        tests hold a call in flight.
    delay:
        Seconds each call sleeps before answering.
    """

    def __init__(
        self,
        replies: Sequence[Reply] | Reply = (),
        gate: asyncio.Event | None = None,
        delay: float = 0.0,
        model: str = "scripted-model",
    ) -> None:
        if isinstance(replies, (str, RawModelResponse, BaseException)):
            replies = [replies]
        self._replies: list[Reply] = list(replies)
        self._gate = gate
        self._delay = delay
        self._model = model
        self._index = 0
        self.requests: list[AnalysisRequest] = []
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "scripted"

    @property
    def default_model(self) -> str:
        return self._model

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def complete(self, request: AnalysisRequest) -> RawModelResponse:
        self.requests.append(request)
        if self._gate is not None:
            await self._gate.wait()
        if self._delay > 0:
            await asyncio.sleep(self._delay)

        if not self._replies:
            reply: Reply = ""
        else:
            reply = self._replies[min(self._index, len(self._replies) - 1)]
        self._index += 1

        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, RawModelResponse):
            return reply
        return RawModelResponse(text=reply, model=self.resolve_model(request))

    async def aclose(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Canned payloads
# ---------------------------------------------------------------------------

def sample_company(name: str, risk_score: float = 35.0, z_score: float = 3.4) -> dict[str, Any]:
    """A well-formed detailed-mode company entry."""
    zone = "safe" if z_score > 2.99 else "distress" if z_score < 1.8 else "grey"
    return {
        "name": name,
        "ticker": None,
        "overall_rating": "good",
        "risk_level": "low" if risk_score < 40 else "medium",
        "risk_score": risk_score,
        "confidence": 0.8,
        "altman_z_score": {
            "score": z_score,
            "zone": zone,
            "company_type": "public_manufacturing",
            "interpretation": "Comfortably above the distress threshold.",
        },
        "liquidity_ratios": {
            "current_ratio": 1.6,
            "quick_ratio": 1.2,
            "cash_ratio": 0.5,
            "analysis": "Adequate liquidity.",
        },
        "solvency_ratios": {
            "debt_to_equity": 0.9,
            "times_interest_earned": 12.0,
            "debt_service_coverage": 3.1,
            "analysis": "Moderate leverage.",
        },
        "profitability_ratios": {
            "roe": 18.5,
            "roa": 7.2,
            "gross_margin": 41.0,
            "net_margin": 12.3,
            "operating_margin": 16.8,
            "analysis": "Healthy margins.",
        },
        "financial_timeline": [
            {
                "year": 2020 + offset,
                "revenue": 1000.0 + 50 * offset,
                "net_income": 120.0 + 5 * offset,
                "total_debt": 400.0,
                "zscore": round(z_score - 0.1 * (4 - offset), 2),
                "key_events": "",
            }
            for offset in range(5)
        ],
        "risk_assessment": {
            "credit_risk_level": "low" if risk_score < 40 else "medium",
            "industry_risks": ["competition"],
            "market_position": "Leader",
            "recent_performance": "Stable",
        },
        "key_strengths": ["brand"],
        "key_weaknesses": ["concentration"],
        "recommendations": "Maintain exposure.",
        "future_outlook": "Stable.",
    }


def sample_payload(
    names: Iterable[str],
    analysis_id: str = "",
    with_portfolio: bool = True,
) -> dict[str, Any]:
    """A well-formed analysis payload covering *names*."""
    payload: dict[str, Any] = {
        "analysis_id": analysis_id,
        "analysis_date": "2024-06-30",
        "companies": [sample_company(name) for name in names],
    }
    if with_portfolio:
        payload["portfolio_summary"] = {
            "average_risk_level": "low",
            "diversification_analysis": "Concentrated.",
            "overall_recommendations": "Diversify.",
            "zscore_trend": [{"year": 2024, "score": 3.4}],
        }
    return payload


def sample_response(names: Iterable[str], fenced: bool = False, **kwargs: Any) -> str:
    """:func:`sample_payload` serialized as model text, optionally fenced."""
    text = json.dumps(sample_payload(names, **kwargs))
    if fenced:
        return f"```json\n{text}\n```"
    return text
