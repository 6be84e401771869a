"""Provider connectivity probe."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from riskscope.domain.enums import AnalysisMode
from riskscope.domain.exceptions import ProviderError
from riskscope.domain.values import AnalysisRequest, ChatMessage
from riskscope.infrastructure.llm import ModelProvider

logger = logging.getLogger(__name__)

HEALTH_PROMPT = "Respond with exactly: API_WORKING"
EXPECTED_REPLY = "API_WORKING"


@dataclass(frozen=True)
class HealthReport:
    success: bool
    provider: str
    model: str
    status: int | None = None
    latency: float = 0.0
    response_text: str = ""
    error: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


async def check_provider_health(provider: ModelProvider, model: str = "") -> HealthReport:
    """Send a one-line prompt and report whether the provider answered.

    Provider failures are reported in the returned :class:`HealthReport`
    rather than raised.  ``success`` requires the reply to contain
    ``API_WORKING``.
    """
    request = AnalysisRequest(
        fingerprint=0,
        company_names=(),
        mode=AnalysisMode.QUICK,
        temperature=0.0,
        model_id=model or provider.default_model,
        max_tokens=20,
        system_prompt="",
        messages=(ChatMessage(role="user", content=HEALTH_PROMPT),),
    )

    start = time.monotonic()
    try:
        raw = await provider.complete(request)
    except ProviderError as exc:
        latency = time.monotonic() - start
        logger.warning(
            "HealthCheck: %s unreachable (%s)", provider.provider_name, exc
        )
        return HealthReport(
            success=False,
            provider=provider.provider_name,
            model=request.model_id,
            status=exc.status,
            latency=latency,
            error=str(exc),
        )

    latency = time.monotonic() - start
    text = raw.text.strip()
    success = EXPECTED_REPLY in text
    logger.info(
        "HealthCheck: %s answered in %.2fs (ok=%s)",
        provider.provider_name,
        latency,
        success,
    )
    return HealthReport(
        success=success,
        provider=provider.provider_name,
        model=raw.model or request.model_id,
        status=raw.http_status,
        latency=latency,
        response_text=text,
        error="" if success else f"unexpected reply: {text[:100]}",
    )
