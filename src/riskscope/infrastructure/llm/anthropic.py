"""Anthropic Claude provider for riskscope.

Wraps the ``anthropic`` Python SDK to implement :class:`ModelProvider`.  The
SDK's own retry loop is disabled (``max_retries=0``): retries belong to the
orchestrator so that the circuit breaker sees every failure.
"""

from __future__ import annotations

import logging
import time

import anthropic
import httpx

from riskscope.domain.exceptions import ProviderError
from riskscope.domain.values import AnalysisRequest, RawModelResponse
from riskscope.infrastructure.llm import ModelProvider

logger = logging.getLogger(__name__)


class AnthropicProvider(ModelProvider):
    """Model provider for Anthropic Claude models (Messages API).

    Parameters
    ----------
    api_key:
        Anthropic API key.
    default_model:
        Model used when the request does not name one.
    timeout:
        Request timeout in seconds.
    base_url:
        Optional endpoint override.
    http_client:
        Optional pre-built ``httpx.AsyncClient`` (proxies, tests).
    """

    def __init__(
        self,
        api_key: str,
        default_model: str = "claude-3-5-sonnet-20241022",
        timeout: float = 60.0,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._default_model = default_model

        client_kwargs: dict = {
            "api_key": api_key,
            "timeout": timeout,
            "max_retries": 0,
        }
        if base_url:
            client_kwargs["base_url"] = base_url
        if http_client is not None:
            client_kwargs["http_client"] = http_client

        self._client = anthropic.AsyncAnthropic(**client_kwargs)

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return self._default_model

    async def complete(self, request: AnalysisRequest) -> RawModelResponse:
        """Send one Messages API call and normalize the reply.

        Raises
        ------
        ProviderError
            On non-2xx responses (``status`` set) and connection failures
            (``status`` is ``None``).
        """
        kwargs: dict = {
            "model": self.resolve_model(request),
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": [m.to_dict() for m in request.messages],
        }
        if request.system_prompt:
            kwargs["system"] = request.system_prompt

        started = time.perf_counter()
        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIStatusError as exc:
            raise ProviderError(
                f"Anthropic API error (status {exc.status_code}): {exc.message}",
                status=exc.status_code,
                body=exc.response.text,
                provider=self.provider_name,
            ) from exc
        except anthropic.APIConnectionError as exc:
            raise ProviderError(
                f"Anthropic API connection failed: {exc}",
                provider=self.provider_name,
            ) from exc
        except anthropic.APIError as exc:
            raise ProviderError(
                f"Unexpected error calling Anthropic API: {exc}",
                provider=self.provider_name,
            ) from exc
        latency = time.perf_counter() - started

        logger.debug(
            "AnthropicProvider: %s answered in %.2fs", kwargs["model"], latency
        )
        return self._parse_response(response, latency)

    async def aclose(self) -> None:
        await self._client.close()

    # -- internal helpers -----------------------------------------------------

    def _parse_response(self, response: object, latency: float) -> RawModelResponse:
        """Join the text blocks of a Messages API response."""
        text_parts: list[str] = []
        for block in getattr(response, "content", None) or []:
            text = getattr(block, "text", None)
            if isinstance(text, str):
                text_parts.append(text)

        if not text_parts:
            raise ProviderError(
                "Anthropic response contains no text blocks",
                status=200,
                provider=self.provider_name,
            )

        usage: dict[str, int] = {}
        usage_obj = getattr(response, "usage", None)
        if usage_obj is not None:
            for key in ("input_tokens", "output_tokens"):
                value = getattr(usage_obj, key, None)
                if isinstance(value, int):
                    usage[key] = value

        return RawModelResponse(
            text="".join(text_parts),
            http_status=200,
            provider_latency=latency,
            model=getattr(response, "model", "") or "",
            usage=usage,
        )

    def __repr__(self) -> str:
        return f"AnthropicProvider(model={self._default_model!r})"
