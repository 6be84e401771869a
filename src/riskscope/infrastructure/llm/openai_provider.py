"""OpenAI provider for riskscope.

Wraps the ``openai`` Python SDK to implement :class:`ModelProvider` via the
Chat Completions API.  SDK-level retries are disabled; see
:mod:`riskscope.services.retry`.
"""

from __future__ import annotations

import logging
import time

import httpx
import openai

from riskscope.domain.exceptions import ProviderError
from riskscope.domain.values import AnalysisRequest, RawModelResponse
from riskscope.infrastructure.llm import ModelProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(ModelProvider):
    """Model provider for OpenAI chat models.

    Parameters
    ----------
    api_key:
        OpenAI API key.
    default_model:
        Model used when the request does not name one.
    timeout:
        Request timeout in seconds.
    base_url:
        Optional base URL (proxies or Azure-style gateways).
    organization:
        Optional OpenAI organization ID.
    http_client:
        Optional pre-built ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4.1-2025-04-14",
        timeout: float = 60.0,
        base_url: str | None = None,
        organization: str | None = None,
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
        if organization is not None:
            client_kwargs["organization"] = organization
        if http_client is not None:
            client_kwargs["http_client"] = http_client

        self._client = openai.AsyncOpenAI(**client_kwargs)

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return self._default_model

    async def complete(self, request: AnalysisRequest) -> RawModelResponse:
        """Send one Chat Completions call; the system prompt leads the messages."""
        body = request.with_model(self.resolve_model(request)).to_wire(
            include_system_message=True
        )

        started = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(**body)
        except openai.APIStatusError as exc:
            raise ProviderError(
                f"OpenAI API error (status {exc.status_code}): {exc.message}",
                status=exc.status_code,
                body=exc.response.text,
                provider=self.provider_name,
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProviderError(
                f"OpenAI API connection failed: {exc}",
                provider=self.provider_name,
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(
                f"Unexpected error calling OpenAI API: {exc}",
                provider=self.provider_name,
            ) from exc
        latency = time.perf_counter() - started

        logger.debug("OpenAIProvider: %s answered in %.2fs", body["model"], latency)
        return self._parse_response(response, latency)

    async def aclose(self) -> None:
        await self._client.close()

    # -- internal helpers -----------------------------------------------------

    def _parse_response(self, response: object, latency: float) -> RawModelResponse:
        choices = getattr(response, "choices", None) or []
        if not choices:
            raise ProviderError(
                "OpenAI response contains no choices",
                status=200,
                provider=self.provider_name,
            )

        message = getattr(choices[0], "message", None)
        text = getattr(message, "content", None) if message is not None else None
        if not isinstance(text, str):
            raise ProviderError(
                "OpenAI response message has no text content",
                status=200,
                provider=self.provider_name,
            )

        usage: dict[str, int] = {}
        usage_obj = getattr(response, "usage", None)
        if usage_obj is not None:
            for key in ("prompt_tokens", "completion_tokens", "total_tokens"):
                value = getattr(usage_obj, key, None)
                if isinstance(value, int):
                    usage[key] = value

        return RawModelResponse(
            text=text,
            http_status=200,
            provider_latency=latency,
            model=getattr(response, "model", "") or "",
            usage=usage,
        )

    def __repr__(self) -> str:
        return f"OpenAIProvider(model={self._default_model!r})"
