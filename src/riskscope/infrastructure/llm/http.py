"""Raw HTTP provider for riskscope.

Uses ``httpx`` to POST the wire body ``{model, max_tokens, temperature,
messages}`` to any chat endpoint and normalizes either reply shape
(Anthropic ``content[0].text`` or OpenAI ``choices[0].message.content``)
with :func:`extract_text`.  This covers self-hosted gateways, proxies and
OpenAI-compatible servers (Ollama, vLLM, LM Studio, Together, ...).
"""

from __future__ import annotations

import json
import logging
import time

import httpx

from riskscope.domain.exceptions import ProviderError
from riskscope.domain.values import AnalysisRequest, RawModelResponse
from riskscope.infrastructure.llm import ModelProvider, extract_text

logger = logging.getLogger(__name__)


class HTTPProvider(ModelProvider):
    """Model provider for any JSON chat endpoint.

    Parameters
    ----------
    base_url:
        Base URL of the API (e.g. ``"http://localhost:11434/v1"``).
    api_key:
        Optional key, sent as ``Authorization: Bearer <key>``.
    default_model:
        Model used when the request does not name one.
    completions_path:
        Path appended to *base_url*.  Defaults to ``"/chat/completions"``.
    system_as_message:
        Send the system prompt as the first message (OpenAI convention).
        If ``False`` it is sent as a top-level ``system`` field (Anthropic
        convention).
    timeout:
        Request timeout in seconds.
    extra_headers:
        Additional headers for every request.
    transport:
        Optional ``httpx`` transport (e.g. ``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        default_model: str = "default",
        completions_path: str = "/chat/completions",
        system_as_message: bool = True,
        timeout: float = 60.0,
        extra_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._completions_path = completions_path
        self._default_model = default_model
        self._system_as_message = system_as_message

        headers: dict[str, str] = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        if extra_headers:
            headers.update(extra_headers)

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
        )

    @property
    def provider_name(self) -> str:
        return "http"

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def endpoint_url(self) -> str:
        return f"{self._base_url}{self._completions_path}"

    def build_body(self, request: AnalysisRequest) -> dict:
        """Wire body for *request*."""
        body = request.with_model(self.resolve_model(request)).to_wire(
            include_system_message=self._system_as_message
        )
        if not self._system_as_message and request.system_prompt:
            body["system"] = request.system_prompt
        return body

    async def complete(self, request: AnalysisRequest) -> RawModelResponse:
        """POST the request and normalize the reply text.

        Raises
        ------
        ProviderError
            ``status`` carries the HTTP status for non-2xx replies and for
            2xx replies whose body is not a recognised JSON shape; it is
            ``None`` for transport failures.
        """
        body = self.build_body(request)
        started = time.perf_counter()
        try:
            response = await self._client.post(self.endpoint_url, json=body)
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"Request to {self.endpoint_url} timed out: {exc}",
                provider=self.provider_name,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"Failed to reach {self.endpoint_url}: {exc}",
                provider=self.provider_name,
            ) from exc
        latency = time.perf_counter() - started

        if not response.is_success:
            raise ProviderError(
                f"HTTP {response.status_code} from {self.endpoint_url}",
                status=response.status_code,
                body=response.text,
                provider=self.provider_name,
            )

        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise ProviderError(
                f"Invalid JSON response from {self.endpoint_url}: {exc}",
                status=response.status_code,
                body=response.text[:500],
                provider=self.provider_name,
            ) from exc

        usage_data = data.get("usage") if isinstance(data, dict) else None
        if not isinstance(usage_data, dict):
            usage_data = {}
        usage = {
            key: int(value)
            for key, value in usage_data.items()
            if isinstance(value, (int, float)) and not isinstance(value, bool)
        }

        logger.debug(
            "HTTPProvider: %s answered %d in %.2fs",
            self.endpoint_url,
            response.status_code,
            latency,
        )
        return RawModelResponse(
            text=extract_text(data),
            http_status=response.status_code,
            provider_latency=latency,
            model=str(data.get("model", "")) if isinstance(data, dict) else "",
            usage=usage,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def __repr__(self) -> str:
        return (
            f"HTTPProvider(base_url={self._base_url!r}, "
            f"model={self._default_model!r})"
        )
