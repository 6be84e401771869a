"""Model provider layer for riskscope.

This sub-package provides a **provider-agnostic** abstraction over the LLM
backends the analysis core can call (Anthropic, OpenAI, any OpenAI-compatible
HTTP endpoint, or a LangChain chat model).

Every provider normalizes its reply to a single ``text`` field so the
response parser never needs to know which backend answered.  Providers do
**not** retry: retries, backoff and circuit breaking are layered above them
by the orchestrator.

Public API
----------
ModelProvider
    Abstract base class every concrete provider implements.
extract_text
    Normalizes Anthropic-shaped and OpenAI-shaped JSON bodies.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from riskscope.domain.exceptions import ProviderError
from riskscope.domain.values import AnalysisRequest, RawModelResponse

logger = logging.getLogger(__name__)


# =========================================================================== #
#  Response shape normalization                                                #
# =========================================================================== #

def extract_text(body: Any) -> str:
    """Pull the generated text out of a provider JSON body.

    Accepts the Anthropic Messages shape ``{"content": [{"text": ...}]}`` and
    the OpenAI Chat Completions shape
    ``{"choices": [{"message": {"content": ...}}]}``.

    Raises
    ------
    ProviderError
        If *body* matches neither shape.
    """
    if isinstance(body, dict):
        content = body.get("content")
        if isinstance(content, list) and content:
            parts = [
                block.get("text", "")
                for block in content
                if isinstance(block, dict) and isinstance(block.get("text"), str)
            ]
            if parts:
                return "".join(parts)

        choices = body.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]

    snippet = str(body)[:200]
    raise ProviderError(
        f"Unrecognised provider response shape: {snippet}",
        status=200,
        body=snippet,
    )


# =========================================================================== #
#  Abstract provider                                                           #
# =========================================================================== #

class ModelProvider(ABC):
    """Abstract base class for model backends.

    Usage::

        provider = AnthropicProvider(api_key="...")
        raw = await provider.complete(request)
        print(raw.text)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable provider identifier (e.g. ``"anthropic"``)."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when a request does not name one."""
        ...

    @abstractmethod
    async def complete(self, request: AnalysisRequest) -> RawModelResponse:
        """Issue exactly one model call.

        Returns
        -------
        RawModelResponse

        Raises
        ------
        ProviderError
            On non-2xx responses and transport failures.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources.  Default: nothing to release."""
        return None

    def resolve_model(self, request: AnalysisRequest) -> str:
        return request.model_id or self.default_model


__all__ = [
    "ModelProvider",
    "extract_text",
]


# ---------------------------------------------------------------------------
# Lazy imports for concrete providers (avoids importing every SDK up front)
# ---------------------------------------------------------------------------

def __getattr__(name: str):  # noqa: N807
    """Lazy-load concrete providers on attribute access."""
    _lazy_map = {
        "AnthropicProvider": "riskscope.infrastructure.llm.anthropic",
        "OpenAIProvider": "riskscope.infrastructure.llm.openai_provider",
        "HTTPProvider": "riskscope.infrastructure.llm.http",
        "ChatModelProvider": "riskscope.infrastructure.llm.langchain_bridge",
        "create_provider": "riskscope.infrastructure.llm.factory",
    }

    if name in _lazy_map:
        import importlib
        module = importlib.import_module(_lazy_map[name])
        return getattr(module, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
