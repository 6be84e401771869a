"""Bridge from a LangChain ``BaseChatModel`` to :class:`ModelProvider`.

Lets any LangChain chat integration (``ChatAnthropic``, ``ChatOpenAI``,
``ChatOllama``, ...) drive the analysis core.

Example
-------
::

    from langchain_anthropic import ChatAnthropic
    from riskscope.infrastructure.llm.langchain_bridge import ChatModelProvider

    provider = ChatModelProvider(ChatAnthropic(model="claude-3-5-sonnet-20241022",
                                               temperature=0.1))

Sampling parameters (temperature, max tokens) are whatever the wrapped chat
model was configured with; the request's values are only used for logging.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from riskscope.domain.exceptions import ProviderError
from riskscope.domain.values import AnalysisRequest, RawModelResponse
from riskscope.infrastructure.llm import ModelProvider

logger = logging.getLogger(__name__)


def _message_text(message: BaseMessage) -> str:
    content: Any = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and isinstance(block.get("text"), str):
            parts.append(block["text"])
    return "".join(parts)


class ChatModelProvider(ModelProvider):
    """Wraps a LangChain chat model as a :class:`ModelProvider`.

    Parameters
    ----------
    model:
        Any ``BaseChatModel``.
    model_name:
        Label reported as the default model.  Defaults to the chat model's
        ``_llm_type``.
    """

    def __init__(self, model: BaseChatModel, model_name: str = "") -> None:
        self._model = model
        self._model_name = model_name or model._llm_type

    @property
    def provider_name(self) -> str:
        return f"langchain-{self._model._llm_type}"

    @property
    def default_model(self) -> str:
        return self._model_name

    def to_messages(self, request: AnalysisRequest) -> list[BaseMessage]:
        messages: list[BaseMessage] = []
        if request.system_prompt:
            messages.append(SystemMessage(content=request.system_prompt))
        for msg in request.messages:
            if msg.role == "assistant":
                messages.append(AIMessage(content=msg.content))
            elif msg.role == "system":
                messages.append(SystemMessage(content=msg.content))
            else:
                messages.append(HumanMessage(content=msg.content))
        return messages

    async def complete(self, request: AnalysisRequest) -> RawModelResponse:
        started = time.perf_counter()
        try:
            reply = await self._model.ainvoke(self.to_messages(request))
        except Exception as exc:
            raise ProviderError(
                f"Chat model {self._model_name!r} failed: {exc}",
                provider=self.provider_name,
            ) from exc
        latency = time.perf_counter() - started

        usage: dict[str, int] = {}
        usage_metadata = getattr(reply, "usage_metadata", None) or {}
        for key in ("input_tokens", "output_tokens", "total_tokens"):
            if isinstance(usage_metadata.get(key), int):
                usage[key] = usage_metadata[key]

        return RawModelResponse(
            text=_message_text(reply),
            http_status=200,
            provider_latency=latency,
            model=self._model_name,
            usage=usage,
        )

    def __repr__(self) -> str:
        return f"ChatModelProvider(model={self._model_name!r})"
