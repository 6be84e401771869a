"""Model provider factory for riskscope.

Registry-based factory that turns :class:`ProviderSettings` into a concrete
:class:`ModelProvider`, reading the API key from the process environment.
A missing key is a :class:`ConfigurationError`, raised before any network
call is attempted.

Usage::

    provider = create_provider(ProviderSettings(provider="openai"))

    factory = ProviderFactory()
    factory.register("mock", lambda settings, api_key: MyProvider())
    provider = factory.create(ProviderSettings(provider="mock"))
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from riskscope.domain.exceptions import ConfigurationError
from riskscope.infrastructure.config import ProviderSettings
from riskscope.infrastructure.llm import ModelProvider

logger = logging.getLogger(__name__)

# (settings, api_key) -> provider
ProviderConstructor = Callable[[ProviderSettings, str], ModelProvider]


class ProviderFactory:
    """Registry mapping provider names to constructors.

    Built-in providers (``anthropic``, ``openai``, ``http``) are registered
    on construction; custom ones via :meth:`register`.
    """

    def __init__(self) -> None:
        self._registry: dict[str, ProviderConstructor] = {
            "anthropic": self._create_anthropic,
            "openai": self._create_openai,
            "http": self._create_http,
        }
        # Key is optional only for the raw HTTP provider (local gateways)
        self._key_optional: set[str] = {"http"}

    # -- registration ---------------------------------------------------------

    def register(
        self,
        name: str,
        constructor: ProviderConstructor,
        overwrite: bool = False,
        requires_key: bool = True,
    ) -> None:
        """Register *constructor* under *name*.

        Raises
        ------
        ValueError
            If the name is already registered and ``overwrite`` is ``False``.
        """
        if name in self._registry and not overwrite:
            raise ValueError(
                f"Provider {name!r} is already registered. "
                f"Use overwrite=True to replace it."
            )
        self._registry[name] = constructor
        if requires_key:
            self._key_optional.discard(name)
        else:
            self._key_optional.add(name)
        logger.debug("ProviderFactory: registered provider %r", name)

    @property
    def registered_providers(self) -> list[str]:
        return sorted(self._registry)

    # -- creation -------------------------------------------------------------

    def create(
        self,
        settings: ProviderSettings,
        environ: Mapping[str, str] | None = None,
    ) -> ModelProvider:
        """Build the provider named by ``settings.provider``.

        Raises
        ------
        ConfigurationError
            If the provider is unknown or its API key is missing.
        """
        constructor = self._registry.get(settings.provider)
        if constructor is None:
            available = ", ".join(self.registered_providers)
            raise ConfigurationError(
                f"Unknown provider {settings.provider!r}. "
                f"Available providers: {available}",
                setting="provider",
            )

        if settings.provider in self._key_optional:
            try:
                api_key = settings.resolve_api_key(environ)
            except ConfigurationError:
                api_key = ""
        else:
            api_key = settings.resolve_api_key(environ)

        logger.info(
            "ProviderFactory: creating %r provider (model=%s)",
            settings.provider,
            settings.resolved_model,
        )
        return constructor(settings, api_key)

    # -- built-in constructors -------------------------------------------------

    @staticmethod
    def _create_anthropic(settings: ProviderSettings, api_key: str) -> ModelProvider:
        from riskscope.infrastructure.llm.anthropic import AnthropicProvider

        return AnthropicProvider(
            api_key=api_key,
            default_model=settings.resolved_model,
            timeout=settings.timeout,
            base_url=settings.base_url or None,
        )

    @staticmethod
    def _create_openai(settings: ProviderSettings, api_key: str) -> ModelProvider:
        from riskscope.infrastructure.llm.openai_provider import OpenAIProvider

        return OpenAIProvider(
            api_key=api_key,
            default_model=settings.resolved_model,
            timeout=settings.timeout,
            base_url=settings.base_url or None,
        )

    @staticmethod
    def _create_http(settings: ProviderSettings, api_key: str) -> ModelProvider:
        from riskscope.infrastructure.llm.http import HTTPProvider

        return HTTPProvider(
            base_url=settings.base_url,
            api_key=api_key or None,
            default_model=settings.resolved_model,
            timeout=settings.timeout,
        )


def create_provider(
    settings: ProviderSettings | None = None,
    environ: Mapping[str, str] | None = None,
) -> ModelProvider:
    """Build a provider from *settings* (default: ``ProviderSettings.from_env``)."""
    if settings is None:
        settings = ProviderSettings.from_env(environ)
    return ProviderFactory().create(settings, environ)
