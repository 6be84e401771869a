"""Configuration dataclasses for riskscope.

Each config is a plain ``dataclass`` with a ``validate()`` method that raises
``ValueError`` on invalid combinations.  No third-party dependencies -- just
stdlib ``dataclasses``.

Configs are **frozen** so they can be shared between concurrently running
analyses without risking silent mutation.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from typing import Any

from riskscope.domain.exceptions import ConfigurationError

# ===================================================================== #
#  Provider Configuration                                                #
# ===================================================================== #

_DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-3-5-sonnet-20241022",
    "openai": "gpt-4.1-2025-04-14",
    "http": "default",
}

_DEFAULT_KEY_ENV: dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "http": "RISKSCOPE_API_KEY",
}

_VALID_PROVIDERS = frozenset(_DEFAULT_MODELS)


@dataclass(frozen=True)
class ProviderSettings:
    """Which model endpoint to call and how.

    Attributes
    ----------
    provider:
        ``"anthropic"``, ``"openai"`` or ``"http"`` (any OpenAI-compatible
        chat-completions endpoint; requires ``base_url``).
    model:
        Model identifier.  Empty means the provider's default.
    base_url:
        Endpoint override (proxies, self-hosted gateways).
    timeout:
        Per-request timeout in seconds.
    api_key_env:
        Environment variable holding the API key.  Empty means the
        provider's conventional variable.
    """

    provider: str = "anthropic"
    model: str = ""
    base_url: str = ""
    timeout: float = 60.0
    api_key_env: str = ""

    @property
    def resolved_model(self) -> str:
        return self.model or _DEFAULT_MODELS.get(self.provider, "")

    @property
    def resolved_key_env(self) -> str:
        return self.api_key_env or _DEFAULT_KEY_ENV.get(self.provider, "")

    def validate(self) -> None:
        if self.provider not in _VALID_PROVIDERS:
            raise ValueError(
                f"provider must be one of {sorted(_VALID_PROVIDERS)}, "
                f"got '{self.provider}'"
            )
        if self.provider == "http" and not self.base_url:
            raise ValueError("base_url is required for provider='http'")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")

    def resolve_api_key(self, environ: Mapping[str, str] | None = None) -> str:
        """Read the API key from the environment.

        Raises
        ------
        ConfigurationError
            If the variable is unset or blank.
        """
        env = os.environ if environ is None else environ
        name = self.resolved_key_env
        key = env.get(name, "").strip()
        if not key:
            raise ConfigurationError(
                f"{self.provider} API key not configured: "
                f"{name} environment variable is missing",
                setting=name,
            )
        return key

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderSettings:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ProviderSettings:
        """Build settings from ``RISKSCOPE_*`` environment variables."""
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {
            "provider": env.get("RISKSCOPE_PROVIDER", "anthropic").strip().lower(),
            "model": env.get("RISKSCOPE_MODEL", ""),
            "base_url": env.get("RISKSCOPE_BASE_URL", ""),
        }
        if env.get("RISKSCOPE_TIMEOUT"):
            data["timeout"] = float(env["RISKSCOPE_TIMEOUT"])
        return cls.from_dict(data)


# ===================================================================== #
#  Resilience Configuration                                              #
# ===================================================================== #

@dataclass(frozen=True)
class RetrySettings:
    """Bounded retry with exponential backoff.

    The delay before attempt *n* (n >= 2) is
    ``min(base_delay * 2 ** (n - 2), max_delay)``.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0

    def validate(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetrySettings:
        valid_keys = {f.name for f in fields(cls)}
        cfg = cls(**{k: v for k, v in data.items() if k in valid_keys})
        cfg.validate()
        return cfg


@dataclass(frozen=True)
class CircuitSettings:
    failure_threshold: int = 5
    cooldown_seconds: float = 60.0

    def validate(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError(
                f"failure_threshold must be >= 1, got {self.failure_threshold}"
            )
        if self.cooldown_seconds < 0:
            raise ValueError(
                f"cooldown_seconds must be >= 0, got {self.cooldown_seconds}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CircuitSettings:
        valid_keys = {f.name for f in fields(cls)}
        cfg = cls(**{k: v for k, v in data.items() if k in valid_keys})
        cfg.validate()
        return cfg


# ===================================================================== #
#  Orchestrator Configuration                                            #
# ===================================================================== #

@dataclass(frozen=True)
class OrchestratorConfig:
    """Top-level knobs for :class:`AnalysisOrchestrator`.

    Attributes
    ----------
    temperature:
        Sampling temperature sent with every request.  Kept low to bias the
        model toward reproducible answers.
    cache_enabled:
        If ``False`` the result cache neither serves nor stores.
    quick_max_tokens / detailed_max_tokens:
        Response budget per analysis mode.
    version:
        Stamped into consistency metadata.
    """

    temperature: float = 0.1
    cache_enabled: bool = True
    quick_max_tokens: int = 4000
    detailed_max_tokens: int = 8000
    version: str = "1.0"
    retry: RetrySettings = field(default_factory=RetrySettings)
    circuit: CircuitSettings = field(default_factory=CircuitSettings)
    provider: ProviderSettings = field(default_factory=ProviderSettings)

    def validate(self) -> None:
        if not (0.0 <= self.temperature <= 2.0):
            raise ValueError(
                f"temperature must be in [0, 2], got {self.temperature}"
            )
        if self.quick_max_tokens < 1 or self.detailed_max_tokens < 1:
            raise ValueError("max token budgets must be >= 1")
        self.retry.validate()
        self.circuit.validate()
        self.provider.validate()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrchestratorConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        nested = {
            "retry": RetrySettings,
            "circuit": CircuitSettings,
            "provider": ProviderSettings,
        }
        for key, sub_cls in nested.items():
            if isinstance(filtered.get(key), dict):
                filtered[key] = sub_cls.from_dict(filtered[key])
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


def load_config_from_json(json_str: str) -> OrchestratorConfig:
    """Parse a JSON object into a validated :class:`OrchestratorConfig`."""
    raw = json.loads(json_str)
    if not isinstance(raw, dict):
        raise ValueError("Top-level JSON must be an object")
    return OrchestratorConfig.from_dict(raw)
