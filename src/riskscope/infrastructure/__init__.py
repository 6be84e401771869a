"""Infrastructure layer: configuration, event bus and model providers."""

from riskscope.infrastructure.config import (
    CircuitSettings,
    OrchestratorConfig,
    ProviderSettings,
    RetrySettings,
    load_config_from_json,
)
from riskscope.infrastructure.event_bus import AsyncEventBus, EventStore

__all__ = [
    "AsyncEventBus",
    "CircuitSettings",
    "EventStore",
    "OrchestratorConfig",
    "ProviderSettings",
    "RetrySettings",
    "load_config_from_json",
]
