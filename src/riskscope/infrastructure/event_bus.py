"""Event bus infrastructure for riskscope telemetry.

Provides an asynchronous pub-sub event bus plus an in-memory store that keeps
the per-analysis telemetry trail.  The bus accepts ``DomainEvent`` instances and
dispatches them to registered handlers, catching and logging errors so that a
single failing subscriber never breaks an analysis.
"""

from __future__ import annotations

import inspect
import logging
from collections import Counter, defaultdict, deque
from collections.abc import Callable, Sequence
from dataclasses import asdict
from enum import Enum
from typing import Any

from riskscope.domain.events import DomainEvent

logger = logging.getLogger(__name__)

# Handlers may be sync or async callables
Handler = Callable[[DomainEvent], Any]


# ===================================================================== #
#  Asynchronous Event Bus                                                #
# ===================================================================== #

class AsyncEventBus:
    """Async-compatible event bus.

    Handlers may be either regular callables or async coroutines; the bus
    inspects each handler at dispatch time and ``await``s coroutines
    transparently.  Global handlers run before typed handlers.

    Usage::

        bus = AsyncEventBus()
        bus.subscribe(FallbackUsed, alert_on_fallback)
        await bus.publish(FallbackUsed(fingerprint=42, attempts=3))
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[Handler]] = defaultdict(list)
        self._global_handlers: list[Handler] = []

    # -- subscription -------------------------------------------------------

    def subscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        """Register *handler* (sync or async) for *event_type*."""
        self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        """Register *handler* (sync or async) for all event types."""
        self._global_handlers.append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: Handler) -> bool:
        """Remove *handler* from *event_type*. Returns ``True`` if found."""
        handlers = self._handlers.get(event_type, [])
        try:
            handlers.remove(handler)
            return True
        except ValueError:
            return False

    def unsubscribe_all(self, handler: Handler) -> bool:
        """Remove a global handler. Returns ``True`` if found."""
        try:
            self._global_handlers.remove(handler)
            return True
        except ValueError:
            return False

    # -- publishing ---------------------------------------------------------

    async def publish(self, event: DomainEvent) -> None:
        """Publish *event* to all matching handlers (global first)."""
        for handler in list(self._global_handlers):
            await self._dispatch(handler, event)

        for handler in list(self._handlers.get(type(event), [])):
            await self._dispatch(handler, event)

    async def publish_many(self, events: Sequence[DomainEvent]) -> None:
        """Publish a batch of events in order."""
        for event in events:
            await self.publish(event)

    async def _dispatch(self, handler: Handler, event: DomainEvent) -> None:
        try:
            outcome = handler(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception(
                "Error in event handler %r for %s", handler, type(event).__name__
            )

    # -- introspection / lifecycle ------------------------------------------

    def handler_count(self, event_type: type[DomainEvent] | None = None) -> int:
        """Return the number of handlers registered."""
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        total = sum(len(hs) for hs in self._handlers.values())
        return total + len(self._global_handlers)

    def clear(self) -> None:
        """Remove all registered handlers."""
        self._handlers.clear()
        self._global_handlers.clear()


# ===================================================================== #
#  Event Store                                                           #
# ===================================================================== #

def event_record(event: DomainEvent) -> dict[str, Any]:
    """JSON-ready form of *event*: its fields plus an ``event`` type name."""
    record: dict[str, Any] = {"event": type(event).__name__}
    for key, value in asdict(event).items():
        record[key] = value.value if isinstance(value, Enum) else value
    return record


class EventStore:
    """Telemetry trail of the analyses run through one bus.

    Subscribe it to every event and read back what happened to a given
    query, keyed by its fingerprint::

        store = EventStore()
        bus.subscribe_all(store.append)
        await orchestrator.analyze(["Tesla"], "quick")
        store.trail(fp)   # ["AnalysisRequested", "CacheMiss", ...]

    Parameters
    ----------
    max_size:
        Oldest events are dropped beyond this many.  ``0`` keeps everything.
    """

    def __init__(self, max_size: int = 0) -> None:
        self._events: deque[DomainEvent] = deque(maxlen=max_size or None)

    def append(self, event: DomainEvent) -> None:
        self._events.append(event)

    def query(
        self,
        event_type: type[DomainEvent] | None = None,
        fingerprint: int | None = None,
        limit: int = 0,
    ) -> list[DomainEvent]:
        """Events in publication order, optionally filtered.

        ``fingerprint`` keeps only events that carry that fingerprint; events
        without one (circuit transitions) are excluded by it.  ``limit``
        keeps the most recent matches.
        """
        result = list(self._events)
        if event_type is not None:
            result = [e for e in result if isinstance(e, event_type)]
        if fingerprint is not None:
            result = [e for e in result if getattr(e, "fingerprint", None) == fingerprint]
        if limit > 0:
            result = result[-limit:]
        return result

    def types(self) -> list[str]:
        """Event class names in publication order."""
        return [type(e).__name__ for e in self._events]

    def trail(self, fingerprint: int) -> list[str]:
        """Event class names recorded for one analysis."""
        return [type(e).__name__ for e in self.query(fingerprint=fingerprint)]

    def counts(self) -> Counter[str]:
        return Counter(self.types())

    def to_records(self, fingerprint: int | None = None) -> list[dict[str, Any]]:
        return [event_record(e) for e in self.query(fingerprint=fingerprint)]

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)

    def clear(self) -> None:
        self._events.clear()
