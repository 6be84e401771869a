#!/usr/bin/env python3
"""Example 01: offline risk analysis with a scripted provider.

Demonstrates the orchestration guarantees without an API key:
- identical concurrent requests share one model call
- repeated queries are served from the cache, in any name order
- an unreachable provider degrades to a deterministic fallback

Set ANTHROPIC_API_KEY (or RISKSCOPE_PROVIDER=openai plus OPENAI_API_KEY)
and pass --live to run the first analysis against a real model instead.

Run:
    PYTHONPATH=src python examples/01_offline_analysis.py
"""

from __future__ import annotations

import asyncio
import logging
import sys

from riskscope import AnalysisMode, AnalysisOrchestrator
from riskscope.domain.exceptions import ProviderError
from riskscope.infrastructure.event_bus import AsyncEventBus, EventStore
from riskscope.presentation import RiskConsole
from riskscope.testing import ScriptedProvider, sample_response


def _build_provider(live: bool, names: list[str]):
    if live:
        from riskscope.infrastructure.llm.factory import create_provider

        return create_provider()
    return ScriptedProvider(sample_response(names), delay=0.2)


async def main(live: bool = False) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    console = RiskConsole()
    names = ["Apple Inc.", "Microsoft", "Tesla"]

    store = EventStore()
    bus = AsyncEventBus()
    bus.subscribe_all(store.append)

    provider = _build_provider(live, names)
    orchestrator = AnalysisOrchestrator(provider, bus=bus)

    # Three identical requests in flight at once: one model call
    outcomes = await asyncio.gather(
        *(orchestrator.analyze(names, AnalysisMode.DETAILED) for _ in range(3))
    )
    console.print_outcome(outcomes[0])

    # Same companies, different order and spelling: cache hit
    cached = await orchestrator.analyze(["tesla", "MICROSOFT", "apple inc"], "detailed")
    print(f"served from cache: {cached.from_cache}")
    await orchestrator.aclose()

    # A provider that never answers: deterministic fallback after 3 attempts
    offline = AnalysisOrchestrator(
        ScriptedProvider(ProviderError("connection refused")),
        bus=bus,
    )
    degraded = await offline.analyze(["Tesla"], AnalysisMode.QUICK)
    console.print_outcome(degraded)

    print("events:", ", ".join(store.types()))


if __name__ == "__main__":
    asyncio.run(main(live="--live" in sys.argv))
