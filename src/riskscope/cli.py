"""Command-line interface for riskscope.

Provides subcommands for running an analysis, probing the configured model
provider, and inspecting query fingerprints.  Provider SDKs are imported
lazily so that ``riskscope fingerprint`` works without any credentials.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    riskscope = "riskscope.cli:main"

Usage examples::

    riskscope analyze "Apple Inc." "Microsoft" --mode detailed
    riskscope analyze Tesla --mode quick --provider openai --json
    riskscope health --provider anthropic
    riskscope fingerprint "Apple Inc." "apple inc" --mode quick
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

from riskscope.domain.enums import AnalysisMode
from riskscope.domain.exceptions import CircuitOpenError, ConfigurationError

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _add_provider_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--provider",
        type=str,
        default=None,
        choices=["anthropic", "openai", "http"],
        help="Model provider.  (default: $RISKSCOPE_PROVIDER or anthropic)",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model identifier.  (default: the provider's default model)",
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="Endpoint override; required for --provider http.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="riskscope",
        description="riskscope -- LLM-backed financial risk analysis.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show version and exit.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.  (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- analyze -------------------------------------------------------------
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyse one or more companies.",
        description="Run a financial risk analysis for the given company names.",
    )
    analyze_parser.add_argument("names", nargs="+", help="Company names.")
    analyze_parser.add_argument(
        "--mode",
        type=str,
        default="detailed",
        choices=[m.value for m in AnalysisMode],
        help="Analysis depth.  (default: detailed)",
    )
    _add_provider_arguments(analyze_parser)
    analyze_parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON file with orchestrator settings.",
    )
    analyze_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print the result as JSON instead of a table.",
    )
    analyze_parser.add_argument(
        "--events",
        action="store_true",
        default=False,
        help="Also show the telemetry events the analysis produced.",
    )
    analyze_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Also write the result to this JSON file.",
    )

    # -- health --------------------------------------------------------------
    health_parser = subparsers.add_parser(
        "health",
        help="Check that the model provider answers.",
        description="Send a one-line probe prompt to the configured provider.",
    )
    _add_provider_arguments(health_parser)
    health_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print the report as JSON.",
    )

    # -- fingerprint ---------------------------------------------------------
    fp_parser = subparsers.add_parser(
        "fingerprint",
        help="Show the normalized query, fingerprint and cache key.",
    )
    fp_parser.add_argument("names", nargs="+", help="Company names.")
    fp_parser.add_argument(
        "--mode",
        type=str,
        default="detailed",
        choices=[m.value for m in AnalysisMode],
        help="Analysis depth.  (default: detailed)",
    )
    fp_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print as JSON.",
    )

    return parser


# =========================================================================
# Helpers
# =========================================================================

def _load_config(args: argparse.Namespace) -> Any:
    from riskscope.infrastructure.config import (
        OrchestratorConfig,
        ProviderSettings,
        load_config_from_json,
    )

    config_path = getattr(args, "config", None)
    if config_path:
        config = load_config_from_json(Path(config_path).read_text(encoding="utf-8"))
        provider = config.provider
    else:
        config = OrchestratorConfig()
        provider = ProviderSettings.from_env()

    overrides: dict[str, Any] = {}
    if args.provider:
        overrides["provider"] = args.provider
    if args.model:
        overrides["model"] = args.model
    if args.base_url:
        overrides["base_url"] = args.base_url
    if overrides:
        provider = dataclasses.replace(provider, **overrides)
    provider.validate()
    return dataclasses.replace(config, provider=provider)


# =========================================================================
# Subcommand handlers
# =========================================================================

def _cmd_analyze(args: argparse.Namespace) -> int:
    """Execute the ``analyze`` subcommand."""
    from riskscope.infrastructure.event_bus import AsyncEventBus, EventStore
    from riskscope.infrastructure.llm.factory import create_provider
    from riskscope.presentation import RiskConsole, export_json, outcome_to_dict
    from riskscope.services.orchestrator import AnalysisOrchestrator

    config = _load_config(args)
    provider = create_provider(config.provider)
    store = EventStore()
    bus = AsyncEventBus()
    bus.subscribe_all(store.append)
    orchestrator = AnalysisOrchestrator(
        provider,
        bus=bus,
        config=config,
        model_id=config.provider.resolved_model,
    )

    async def _run() -> Any:
        try:
            return await orchestrator.analyze(args.names, args.mode)
        finally:
            await orchestrator.aclose()

    outcome = asyncio.run(_run())

    if args.json:
        data = outcome_to_dict(outcome)
        if args.events:
            data["events"] = store.to_records()
        print(json.dumps(data, indent=2, default=str))
    else:
        console = RiskConsole()
        console.print_outcome(outcome)
        if args.events:
            console.print_events(store)

    if args.output:
        export_json(outcome, args.output)
        print(f"Exported to {args.output}", file=sys.stderr)
    return 0


def _cmd_health(args: argparse.Namespace) -> int:
    """Execute the ``health`` subcommand."""
    from riskscope.infrastructure.llm.factory import create_provider
    from riskscope.presentation import RiskConsole
    from riskscope.services.health import check_provider_health

    config = _load_config(args)
    provider = create_provider(config.provider)

    async def _run() -> Any:
        try:
            return await check_provider_health(provider, config.provider.resolved_model)
        finally:
            await provider.aclose()

    report = asyncio.run(_run())

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        RiskConsole().print_health(report)
    return 0 if report.success else 1


def _cmd_fingerprint(args: argparse.Namespace) -> int:
    """Execute the ``fingerprint`` subcommand."""
    from riskscope.presentation import RiskConsole
    from riskscope.services.fingerprint import (
        cache_key,
        fingerprint,
        normalize_company_names,
    )

    mode = AnalysisMode.coerce(args.mode)
    query = normalize_company_names(args.names)
    fp = fingerprint(query, mode)
    key = cache_key(query, mode)

    if args.json:
        print(
            json.dumps(
                {
                    "companies": list(query.names),
                    "mode": mode.value,
                    "fingerprint": fp,
                    "cache_key": key,
                },
                indent=2,
            )
        )
    else:
        RiskConsole().print_fingerprint(query, mode, fp, key)
    return 0


# =========================================================================
# Main entry point
# =========================================================================

def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from riskscope import __version__
        print(f"riskscope {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(level=getattr(logging, args.log_level), format=_LOG_FORMAT)

    handlers: dict[str, Any] = {
        "analyze": _cmd_analyze,
        "health": _cmd_health,
        "fingerprint": _cmd_fingerprint,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        exit_code = handler(args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        exit_code = 2
    except CircuitOpenError as exc:
        print(
            f"Service degraded: {exc} (retry in {exc.retry_after:.0f}s)",
            file=sys.stderr,
        )
        exit_code = 3
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)
