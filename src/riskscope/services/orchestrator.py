"""Analysis orchestrator: the single entry point of the analysis core.

One call to :meth:`AnalysisOrchestrator.analyze` runs::

    normalize -> fingerprint -> cache check --hit--> done
                                    |
                                   miss -> circuit check --open--> CircuitOpenError
                                               |
                                             closed -> attempt loop
                                                          |
                       success: record_success, cache <---+---> exhausted:
                                                                record_failure,
                                                                fallback, cache

An attempt builds the prompt, calls the provider once and parses the reply;
provider and parse failures both count against the attempt budget.  Only
:class:`ConfigurationError`, :class:`CircuitOpenError` and cancellation ever
reach the caller; everything else ends in a (possibly degraded) result.

Identical concurrent queries share one in-flight analysis.  Telemetry is
published on an :class:`AsyncEventBus` at every transition.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from riskscope.domain.enums import AnalysisMode, AssessmentStatus
from riskscope.domain.events import (
    AnalysisCompleted,
    AnalysisFailed,
    AnalysisRequested,
    AttemptFailed,
    AttemptStarted,
    AttemptSucceeded,
    CacheHit,
    CacheMiss,
    CircuitClosed,
    CircuitOpened,
    CircuitRejected,
    DomainEvent,
    FallbackUsed,
    SingleFlightJoined,
    StatusChanged,
    ZoneMismatchDetected,
)
from riskscope.domain.exceptions import (
    AnalysisCancelledError,
    CircuitOpenError,
    RetryExhaustedError,
)
from riskscope.domain.models import AnalysisMetadata, AnalysisPayload, AnalysisResult
from riskscope.domain.values import (
    AnalysisOutcome,
    CompanyQuery,
    RawModelResponse,
)
from riskscope.infrastructure.config import OrchestratorConfig
from riskscope.infrastructure.event_bus import AsyncEventBus
from riskscope.infrastructure.llm import ModelProvider
from riskscope.services.cache import ResultCache
from riskscope.services.circuit_breaker import CircuitBreaker
from riskscope.services.consistency import build_consistency
from riskscope.services.fallback import build_fallback
from riskscope.services.fingerprint import cache_key, fingerprint, normalize_company_names
from riskscope.services.parser import ResponseParser, ZoneMismatch
from riskscope.services.prompts import PromptBuilder
from riskscope.services.retry import RetryExecutor

logger = logging.getLogger(__name__)

#: ``(assessment_id, status, result_or_none)`` -- may be sync or async.
StatusCallback = Callable[[str, AssessmentStatus, "AnalysisResult | None"], Any]

_FlightKey = tuple[AnalysisMode, frozenset[str]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _consume_exception(future: asyncio.Future) -> None:
    # Mark the exception retrieved when no follower ever awaited the flight
    if not future.cancelled():
        future.exception()


class _LeaderCancelled(AnalysisCancelledError):
    """The analysis a follower joined was cancelled by its own caller."""


class AnalysisOrchestrator:
    """Coordinates cache, circuit breaker, retries, provider and parser.

    Parameters
    ----------
    provider:
        The model backend.  Called at most ``retry.max_attempts`` times per
        analysis.
    cache / breaker / retry / prompt_builder / parser:
        Collaborators.  Built from *config* when omitted; pass shared
        instances to share state between orchestrators.
    bus:
        Event bus receiving telemetry.  A private bus is created if omitted.
    config:
        :class:`OrchestratorConfig`; defaults apply when omitted.
    clock:
        Returns the wall-clock time stamped on results.
    status_callback:
        Optional ``(assessment_id, status, result_or_none)`` hook invoked for
        calls that pass an ``assessment_id``.
    model_id:
        Model requested from the provider; defaults to the provider's own.
    """

    def __init__(
        self,
        provider: ModelProvider,
        cache: ResultCache | None = None,
        breaker: CircuitBreaker | None = None,
        retry: RetryExecutor | None = None,
        prompt_builder: PromptBuilder | None = None,
        parser: ResponseParser | None = None,
        bus: AsyncEventBus | None = None,
        config: OrchestratorConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
        status_callback: StatusCallback | None = None,
        model_id: str = "",
    ) -> None:
        self._config = config or OrchestratorConfig()
        self._provider = provider
        self._cache = cache if cache is not None else ResultCache(
            enabled=self._config.cache_enabled
        )
        self._breaker = breaker or CircuitBreaker(
            failure_threshold=self._config.circuit.failure_threshold,
            cooldown_seconds=self._config.circuit.cooldown_seconds,
        )
        self._retry = retry or RetryExecutor(
            max_attempts=self._config.retry.max_attempts,
            base_delay=self._config.retry.base_delay,
            max_delay=self._config.retry.max_delay,
        )
        self._prompts = prompt_builder or PromptBuilder(
            temperature=self._config.temperature,
            quick_max_tokens=self._config.quick_max_tokens,
            detailed_max_tokens=self._config.detailed_max_tokens,
        )
        self._parser = parser or ResponseParser()
        self._bus = bus or AsyncEventBus()
        self._clock = clock
        self._status_callback = status_callback
        self._model_id = model_id or provider.default_model
        self._inflight: dict[_FlightKey, asyncio.Future] = {}

    # -- accessors ----------------------------------------------------------

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    @property
    def bus(self) -> AsyncEventBus:
        return self._bus

    @property
    def provider(self) -> ModelProvider:
        return self._provider

    @property
    def in_flight(self) -> int:
        return len(self._inflight)

    # -- public API ---------------------------------------------------------

    async def analyze(
        self,
        names: Iterable[str] | CompanyQuery,
        mode: AnalysisMode | str = AnalysisMode.DETAILED,
        *,
        assessment_id: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AnalysisOutcome:
        """Analyse the companies in *names*.

        Returns
        -------
        AnalysisOutcome
            The result (model-backed, cached or fallback) and its
            consistency metadata.

        Raises
        ------
        ValueError
            If *names* is empty or contains a blank entry, or *mode* is
            unknown.
        CircuitOpenError
            If the breaker is open; no provider call is made.
        ConfigurationError
            If the provider is misconfigured.
        AnalysisCancelledError
            If *cancel_event* is set before a result is produced.
        """
        query = normalize_company_names(names)
        analysis_mode = AnalysisMode.coerce(mode)
        fp = fingerprint(query, analysis_mode)
        key = cache_key(query, analysis_mode)
        started = time.monotonic()
        log_extra = {"fingerprint": fp, "mode": analysis_mode.value, "companies": query.size}

        await self._set_status(assessment_id, AssessmentStatus.PENDING)
        await self._publish(
            AnalysisRequested(
                fingerprint=fp,
                mode=analysis_mode,
                company_count=query.size,
                assessment_id=assessment_id,
            )
        )

        while True:
            # Cache lookup and flight registration run without an await in
            # between so two identical calls can never both become leaders.
            cached = self._cache.get(query, analysis_mode)
            flight_key: _FlightKey = (analysis_mode, query.key_set)
            existing = self._inflight.get(flight_key) if cached is None else None
            leader: asyncio.Future | None = None
            if cached is None and existing is None:
                leader = asyncio.get_running_loop().create_future()
                leader.add_done_callback(_consume_exception)
                self._inflight[flight_key] = leader

            if cached is not None:
                logger.info("AnalysisOrchestrator: cache hit for %s", key, extra=log_extra)
                await self._publish(CacheHit(fingerprint=fp, cache_key=key))
                await self._set_status(assessment_id, AssessmentStatus.PROCESSING)
                return await self._complete(assessment_id, cached, started)

            if existing is not None:
                logger.info(
                    "AnalysisOrchestrator: joining in-flight analysis %s", key, extra=log_extra
                )
                await self._publish(SingleFlightJoined(fingerprint=fp))
                await self._set_status(assessment_id, AssessmentStatus.PROCESSING)
                try:
                    result = await self._await_flight(existing, cancel_event)
                except _LeaderCancelled:
                    logger.info(
                        "AnalysisOrchestrator: joined analysis %s was cancelled, restarting",
                        key,
                        extra=log_extra,
                    )
                    continue
                except asyncio.CancelledError:
                    await self._fail(assessment_id, fp, AnalysisCancelledError())
                    raise
                except Exception as exc:
                    await self._fail(assessment_id, fp, exc)
                    raise
                return await self._complete(assessment_id, result, started)

            break

        assert leader is not None
        try:
            await self._publish(CacheMiss(fingerprint=fp, cache_key=key))
            await self._set_status(assessment_id, AssessmentStatus.PROCESSING)
            result = await self._lead(query, analysis_mode, fp, key, cancel_event, log_extra)
        except asyncio.CancelledError:
            self._release(flight_key, leader, exc=_LeaderCancelled())
            await self._fail(assessment_id, fp, AnalysisCancelledError())
            raise
        except AnalysisCancelledError as exc:
            self._release(flight_key, leader, exc=_LeaderCancelled(attempts=exc.attempts))
            await self._fail(assessment_id, fp, exc)
            raise
        except Exception as exc:
            self._release(flight_key, leader, exc=exc)
            await self._fail(assessment_id, fp, exc)
            raise

        self._release(flight_key, leader, result=result)
        return await self._complete(assessment_id, result, started)

    async def aclose(self) -> None:
        await self._provider.aclose()

    # -- leader path --------------------------------------------------------

    async def _lead(
        self,
        query: CompanyQuery,
        mode: AnalysisMode,
        fp: int,
        key: str,
        cancel_event: asyncio.Event | None,
        log_extra: dict[str, Any],
    ) -> AnalysisResult:
        was_open = self._breaker.state.is_open
        if self._breaker.is_open():
            failures = self._breaker.consecutive_failures
            logger.warning(
                "AnalysisOrchestrator: circuit open, rejecting %s (%d consecutive failures)",
                key,
                failures,
                extra=log_extra,
            )
            await self._publish(CircuitRejected(fingerprint=fp, consecutive_failures=failures))
            raise CircuitOpenError(
                consecutive_failures=failures,
                retry_after=self._breaker.retry_after(),
                details={"fingerprint": fp},
            )
        if was_open:
            await self._publish(CircuitClosed(reason="cooldown"))

        max_attempts = self._retry.max_attempts

        async def on_attempt(attempt: int) -> None:
            logger.debug(
                "AnalysisOrchestrator: attempt %d/%d for %s", attempt, max_attempts, key
            )
            await self._publish(
                AttemptStarted(fingerprint=fp, attempt=attempt, max_attempts=max_attempts)
            )

        async def on_failure(attempt: int, exc: Exception, will_retry: bool, delay: float) -> None:
            await self._publish(
                AttemptFailed(
                    fingerprint=fp,
                    attempt=attempt,
                    error_type=type(exc).__name__,
                    error_message=str(exc),
                    will_retry=will_retry,
                    backoff_seconds=delay,
                )
            )

        attempts_made = 0

        async def attempt_once() -> tuple[AnalysisPayload, tuple[ZoneMismatch, ...], RawModelResponse]:
            nonlocal attempts_made
            attempts_made += 1
            request = self._prompts.build(query, mode, fp, model_id=self._model_id)
            raw = await self._provider.complete(request)
            outcome = self._parser.parse(raw.text)
            payload = outcome.unwrap()
            await self._publish(
                AttemptSucceeded(
                    fingerprint=fp,
                    attempt=attempts_made,
                    provider_latency=raw.provider_latency,
                )
            )
            return payload, outcome.zone_mismatches, raw

        try:
            payload, mismatches, raw = await self._retry.with_retry(
                attempt_once,
                cancel_event=cancel_event,
                on_attempt=on_attempt,
                on_failure=on_failure,
            )
        except RetryExhaustedError as exc:
            return await self._fall_back(query, mode, fp, key, exc, log_extra)

        was_open = self._breaker.state.is_open
        self._breaker.record_success()
        if was_open:
            await self._publish(CircuitClosed(reason="success"))

        for mismatch in mismatches:
            await self._publish(
                ZoneMismatchDetected(
                    fingerprint=fp,
                    company=mismatch.company,
                    score=mismatch.score,
                    reported_zone=mismatch.reported_zone,
                    expected_zone=mismatch.expected_zone,
                )
            )

        produced_at = self._clock()
        metadata = AnalysisMetadata(
            fingerprint=fp,
            mode=mode,
            temperature=self._prompts.temperature,
            model_id=raw.model or self._model_id,
            attempts_used=attempts_made,
            produced_at=produced_at,
            used_fallback=False,
            cache_key=key,
            zone_mismatches=tuple(m.describe() for m in mismatches),
        )
        result = AnalysisResult.from_payload(
            payload, metadata, analysis_date=produced_at.date().isoformat()
        )
        self._cache.put(query, mode, result)
        logger.info(
            "AnalysisOrchestrator: %s completed after %d attempt(s)",
            key,
            attempts_made,
            extra={**log_extra, "attempts": attempts_made},
        )
        return result

    async def _fall_back(
        self,
        query: CompanyQuery,
        mode: AnalysisMode,
        fp: int,
        key: str,
        exc: RetryExhaustedError,
        log_extra: dict[str, Any],
    ) -> AnalysisResult:
        was_open = self._breaker.state.is_open
        self._breaker.record_failure()
        if not was_open and self._breaker.state.is_open:
            await self._publish(
                CircuitOpened(consecutive_failures=self._breaker.consecutive_failures)
            )

        last_error = exc.last_error
        logger.warning(
            "AnalysisOrchestrator: %s exhausted %d attempts (%s), using fallback",
            key,
            exc.attempts,
            last_error,
            extra={**log_extra, "attempts": exc.attempts},
        )
        result = build_fallback(
            query,
            mode,
            fp,
            attempts_used=exc.attempts,
            temperature=self._prompts.temperature,
            model_id=self._model_id,
            produced_at=self._clock(),
            cache_key=key,
        )
        self._cache.put(query, mode, result)
        await self._publish(
            FallbackUsed(
                fingerprint=fp,
                attempts=exc.attempts,
                last_error_type=type(last_error).__name__ if last_error else "",
                last_error_message=str(last_error) if last_error else "",
            )
        )
        return result

    # -- helpers ------------------------------------------------------------

    async def _await_flight(
        self,
        flight: asyncio.Future,
        cancel_event: asyncio.Event | None,
    ) -> AnalysisResult:
        if cancel_event is None:
            return await asyncio.shield(flight)

        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({flight, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not waiter.done():
                waiter.cancel()
        if flight in done:
            return flight.result()
        raise AnalysisCancelledError(attempts=0)

    def _release(
        self,
        flight_key: _FlightKey,
        flight: asyncio.Future,
        result: AnalysisResult | None = None,
        exc: BaseException | None = None,
    ) -> None:
        if self._inflight.get(flight_key) is flight:
            del self._inflight[flight_key]
        if flight.done():
            return
        if exc is not None:
            flight.set_exception(exc)
        else:
            flight.set_result(result)

    async def _complete(
        self,
        assessment_id: str | None,
        result: AnalysisResult,
        started: float,
    ) -> AnalysisOutcome:
        outcome = AnalysisOutcome(
            result=result,
            consistency=build_consistency(result, version=self._config.version),
        )
        await self._set_status(assessment_id, AssessmentStatus.COMPLETED, result)
        await self._publish(
            AnalysisCompleted(
                fingerprint=result.metadata.fingerprint,
                attempts_used=result.metadata.attempts_used,
                used_fallback=result.used_fallback,
                from_cache=result.from_cache,
                consistency_score=outcome.consistency.score,
                duration_ms=(time.monotonic() - started) * 1000,
            )
        )
        return outcome

    async def _fail(self, assessment_id: str | None, fp: int, exc: BaseException) -> None:
        if isinstance(exc, AnalysisCancelledError):
            logger.info("AnalysisOrchestrator: analysis %d cancelled", fp)
        else:
            logger.error(
                "AnalysisOrchestrator: analysis %d failed: %s: %s",
                fp,
                type(exc).__name__,
                exc,
            )
        await self._set_status(assessment_id, AssessmentStatus.FAILED)
        await self._publish(
            AnalysisFailed(
                fingerprint=fp,
                error_type=type(exc).__name__,
                error_message=str(exc),
            )
        )

    async def _set_status(
        self,
        assessment_id: str | None,
        status: AssessmentStatus,
        result: AnalysisResult | None = None,
    ) -> None:
        if assessment_id is None:
            return
        await self._publish(StatusChanged(assessment_id=assessment_id, status=status))
        if self._status_callback is None:
            return
        try:
            value = self._status_callback(assessment_id, status, result)
            if inspect.isawaitable(value):
                await value
        except Exception:
            logger.exception(
                "AnalysisOrchestrator: status callback failed for %s (%s)",
                assessment_id,
                status.value,
            )

    async def _publish(self, event: DomainEvent) -> None:
        await self._bus.publish(event)
