"""Tests for the fingerprint-keyed result cache."""

from __future__ import annotations

from datetime import datetime

from riskscope.domain.enums import AnalysisMode
from riskscope.domain.models import AnalysisMetadata, AnalysisPayload, AnalysisResult
from riskscope.domain.values import CompanyQuery
from riskscope.services.cache import ResultCache
from riskscope.services.fingerprint import fingerprint
from riskscope.testing import sample_payload


def _result(names: list[str], mode: AnalysisMode, now: datetime) -> AnalysisResult:
    metadata = AnalysisMetadata(
        fingerprint=fingerprint(names, mode),
        mode=mode,
        temperature=0.1,
        model_id="m",
        attempts_used=1,
        produced_at=now,
    )
    payload = AnalysisPayload.model_validate(sample_payload(names))
    return AnalysisResult.from_payload(payload, metadata, "2024-06-30")


class TestResultCache:
    """Round trips, hit flags and collision handling."""

    def test_round_trip_sets_from_cache(self, fixed_now) -> None:
        cache = ResultCache()
        stored = _result(["Apple"], AnalysisMode.QUICK, fixed_now)
        cache.put(["Apple"], AnalysisMode.QUICK, stored)

        hit = cache.get(["apple"], AnalysisMode.QUICK)
        assert hit is not None
        assert hit.from_cache is True
        assert hit.company_names == stored.company_names
        assert stored.from_cache is False

    def test_miss_for_other_mode(self, fixed_now) -> None:
        cache = ResultCache()
        cache.put(["Apple"], AnalysisMode.QUICK, _result(["Apple"], AnalysisMode.QUICK, fixed_now))
        assert cache.get(["Apple"], AnalysisMode.DETAILED) is None

    def test_stored_copy_is_not_flagged_cached(self, fixed_now) -> None:
        cache = ResultCache()
        flagged = _result(["Apple"], AnalysisMode.QUICK, fixed_now).model_copy(
            update={"from_cache": True}
        )
        entry = cache.put(["Apple"], AnalysisMode.QUICK, flagged)
        assert entry is not None
        assert entry.result.from_cache is False

    def test_collision_is_a_miss(self, fixed_now) -> None:
        # "ab" and "ba" have the same character sum but are different companies
        cache = ResultCache()
        cache.put(["ab"], AnalysisMode.QUICK, _result(["ab"], AnalysisMode.QUICK, fixed_now))
        assert fingerprint(["ab"], "quick") == fingerprint(["ba"], "quick")

        assert cache.get(["ba"], AnalysisMode.QUICK) is None
        assert cache.stats().collisions == 1

    def test_stats(self, fixed_now) -> None:
        cache = ResultCache()
        cache.get(["Apple"], "quick")
        cache.put(["Apple"], "quick", _result(["Apple"], AnalysisMode.QUICK, fixed_now))
        cache.get(["Apple"], "quick")
        stats = cache.stats()
        assert (stats.entries, stats.hits, stats.misses) == (1, 1, 1)

    def test_disabled_cache(self, fixed_now) -> None:
        cache = ResultCache(enabled=False)
        assert cache.put(["Apple"], "quick", _result(["Apple"], AnalysisMode.QUICK, fixed_now)) is None
        assert cache.get(["Apple"], "quick") is None
        assert len(cache) == 0

    def test_invalidate_and_contains(self, fixed_now) -> None:
        cache = ResultCache()
        cache.put(["Apple"], "quick", _result(["Apple"], AnalysisMode.QUICK, fixed_now))
        fp = fingerprint(["Apple"], "quick")
        assert fp in cache
        assert cache.invalidate(["Apple"], "quick") is True
        assert fp not in cache
        assert cache.invalidate(["Apple"], "quick") is False

    def test_invalidate_leaves_colliding_entry(self, fixed_now) -> None:
        cache = ResultCache()
        cache.put(["ab"], "quick", _result(["ab"], AnalysisMode.QUICK, fixed_now))

        assert cache.invalidate(["ba"], "quick") is False
        assert cache.get(["ab"], "quick") is not None
        assert cache.invalidate(["ab"], "quick") is True
        assert len(cache) == 0

    def test_entry_records_cached_at(self, fixed_now) -> None:
        cache = ResultCache(clock=lambda: fixed_now)
        cache.put(["Apple"], "quick", _result(["Apple"], AnalysisMode.QUICK, fixed_now))
        entry = cache.entry(CompanyQuery(names=("Apple",), keys=("apple",)), "quick")
        assert entry is not None
        assert entry.cached_at == fixed_now
        assert entry.company_keys == frozenset({"apple"})
