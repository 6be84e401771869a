"""Process-lifetime result cache keyed by query fingerprint.

Entries are retained until the process ends; longer-term storage belongs to
the persistence layer.  ``get`` and ``put`` never ``await``, so under asyncio
each is atomic with respect to concurrently running analyses.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from riskscope.domain.enums import AnalysisMode
from riskscope.domain.models import AnalysisResult
from riskscope.domain.values import CacheEntry, CompanyQuery
from riskscope.services.fingerprint import fingerprint, normalize_company_names

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheStats:
    entries: int
    hits: int
    misses: int
    collisions: int


class ResultCache:
    """Fingerprint-keyed store of finished analyses.

    A hit requires the fingerprint, the mode *and* the normalized company
    set to match; a fingerprint match with a different company set is a
    collision and is served as a miss.

    Parameters
    ----------
    enabled:
        If ``False`` the cache never stores and never serves.
    clock:
        Returns the ``cached_at`` timestamp.  Injectable for tests.
    """

    def __init__(
        self,
        enabled: bool = True,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.enabled = enabled
        self._clock = clock
        self._entries: dict[int, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._collisions = 0

    def get(
        self,
        names: Iterable[str] | CompanyQuery,
        mode: AnalysisMode | str,
    ) -> AnalysisResult | None:
        """Return the cached result flagged ``from_cache=True``, or ``None``."""
        if not self.enabled:
            return None

        entry = self.entry(names, mode)
        if entry is None:
            self._misses += 1
            return None

        self._hits += 1
        return entry.result.model_copy(update={"from_cache": True})

    def entry(
        self,
        names: Iterable[str] | CompanyQuery,
        mode: AnalysisMode | str,
    ) -> CacheEntry | None:
        """Return the verified raw entry (no hit/miss accounting)."""
        query = normalize_company_names(names)
        analysis_mode = AnalysisMode.coerce(mode)
        fp = fingerprint(query, analysis_mode)

        entry = self._entries.get(fp)
        if entry is None:
            return None
        if entry.mode is not analysis_mode or entry.company_keys != query.key_set:
            self._collisions += 1
            logger.warning(
                "ResultCache: fingerprint %d collision (%d stored vs %d queried companies)",
                fp,
                len(entry.company_keys),
                query.size,
            )
            return None
        return entry

    def put(
        self,
        names: Iterable[str] | CompanyQuery,
        mode: AnalysisMode | str,
        result: AnalysisResult,
    ) -> CacheEntry | None:
        """Store *result*, replacing any entry with the same fingerprint."""
        if not self.enabled:
            return None

        query = normalize_company_names(names)
        analysis_mode = AnalysisMode.coerce(mode)
        fp = fingerprint(query, analysis_mode)

        stored = result if not result.from_cache else result.model_copy(
            update={"from_cache": False}
        )
        entry = CacheEntry(
            fingerprint=fp,
            mode=analysis_mode,
            company_keys=query.key_set,
            result=stored,
            cached_at=self._clock(),
        )
        self._entries[fp] = entry
        logger.debug(
            "ResultCache: stored fingerprint %d (%d companies, %s)",
            fp,
            query.size,
            analysis_mode.value,
        )
        return entry

    def invalidate(
        self,
        names: Iterable[str] | CompanyQuery,
        mode: AnalysisMode | str,
    ) -> bool:
        """Drop the entry for this query. Returns ``True`` if one existed.

        An entry stored for a different name set under the same fingerprint
        is left in place.
        """
        query = normalize_company_names(names)
        analysis_mode = AnalysisMode.coerce(mode)
        if self.entry(query, analysis_mode) is None:
            return False
        del self._entries[fingerprint(query, analysis_mode)]
        return True

    def stats(self) -> CacheStats:
        return CacheStats(
            entries=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            collisions=self._collisions,
        )

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fp: object) -> bool:
        return fp in self._entries
