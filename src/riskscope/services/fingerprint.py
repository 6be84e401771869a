"""Deterministic fingerprints for company-name queries.

A fingerprint identifies *what* is being analysed independently of how the
caller ordered or cased the names.  It doubles as the cache key and as the
seed embedded in the prompt for traceability.

The hash is a plain character-code sum and is **not** collision resistant;
the result cache therefore re-checks the stored name set before serving a
hit (see :class:`riskscope.services.cache.ResultCache`).
"""

from __future__ import annotations

from collections.abc import Iterable

from riskscope.domain.enums import AnalysisMode
from riskscope.domain.values import CompanyQuery

# Spreads the mode contribution far above any realistic name-sum so quick and
# detailed fingerprints of the same names can never coincide.
_MODE_MULTIPLIER = 1_000_003

_TRAILING_PUNCTUATION = ".,;:"


def normalize_name(name: str) -> str:
    """Comparison form of a company name.

    Trims, collapses inner whitespace, case-folds and drops trailing
    punctuation, so ``"Apple Inc."`` and ``" apple  inc"`` compare equal.
    Legal suffixes are *not* removed here.
    """
    collapsed = " ".join(name.split()).casefold()
    return collapsed.rstrip(_TRAILING_PUNCTUATION).rstrip()


def normalize_company_names(names: Iterable[str] | CompanyQuery) -> CompanyQuery:
    """De-duplicate and sort *names* into a :class:`CompanyQuery`.

    The first-seen spelling of each company is kept for display.

    Raises
    ------
    ValueError
        If *names* is empty or contains a blank entry.
    """
    if isinstance(names, CompanyQuery):
        return names
    if isinstance(names, str):
        names = [names]

    display_by_key: dict[str, str] = {}
    for raw in names:
        if not isinstance(raw, str):
            raise ValueError(f"company names must be strings, got {type(raw).__name__}")
        key = normalize_name(raw)
        if not key:
            raise ValueError("company names must not be blank")
        display_by_key.setdefault(key, " ".join(raw.split()))

    if not display_by_key:
        raise ValueError("at least one company name is required")

    keys = tuple(sorted(display_by_key))
    return CompanyQuery(names=tuple(display_by_key[k] for k in keys), keys=keys)


def _char_sum(text: str) -> int:
    return sum(ord(ch) for ch in text)


def fingerprint(
    names: Iterable[str] | CompanyQuery,
    mode: AnalysisMode | str,
) -> int:
    """Order-independent, mode-sensitive fingerprint of a query.

    Sum of the character codes of the sorted, normalized, concatenated
    names, plus the mode's own character sum scaled by a large prime.
    Always non-negative.
    """
    query = normalize_company_names(names)
    analysis_mode = AnalysisMode.coerce(mode)
    names_component = _char_sum("".join(query.keys))
    mode_component = _char_sum(analysis_mode.value) * _MODE_MULTIPLIER
    return abs(names_component + mode_component)


def cache_key(names: Iterable[str] | CompanyQuery, mode: AnalysisMode | str) -> str:
    """Human-readable cache key, ``analysis_<fingerprint>_<mode>``."""
    analysis_mode = AnalysisMode.coerce(mode)
    return f"analysis_{fingerprint(names, analysis_mode)}_{analysis_mode.value}"
