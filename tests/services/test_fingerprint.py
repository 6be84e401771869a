"""Tests for name normalization and query fingerprints."""

from __future__ import annotations

import pytest

from riskscope.domain.enums import AnalysisMode
from riskscope.domain.values import CompanyQuery
from riskscope.services.fingerprint import (
    cache_key,
    fingerprint,
    normalize_company_names,
    normalize_name,
)


class TestNormalizeName:
    def test_casefold_and_whitespace(self) -> None:
        assert normalize_name("  Apple   Inc. ") == "apple inc"

    def test_trailing_punctuation(self) -> None:
        assert normalize_name("Acme, Ltd.;") == "acme, ltd"

    def test_legal_suffix_kept(self) -> None:
        assert normalize_name("Apple Inc") != normalize_name("Apple")


class TestNormalizeCompanyNames:
    """De-duplication and ordering."""

    def test_duplicates_collapse(self) -> None:
        query = normalize_company_names(["Apple Inc.", "apple inc"])
        assert query.size == 1
        assert query.names == ("Apple Inc.",)

    def test_sorted_by_key(self) -> None:
        query = normalize_company_names(["tesla", "Apple", "microsoft"])
        assert query.keys == ("apple", "microsoft", "tesla")
        assert query.names == ("Apple", "microsoft", "tesla")

    def test_single_string_accepted(self) -> None:
        assert normalize_company_names("Tesla").names == ("Tesla",)

    def test_query_passthrough(self) -> None:
        query = CompanyQuery(names=("Acme",), keys=("acme",))
        assert normalize_company_names(query) is query

    def test_empty_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least one"):
            normalize_company_names([])

    def test_blank_rejected(self) -> None:
        with pytest.raises(ValueError, match="blank"):
            normalize_company_names(["Apple", "   "])

    def test_non_string_rejected(self) -> None:
        with pytest.raises(ValueError, match="strings"):
            normalize_company_names(["Apple", 42])  # type: ignore[list-item]


class TestFingerprint:
    """Order independence, mode sensitivity, stability."""

    def test_order_independent(self) -> None:
        a = fingerprint(["Apple", "Microsoft", "Tesla"], AnalysisMode.DETAILED)
        b = fingerprint(["Tesla", "Apple", "Microsoft"], AnalysisMode.DETAILED)
        assert a == b

    def test_case_and_punctuation_independent(self) -> None:
        assert fingerprint(["Apple Inc."], "quick") == fingerprint([" apple  inc"], "quick")

    def test_mode_sensitive(self) -> None:
        names = ["Apple", "Tesla"]
        assert fingerprint(names, AnalysisMode.QUICK) != fingerprint(names, AnalysisMode.DETAILED)

    def test_non_negative_and_stable(self) -> None:
        fp = fingerprint(["Apple"], "detailed")
        assert fp >= 0
        assert fp == fingerprint(["Apple"], "detailed")

    def test_string_mode_accepted(self) -> None:
        assert fingerprint(["Apple"], "QUICK") == fingerprint(["Apple"], AnalysisMode.QUICK)

    def test_unknown_mode_rejected(self) -> None:
        with pytest.raises(ValueError, match="mode"):
            fingerprint(["Apple"], "exhaustive")

    def test_cache_key_format(self) -> None:
        fp = fingerprint(["Apple"], AnalysisMode.QUICK)
        assert cache_key(["Apple"], AnalysisMode.QUICK) == f"analysis_{fp}_quick"
