"""Tests for the model-response parser."""

from __future__ import annotations

import json

import pytest

from riskscope.domain.exceptions import ParseError
from riskscope.services.parser import ResponseParser, strip_code_fence
from riskscope.testing import sample_company, sample_payload, sample_response


@pytest.fixture
def parser() -> ResponseParser:
    return ResponseParser()


class TestStripCodeFence:
    def test_json_fence(self) -> None:
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self) -> None:
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_unfenced_is_trimmed(self) -> None:
        assert strip_code_fence('  {"a": 1}\n') == '{"a": 1}'

    def test_idempotent(self) -> None:
        once = strip_code_fence('```json\n{"a": 1}\n```')
        assert strip_code_fence(once) == once

    def test_unclosed_fence_untouched(self) -> None:
        assert strip_code_fence('```json\n{"a": 1}') == '```json\n{"a": 1}'


class TestResponseParser:
    """Success and failure outcomes; parse never raises."""

    def test_valid_response(self, parser: ResponseParser) -> None:
        outcome = parser.parse(sample_response(["Apple", "Tesla"]))
        assert outcome.ok
        assert outcome.error is None
        assert [c.name for c in outcome.unwrap().companies] == ["Apple", "Tesla"]

    def test_fenced_response_parses_identically(self, parser: ResponseParser) -> None:
        plain = parser.parse(sample_response(["Apple"]))
        fenced = parser.parse(sample_response(["Apple"], fenced=True))
        assert fenced.ok
        assert fenced.unwrap() == plain.unwrap()

    def test_prose_around_json(self, parser: ResponseParser) -> None:
        text = "Here is the analysis:\n" + sample_response(["Apple"]) + "\nHope this helps."
        assert parser.parse(text).ok

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty_input(self, parser: ResponseParser, raw) -> None:
        outcome = parser.parse(raw)
        assert not outcome.ok
        assert outcome.error is not None
        assert "empty" in outcome.error.reason

    def test_invalid_json(self, parser: ResponseParser) -> None:
        outcome = parser.parse("definitely not json")
        assert not outcome.ok
        assert "not valid JSON" in outcome.error.reason
        assert outcome.error.raw_snippet == "definitely not json"

    def test_top_level_array(self, parser: ResponseParser) -> None:
        outcome = parser.parse("[1, 2, 3]")
        assert not outcome.ok
        assert "expected object" in outcome.error.reason

    def test_missing_companies(self, parser: ResponseParser) -> None:
        outcome = parser.parse(json.dumps({"analysis_id": "1"}))
        assert not outcome.ok
        assert "companies" in outcome.error.reason

    def test_empty_companies(self, parser: ResponseParser) -> None:
        assert not parser.parse(json.dumps({"companies": []})).ok

    def test_company_without_name(self, parser: ResponseParser) -> None:
        outcome = parser.parse(json.dumps({"companies": [{"risk_score": 10}]}))
        assert not outcome.ok
        assert "no name" in outcome.error.reason

    def test_company_not_an_object(self, parser: ResponseParser) -> None:
        outcome = parser.parse(json.dumps({"companies": ["Apple"]}))
        assert "not an object" in outcome.error.reason

    def test_schema_violation(self, parser: ResponseParser) -> None:
        payload = sample_payload(["Apple"])
        payload["companies"][0]["liquidity_ratios"] = "healthy"
        outcome = parser.parse(json.dumps(payload))
        assert not outcome.ok
        assert "schema validation failed" in outcome.error.reason

    def test_snippet_is_truncated(self) -> None:
        outcome = ResponseParser(snippet_length=10).parse("x" * 100)
        assert outcome.error.raw_snippet == "x" * 10

    def test_unwrap_raises_parse_error(self, parser: ResponseParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("nope").unwrap()

    def test_zone_mismatch_is_flagged_not_rejected(self, parser: ResponseParser) -> None:
        company = sample_company("Acme", z_score=1.2)
        company["altman_z_score"]["zone"] = "safe"
        outcome = parser.parse(json.dumps({"companies": [company]}))
        assert outcome.ok
        assert len(outcome.zone_mismatches) == 1
        mismatch = outcome.zone_mismatches[0]
        assert (mismatch.reported_zone, mismatch.expected_zone) == ("safe", "distress")
        assert "Acme" in mismatch.describe()


class TestHostileInput:
    """Pathological model output still comes back as a ParseOutcome."""

    @pytest.mark.parametrize(
        "raw",
        [
            '{"companies": [{"name": "A", "risk_score": ' + "1" * 5000 + "}]}",
            "[" * 200_000 + "]" * 200_000,
            '{"companies": ' + "[" * 200_000 + "]" * 200_000 + "}",
        ],
        ids=["oversized-integer", "deep-array", "deep-companies"],
    )
    def test_undecodable_input_is_a_parse_error(self, parser: ResponseParser, raw: str) -> None:
        outcome = parser.parse(raw)
        assert not outcome.ok
        assert isinstance(outcome.error, ParseError)

    def test_overflowing_year_is_dropped(self, parser: ResponseParser) -> None:
        outcome = parser.parse(
            '{"companies": [{"name": "A", "financial_timeline": [{"year": 1e400}]}]}'
        )
        assert outcome.ok
        assert outcome.unwrap().companies[0].financial_timeline[0].year is None

    def test_overflowing_integer_is_dropped(self, parser: ResponseParser) -> None:
        outcome = parser.parse('{"companies": [{"name": "A", "risk_score": 1' + "0" * 400 + "}]}")
        assert outcome.ok
        assert outcome.unwrap().companies[0].risk_score is None

    def test_non_finite_values_never_reach_json(self, parser: ResponseParser) -> None:
        raw = (
            '{"companies": [{"name": "A", "risk_score": NaN, "confidence": "Infinity",'
            ' "esg_score": -Infinity, "beta": 1e999}]}'
        )
        outcome = parser.parse(raw)
        assert outcome.ok

        company = outcome.unwrap().companies[0]
        assert company.risk_score is None
        assert company.confidence is None

        text = json.dumps(outcome.unwrap().model_dump(mode="json"), allow_nan=False)
        assert json.loads(text)["companies"][0]["esg_score"] is None
