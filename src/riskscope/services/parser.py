"""Airlock between free-form model text and the typed analysis schema.

:meth:`ResponseParser.parse` never raises on bad input: every failure comes
back as a :class:`ParseOutcome` carrying a :class:`ParseError`, so the
orchestrator can decide whether to retry or fall back.

Steps: trim; strip a surrounding code fence (```` ``` ```` or
```` ```json ````); if the remainder is still not a bare JSON object, take
the outermost ``{...}`` span; decode; check the ``companies`` envelope;
validate with pydantic; flag (do not reject) Altman zones that disagree with
their score.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from riskscope.domain.exceptions import ParseError
from riskscope.domain.models import AnalysisPayload

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 500

_FENCE_OPEN = re.compile(r"^```[\w-]*[ \t]*\r?\n")
_FENCE_CLOSE = re.compile(r"\r?\n?```[ \t]*$")


def _finite_float(literal: str) -> float | None:
    number = float(literal)
    return number if math.isfinite(number) else None


def _null_constant(name: str) -> None:
    # NaN and Infinity cannot be written back out as JSON
    return None


@dataclass(frozen=True)
class ZoneMismatch:
    company: str
    score: float
    reported_zone: str
    expected_zone: str

    def describe(self) -> str:
        return (
            f"{self.company}: score {self.score:g} reported {self.reported_zone}, "
            f"expected {self.expected_zone}"
        )


@dataclass(frozen=True)
class ParseOutcome:
    """Either ``payload`` or ``error`` is set, never both."""

    payload: AnalysisPayload | None = None
    error: ParseError | None = None
    zone_mismatches: tuple[ZoneMismatch, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.payload is not None

    def unwrap(self) -> AnalysisPayload:
        """Return the payload or raise the parse error."""
        if self.payload is None:
            raise self.error or ParseError("empty parse outcome")
        return self.payload


def strip_code_fence(text: str) -> str:
    """Remove one leading and one trailing fence line, if both are present."""
    stripped = text.strip()
    opening = _FENCE_OPEN.match(stripped)
    if opening is None:
        return stripped
    body = stripped[opening.end():]
    closing = _FENCE_CLOSE.search(body)
    if closing is None:
        return stripped
    return body[: closing.start()].strip()


def _outermost_object(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


class ResponseParser:
    """Turns raw model text into an :class:`AnalysisPayload`."""

    def __init__(self, snippet_length: int = SNIPPET_LENGTH) -> None:
        self._snippet_length = snippet_length

    def parse(self, raw: str) -> ParseOutcome:
        snippet = (raw or "")[: self._snippet_length]

        def fail(reason: str) -> ParseOutcome:
            logger.debug("ResponseParser: %s", reason)
            return ParseOutcome(error=ParseError(reason, raw_snippet=snippet))

        if not isinstance(raw, str) or not raw.strip():
            return fail("empty response")

        data = self._decode(strip_code_fence(raw))
        if data is None:
            return fail("response is not valid JSON")
        if not isinstance(data, dict):
            return fail(f"top-level JSON is {type(data).__name__}, expected object")

        companies = data.get("companies")
        if not isinstance(companies, list) or not companies:
            return fail("missing or empty 'companies' list")
        for index, company in enumerate(companies):
            if not isinstance(company, dict):
                return fail(f"companies[{index}] is not an object")
            name = company.get("name")
            if not isinstance(name, str) or not name.strip():
                return fail(f"companies[{index}] has no name")

        try:
            payload = AnalysisPayload.model_validate(data)
        except ValidationError as exc:
            return fail(f"schema validation failed: {exc.error_count()} error(s): {exc}")

        mismatches = tuple(self._zone_mismatches(payload))
        for mismatch in mismatches:
            logger.info("ResponseParser: zone mismatch, %s", mismatch.describe())
        return ParseOutcome(payload=payload, zone_mismatches=mismatches)

    def _decode(self, text: str) -> Any:
        """Decode *text*, falling back to its outermost ``{...}`` span."""
        for candidate in (text, _outermost_object(text)):
            if candidate is None:
                continue
            try:
                return json.loads(
                    candidate,
                    parse_float=_finite_float,
                    parse_constant=_null_constant,
                )
            except (ValueError, RecursionError):
                continue
        return None

    @staticmethod
    def _zone_mismatches(payload: AnalysisPayload) -> list[ZoneMismatch]:
        found: list[ZoneMismatch] = []
        for company in payload.companies:
            zscore = company.altman_z_score
            if zscore is None or zscore.zone_consistent:
                continue
            expected = zscore.expected_zone()
            found.append(
                ZoneMismatch(
                    company=company.name,
                    score=float(zscore.score or 0.0),
                    reported_zone=zscore.zone.value,
                    expected_zone=expected.value if expected else "unknown",
                )
            )
        return found
