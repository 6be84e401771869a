"""Tests for JSON and CSV export."""

from __future__ import annotations

import csv
import json

import pytest

from riskscope.presentation import export_csv, export_json, outcome_to_dict
from riskscope.testing import ScriptedProvider, sample_response


class TestExport:
    @pytest.mark.asyncio
    async def test_outcome_to_dict(self, make_orchestrator) -> None:
        orchestrator = make_orchestrator(ScriptedProvider(sample_response(["Tesla"])))
        outcome = await orchestrator.analyze(["Tesla"], "detailed")

        data = outcome_to_dict(outcome)

        assert data["companies"][0]["name"] == "Tesla"
        assert data["companies"][0]["altman_z_score"]["zone"] == "safe"
        assert data["consistency"]["seed"] == outcome.consistency.seed
        json.dumps(data)

    @pytest.mark.asyncio
    async def test_export_json(self, make_orchestrator, tmp_path) -> None:
        orchestrator = make_orchestrator(ScriptedProvider(sample_response(["Tesla"])))
        outcome = await orchestrator.analyze(["Tesla"], "detailed")
        path = tmp_path / "nested" / "result.json"

        export_json(outcome, str(path))

        loaded = json.loads(path.read_text(encoding="utf-8"))
        assert loaded == json.loads(json.dumps(outcome_to_dict(outcome), default=str))

    @pytest.mark.asyncio
    async def test_export_csv(self, make_orchestrator, tmp_path) -> None:
        orchestrator = make_orchestrator(
            ScriptedProvider(sample_response(["Tesla", "Apple"]))
        )
        outcome = await orchestrator.analyze(["Tesla", "Apple"], "detailed")
        path = tmp_path / "result.csv"

        export_csv(outcome, str(path))

        with open(path, newline="", encoding="utf-8") as fh:
            rows = list(csv.DictReader(fh))
        assert sorted(row["name"] for row in rows) == ["Apple", "Tesla"]
        assert rows[0]["zone"] == "safe"
        assert rows[0]["current_ratio"] == "1.6"
