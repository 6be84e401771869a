"""Export utilities for analysis outcomes.

Supports JSON (full result plus consistency metadata) and a flat per-company
CSV summary.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from riskscope.domain.values import AnalysisOutcome

# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def outcome_to_dict(outcome: AnalysisOutcome) -> dict[str, Any]:
    """JSON-ready dict: the result fields plus a ``consistency`` block."""
    data = outcome.result.to_json_dict()
    data["consistency"] = outcome.consistency.to_dict()
    return data


def export_json(outcome: AnalysisOutcome, path: str) -> None:
    """Export an analysis outcome to a JSON file.

    Parameters
    ----------
    outcome:
        The outcome to export.
    path:
        File path for the JSON output.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as fh:
        json.dump(outcome_to_dict(outcome), fh, indent=2, default=str)


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

_CSV_COLUMNS = [
    "name",
    "ticker",
    "risk_level",
    "risk_score",
    "overall_rating",
    "z_score",
    "zone",
    "current_ratio",
    "debt_to_equity",
    "net_margin",
]


def export_csv(outcome: AnalysisOutcome, path: str) -> None:
    """Export one row per company with the headline figures."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)

    with open(out, "w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(_CSV_COLUMNS)
        for company in outcome.result.companies:
            zscore = company.altman_z_score
            liquidity = company.liquidity_ratios
            solvency = company.solvency_ratios
            profitability = company.profitability_ratios
            metrics = company.key_metrics
            writer.writerow(
                [
                    company.name,
                    company.ticker or "",
                    company.risk_level.value if company.risk_level else "",
                    company.risk_score if company.risk_score is not None else "",
                    company.overall_rating.value if company.overall_rating else "",
                    zscore.score if zscore else metrics.get("altman_z_score", ""),
                    zscore.zone.value if zscore else "",
                    liquidity.current_ratio if liquidity else metrics.get("current_ratio", ""),
                    solvency.debt_to_equity if solvency else metrics.get("debt_to_equity", ""),
                    profitability.net_margin if profitability else metrics.get("net_margin", ""),
                ]
            )
