"""riskscope: LLM-backed financial risk analysis core.

Turns a list of company names into a structured, reproducible risk
assessment (Altman Z-Score, liquidity, solvency and profitability ratios,
multi-year timeline) by prompting a language model, with caching, retries,
circuit breaking and a deterministic fallback when the model is unavailable.
"""

__version__ = "0.1.0"

from riskscope.domain.enums import AnalysisMode
from riskscope.domain.models import AnalysisResult
from riskscope.domain.values import AnalysisOutcome
from riskscope.infrastructure.config import OrchestratorConfig
from riskscope.services.orchestrator import AnalysisOrchestrator

__all__ = [
    "AnalysisMode",
    "AnalysisOrchestrator",
    "AnalysisOutcome",
    "AnalysisResult",
    "OrchestratorConfig",
]
