"""Presentation layer for riskscope.

Public API
----------
- :class:`RiskConsole` -- rich console tables for outcomes and health checks
- :func:`export_json`, :func:`export_csv`, :func:`outcome_to_dict` --
  serialisation utilities
"""

from riskscope.presentation.console import RiskConsole
from riskscope.presentation.export import export_csv, export_json, outcome_to_dict

__all__ = [
    "RiskConsole",
    "export_csv",
    "export_json",
    "outcome_to_dict",
]
