"""Public testing utilities for riskscope.

Provides a scripted model provider and canned payloads for writing
self-contained examples and tests without requiring API keys.
"""

from riskscope.testing.mock_provider import (
    ScriptedProvider,
    sample_company,
    sample_payload,
    sample_response,
)

__all__ = ["ScriptedProvider", "sample_company", "sample_payload", "sample_response"]
