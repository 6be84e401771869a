"""Tests for the provider health check."""

from __future__ import annotations

import pytest

from riskscope.domain.exceptions import ProviderError
from riskscope.services.health import HEALTH_PROMPT, check_provider_health
from riskscope.testing import ScriptedProvider


class TestCheckProviderHealth:
    @pytest.mark.asyncio
    async def test_healthy(self) -> None:
        provider = ScriptedProvider("API_WORKING")
        report = await check_provider_health(provider)
        assert report.success
        assert report.provider == "scripted"
        assert report.model == "scripted-model"
        assert report.response_text == "API_WORKING"
        assert provider.requests[0].messages[0].content == HEALTH_PROMPT

    @pytest.mark.asyncio
    async def test_unexpected_reply(self) -> None:
        report = await check_provider_health(ScriptedProvider("Hello there"))
        assert not report.success
        assert "unexpected reply" in report.error

    @pytest.mark.asyncio
    async def test_provider_error_is_reported_not_raised(self) -> None:
        provider = ScriptedProvider(ProviderError("unauthorized", status=401))
        report = await check_provider_health(provider, model="custom")
        assert not report.success
        assert report.status == 401
        assert report.model == "custom"
        assert "unauthorized" in report.error

    @pytest.mark.asyncio
    async def test_to_dict(self) -> None:
        report = await check_provider_health(ScriptedProvider("API_WORKING"))
        data = report.to_dict()
        assert data["success"] is True
        assert isinstance(data["timestamp"], str)
