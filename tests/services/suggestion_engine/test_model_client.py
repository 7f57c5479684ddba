"""Tests for SuggestionModelClient (pydantic-ai Agent is mocked)."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pageadvisor.core.config import Config
from pageadvisor.core.exceptions import ConfigurationError, ExternalModelError
from pageadvisor.services.suggestion_engine.model_client import SuggestionModelClient

AGENT_PATH = "pageadvisor.services.suggestion_engine.model_client.Agent"


def _agent_result(output, total_tokens=321):
    result = MagicMock()
    result.output = output
    result.usage.return_value = MagicMock(total_tokens=total_tokens)
    return result


@pytest.fixture
def openai_key():
    with patch.object(Config, "OPENAI_API_KEY", "sk-test"):
        yield


@pytest.mark.asyncio
async def test_complete_returns_text_and_usage(openai_key):
    with patch(AGENT_PATH) as mock_agent_cls:
        mock_agent_cls.return_value.run = AsyncMock(return_value=_agent_result('{"suggestions": []}'))
        client = SuggestionModelClient(model="openai:gpt-4o", temperature=0.2, max_tokens=200)

        reply = await client.complete("system", "user", operation="select_best")

    assert reply.text == '{"suggestions": []}'
    assert reply.tokens_used == 321
    assert reply.model == "openai:gpt-4o"
    kwargs = mock_agent_cls.call_args.kwargs
    assert kwargs["system_prompt"] == "system"
    assert kwargs["model_settings"]["max_tokens"] == 200
    assert kwargs["model_settings"]["temperature"] == 0.2
    mock_agent_cls.return_value.run.assert_awaited_once_with("user")


@pytest.mark.asyncio
async def test_provider_error_is_wrapped(openai_key):
    with patch(AGENT_PATH) as mock_agent_cls:
        mock_agent_cls.return_value.run = AsyncMock(side_effect=TimeoutError("read timeout"))
        client = SuggestionModelClient(model="openai:gpt-4o")

        with pytest.raises(ExternalModelError, match="read timeout"):
            await client.complete("system", "user")


@pytest.mark.asyncio
async def test_empty_reply_raises(openai_key):
    with patch(AGENT_PATH) as mock_agent_cls:
        mock_agent_cls.return_value.run = AsyncMock(return_value=_agent_result("   "))
        client = SuggestionModelClient(model="openai:gpt-4o")

        with pytest.raises(ExternalModelError, match="No response"):
            await client.complete("system", "user")


def test_defaults_come_from_config(openai_key, monkeypatch):
    monkeypatch.delenv("SUGGESTION_MODEL", raising=False)

    client = SuggestionModelClient()

    assert client.model == Config.SUGGESTION_MODEL
    assert client.temperature == Config.SUGGESTION_TEMPERATURE
    assert client.max_tokens == Config.SUGGESTION_MAX_TOKENS


def test_missing_key_fails_at_construction():
    with patch.object(Config, "ANTHROPIC_API_KEY", ""):
        with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
            SuggestionModelClient(model="anthropic:claude-sonnet-4-5")
