"""LLM client tests."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from litellm.exceptions import AuthenticationError, RateLimitError

from learnwiki.config import LLMConfig
from learnwiki.llm import (
    LLMAuthenticationError,
    LLMClient,
    LLMRateLimitError,
)

TEST_CONFIG = LLMConfig(max_tokens=1000, default_temperature=0.7, json_temperature=0.3)


@pytest.fixture
def mock_completion():
    """Mock litellm completion response."""
    with patch("learnwiki.llm.client.acompletion") as mock:
        mock.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content="Test response"))]
        )
        yield mock


async def test_llm_client_generates_response(mock_completion):
    """LLM client generates response from prompt."""
    client = LLMClient(provider="openai", model="gpt-4o", config=TEST_CONFIG)

    response = await client.generate("Test prompt")

    assert response == "Test response"
    mock_completion.assert_called_once()


async def test_llm_client_uses_configured_model(mock_completion):
    client = LLMClient(provider="anthropic", model="claude-3-sonnet", config=TEST_CONFIG)

    await client.generate("Test")

    assert mock_completion.call_args.kwargs["model"] == "anthropic/claude-3-sonnet"


async def test_llm_client_passes_system_prompt(mock_completion):
    client = LLMClient(provider="openai", model="gpt-4o", config=TEST_CONFIG)

    await client.generate("User message", system_prompt="You are an educator")

    messages = mock_completion.call_args.kwargs["messages"]
    assert messages[0] == {"role": "system", "content": "You are an educator"}
    assert messages[1] == {"role": "user", "content": "User message"}


async def test_llm_client_ollama_uses_endpoint(mock_completion):
    client = LLMClient(
        provider="ollama",
        model="llama3",
        endpoint="http://localhost:11434",
        config=TEST_CONFIG,
    )

    await client.generate("Test")

    kwargs = mock_completion.call_args.kwargs
    assert kwargs["model"] == "ollama/llama3"
    assert kwargs["api_base"] == "http://localhost:11434"


async def test_llm_client_passes_timeout(mock_completion):
    client = LLMClient(provider="openai", model="gpt-4o", timeout=12.5, config=TEST_CONFIG)

    await client.generate("Test")

    assert mock_completion.call_args.kwargs["timeout"] == 12.5


async def test_generate_with_json_adds_instruction_and_json_temperature(mock_completion):
    client = LLMClient(provider="openai", model="gpt-4o", config=TEST_CONFIG)

    await client.generate_with_json("Generate a page", system_prompt="You are an educator")

    kwargs = mock_completion.call_args.kwargs
    assert "Respond with valid JSON only" in kwargs["messages"][0]["content"]
    assert kwargs["temperature"] == 0.3
    assert kwargs["response_format"] == {"type": "json_object"}


async def test_llm_client_raises_authentication_error():
    with patch("learnwiki.llm.client.acompletion", new_callable=AsyncMock) as mock:
        mock.side_effect = AuthenticationError(
            message="Invalid API key",
            llm_provider="openai",
            model="gpt-4o",
        )
        client = LLMClient(provider="openai", model="gpt-4o", config=TEST_CONFIG)

        with pytest.raises(LLMAuthenticationError) as exc_info:
            await client.generate("Test")

        assert "Authentication failed" in str(exc_info.value)


async def test_llm_client_raises_rate_limit_error():
    with patch("learnwiki.llm.client.acompletion", new_callable=AsyncMock) as mock:
        mock.side_effect = RateLimitError(
            message="Rate limit exceeded",
            llm_provider="openai",
            model="gpt-4o",
        )
        client = LLMClient(provider="openai", model="gpt-4o", config=TEST_CONFIG)

        with pytest.raises(LLMRateLimitError):
            await client.generate("Test")


async def test_queries_logged_as_jsonl(mock_completion, tmp_path):
    log_path = tmp_path / "logs" / "llm.jsonl"
    client = LLMClient(provider="openai", model="gpt-4o", log_path=log_path, config=TEST_CONFIG)

    await client.generate("Test prompt")

    entry = json.loads(log_path.read_text().splitlines()[0])
    assert entry["request"]["prompt"] == "Test prompt"
    assert entry["response"] == "Test response"
    assert entry["error"] is None
