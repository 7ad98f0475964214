"""Tests for the OpenRouter generation client."""

from types import SimpleNamespace

import httpx
import openai
import pytest

from tubedigest.openrouter_client import OpenRouterClient, friendly_error, is_retryable_code
from tubedigest.state import GenerationFailed, GenerationOk

MESSAGES = [{"role": "user", "content": "Summarize this YouTube video transcript"}]
REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def completion(content="A summary.", usage=None, error=None):
    message = SimpleNamespace(content=content)
    choices = [SimpleNamespace(message=message)] if content is not None else []
    return SimpleNamespace(choices=choices, usage=usage, error=error)


class FakeCompletions:
    def __init__(self, result):
        self.result = result
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def client_returning(result):
    client = OpenRouterClient()
    completions = FakeCompletions(result)
    client._clients["sk-or-test"] = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    client._tokenizer_loaded = True  # word-count estimates, no encoding download
    return client, completions


def status_error(cls, status_code, message, body=None):
    return cls(message, response=httpx.Response(status_code, request=REQUEST), body=body)


class TestFriendlyError:
    def test_rate_limit(self):
        assert "too many requests" in friendly_error(429, "slow down")
        assert "too many requests" in friendly_error(None, "Rate limit exceeded")

    def test_auth(self):
        assert friendly_error(401, "bad") == "Access denied. Please ensure your API key is valid."
        assert friendly_error(None, "Invalid API key provided").startswith("Access denied")

    def test_provider_is_mentioned(self):
        assert "(Together)" in friendly_error(503, "upstream down", "Together")

    def test_generic(self):
        assert friendly_error(None, "boom") == "An error occurred: boom"
        assert friendly_error(None, None) == "An error occurred: Unknown error"

    def test_context_length(self):
        assert "too long" in friendly_error(None, "maximum context length exceeded")

    @pytest.mark.parametrize("code,expected", [(429, True), (500, True), (503, True), (400, False), (401, False), (None, False)])
    def test_retryable_codes(self, code, expected):
        assert is_retryable_code(code) is expected


class TestGenerate:
    @pytest.mark.asyncio
    async def test_success_with_usage(self):
        usage = SimpleNamespace(prompt_tokens=120, completion_tokens=30, total_tokens=150)
        client, completions = client_returning(completion("  A summary.  ", usage=usage))

        outcome = await client.generate("openai/gpt-4o-mini", MESSAGES, "sk-or-test")

        assert isinstance(outcome, GenerationOk)
        assert outcome.text == "A summary."
        assert outcome.usage.total_tokens == 150
        assert completions.kwargs["model"] == "openai/gpt-4o-mini"
        assert completions.kwargs["messages"] == MESSAGES

    @pytest.mark.asyncio
    async def test_missing_usage_is_estimated(self):
        client, _ = client_returning(completion("three word reply"))

        outcome = await client.generate("openai/gpt-4o-mini", MESSAGES, "sk-or-test")

        assert outcome.usage.completion_tokens == 3
        assert outcome.usage.total_tokens == outcome.usage.prompt_tokens + 3
        assert outcome.usage.prompt_tokens > 0

    @pytest.mark.asyncio
    async def test_empty_choices_is_retryable(self):
        client, _ = client_returning(completion(None))

        outcome = await client.generate("openai/gpt-4o-mini", MESSAGES, "sk-or-test")

        assert isinstance(outcome, GenerationFailed)
        assert outcome.retryable

    @pytest.mark.asyncio
    async def test_error_in_response_body(self):
        error = {"code": 429, "message": "Rate limited upstream", "metadata": {"provider_name": "DeepInfra"}}
        client, _ = client_returning(completion(None, error=error))

        outcome = await client.generate("deepseek/deepseek-r1", MESSAGES, "sk-or-test")

        assert isinstance(outcome, GenerationFailed)
        assert outcome.retryable
        assert outcome.code == 429
        assert "DeepInfra" in outcome.user_message

    @pytest.mark.asyncio
    async def test_bad_request_in_body_is_not_retryable(self):
        client, _ = client_returning(completion(None, error={"code": 400, "message": "bad input"}))

        outcome = await client.generate("deepseek/deepseek-r1", MESSAGES, "sk-or-test")

        assert not outcome.retryable
        assert outcome.user_message.startswith("Oops!")

    @pytest.mark.asyncio
    async def test_rate_limit_exception(self):
        client, _ = client_returning(status_error(openai.RateLimitError, 429, "Rate limit reached"))

        outcome = await client.generate("openai/gpt-4o-mini", MESSAGES, "sk-or-test")

        assert outcome.retryable
        assert outcome.code == 429

    @pytest.mark.asyncio
    async def test_authentication_exception(self):
        client, _ = client_returning(status_error(openai.AuthenticationError, 401, "No auth credentials found"))

        outcome = await client.generate("openai/gpt-4o-mini", MESSAGES, "sk-or-test")

        assert not outcome.retryable
        assert outcome.user_message == "Access denied. Please ensure your API key is valid."

    @pytest.mark.asyncio
    async def test_server_error_exception(self):
        body = {"error": {"message": "overloaded", "metadata": {"provider_name": "Anthropic"}}}
        client, _ = client_returning(status_error(openai.InternalServerError, 502, "overloaded", body=body))

        outcome = await client.generate("anthropic/claude-3.5-sonnet", MESSAGES, "sk-or-test")

        assert outcome.retryable
        assert "(Anthropic)" in outcome.user_message

    @pytest.mark.asyncio
    async def test_connection_error_is_retryable(self):
        client, _ = client_returning(openai.APIConnectionError(request=REQUEST))

        outcome = await client.generate("openai/gpt-4o-mini", MESSAGES, "sk-or-test")

        assert outcome.retryable
        assert outcome.code is None

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self):
        client, _ = client_returning(openai.APITimeoutError(request=REQUEST))

        outcome = await client.generate("openai/gpt-4o-mini", MESSAGES, "sk-or-test")

        assert outcome.retryable


def test_client_is_cached_per_credential():
    client = OpenRouterClient()
    first = client._client_for("sk-or-a")
    assert client._client_for("sk-or-a") is first
    assert client._client_for("sk-or-b") is not first
    assert str(first.base_url).startswith("https://openrouter.ai/api/v1")
