"""
Generation client for OpenRouter's OpenAI-compatible chat completions API.

Every call returns a GenerationOutcome instead of raising: a GenerationOk with
the text and token usage, or a GenerationFailed carrying a short user-facing
message and whether the failure is worth retrying.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import openai
import tiktoken
from openai import AsyncOpenAI

from .state import GenerationFailed, GenerationOk, GenerationOutcome, TokenUsage

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
APP_REFERER = "https://github.com/tubedigest/tubedigest"
APP_TITLE = "tubedigest"


def friendly_error(code: Optional[int], message: Optional[str], provider: Optional[str] = None) -> str:
    """Convert a service error code/message into a short message for the user."""
    lowered = (message or "").lower()
    provider_info = f" ({provider})" if provider else ""
    if code == 429 or "rate limit" in lowered:
        return f"You've made too many requests{provider_info}. Please wait a moment and try again."
    if code == 400:
        return "Oops! Something went wrong with the input. Please check and try again."
    if code in (401, 403) or "api key" in lowered:
        return "Access denied. Please ensure your API key is valid."
    if code == 402:
        return "Your subscription or credits have expired. Please update your payment information."
    if code == 404:
        return "The requested resource could not be found. Please check and try again."
    if code == 409:
        return "This action cannot be completed due to a conflict. Please check your request."
    if code == 418:
        return "Request rate exceeded. Please slow down and try again soon."
    if code == 422:
        return "The request could not be processed. Please review your input."
    if code == 500:
        return f"The service is temporarily unavailable{provider_info}. Please try again later."
    if code in (502, 503, 504):
        return f"The server is currently unavailable{provider_info}. Please try again after some time."
    if "context length" in lowered:
        return "The conversation is too long. Some older messages will be removed to continue."
    return f"An error occurred: {message or 'Unknown error'}"


def is_retryable_code(code: Optional[int]) -> bool:
    return code == 429 or (code is not None and 500 <= code <= 599)


def simple_token_count(text: str) -> int:
    """
    Approximate token count without external dependencies.
    """
    parts = re.findall(r"\w+|[^\w\s]", text, flags=re.UNICODE)
    return len(parts)


class OpenRouterClient:
    """Single-shot chat completion calls against OpenRouter."""

    def __init__(self, base_url: str = OPENROUTER_BASE_URL, temperature: float = 0.7, verbose: bool = False):
        self.base_url = base_url
        self.temperature = temperature
        self.verbose = verbose
        self._clients: Dict[str, AsyncOpenAI] = {}
        self._tokenizer = None
        self._tokenizer_loaded = False

    def _client_for(self, credential: str) -> AsyncOpenAI:
        client = self._clients.get(credential)
        if client is None:
            client = AsyncOpenAI(
                base_url=self.base_url,
                api_key=credential,
                max_retries=0,  # retries are owned by the callers' ladders
                default_headers={"HTTP-Referer": APP_REFERER, "X-Title": APP_TITLE},
            )
            self._clients[credential] = client
        return client

    def _count_tokens(self, text: str) -> int:
        if not self._tokenizer_loaded:
            self._tokenizer_loaded = True
            try:
                self._tokenizer = tiktoken.get_encoding("cl100k_base")
            except Exception:
                # Encoding files are downloaded on first use; offline installs fall back to counting words
                self._tokenizer = None
        if self._tokenizer is not None:
            return len(self._tokenizer.encode(text))
        return simple_token_count(text)

    def _estimate_usage(self, messages: List[Dict[str, str]], response_text: str) -> TokenUsage:
        # ~4 tokens of formatting overhead per message
        prompt_tokens = sum(4 + self._count_tokens(m.get("content", "")) for m in messages)
        completion_tokens = self._count_tokens(response_text)
        return TokenUsage(prompt_tokens, completion_tokens, prompt_tokens + completion_tokens)

    async def generate(self, model: str, messages: List[Dict[str, str]], credential: str) -> GenerationOutcome:
        """
        Request one completion.

        Args:
            model: OpenRouter model id
            messages: Ordered list of {"role", "content"} dictionaries
            credential: OpenRouter API key

        Returns:
            GenerationOk or GenerationFailed
        """
        if self.verbose:
            print(f"    Sending request to {model} ({len(messages)} messages)...")
        try:
            response = await self._client_for(credential).chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.temperature,
            )
        except openai.APIStatusError as e:
            provider = _provider_name(e.body)
            print(f"    Warning: API error from {model} (code: {e.status_code}): {e.message}")
            return GenerationFailed(
                retryable=is_retryable_code(e.status_code),
                user_message=friendly_error(e.status_code, e.message, provider),
                code=e.status_code,
            )
        except openai.APIConnectionError as e:
            # Covers timeouts too
            print(f"    Warning: Connection error talking to {model}: {e}")
            return GenerationFailed(retryable=True, user_message=friendly_error(None, f"connection error: {e}"))

        return self._parse_response(response, messages)

    def _parse_response(self, response: Any, messages: List[Dict[str, str]]) -> GenerationOutcome:
        # OpenRouter reports upstream provider failures inside a 200 response body
        error = getattr(response, "error", None)
        if error:
            code = _field(error, "code")
            message = _field(error, "message") or "Unknown error"
            provider = _provider_name(error)
            try:
                code = int(code) if code is not None else None
            except (TypeError, ValueError):
                code = None
            print(f"    Warning: Service error (code: {code}): {message}")
            return GenerationFailed(
                retryable=is_retryable_code(code) or "rate limit" in message.lower(),
                user_message=friendly_error(code, message, provider),
                code=code,
            )

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content:
            return GenerationFailed(retryable=True, user_message="No response from the model.")

        text = content.strip()
        usage = getattr(response, "usage", None)
        if usage:
            prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
            completion_tokens = getattr(usage, "completion_tokens", 0) or 0
            total_tokens = getattr(usage, "total_tokens", None) or prompt_tokens + completion_tokens
            token_usage = TokenUsage(prompt_tokens, completion_tokens, total_tokens)
        else:
            token_usage = self._estimate_usage(messages, text)

        if self.verbose:
            print(
                f"    ✓ Received response ({len(text)} characters, "
                f"{token_usage.prompt_tokens:,} input, {token_usage.completion_tokens:,} output tokens)"
            )
        return GenerationOk(text=text, usage=token_usage)

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _provider_name(payload: Any) -> Optional[str]:
    if payload is None:
        return None
    if isinstance(payload, dict) and "error" in payload and isinstance(payload["error"], dict):
        payload = payload["error"]
    metadata = _field(payload, "metadata")
    if metadata is None:
        return None
    return _field(metadata, "provider_name")
