"""Shared fakes for tubedigest tests."""

import asyncio
from typing import Dict, List, Optional

import pytest

from tubedigest.credential_store import CredentialStore
from tubedigest.models import AIModel, ModelCatalogue
from tubedigest.state import GenerationFailed, GenerationOk, TokenUsage

TEST_MODEL = "test/model"
TRANSCRIPT = "Today we talk about sourdough. First feed the starter. Then bake at 250 degrees."


def ok(text: str, total_tokens: int = 100) -> GenerationOk:
    return GenerationOk(text=text, usage=TokenUsage(total_tokens - 10, 10, total_tokens))


def transient(message: str = "You've made too many requests. Please wait a moment and try again.") -> GenerationFailed:
    return GenerationFailed(retryable=True, user_message=message, code=429)


def fatal(message: str = "Access denied. Please ensure your API key is valid.") -> GenerationFailed:
    return GenerationFailed(retryable=False, user_message=message, code=401)


def kind_of(messages: List[Dict[str, str]]) -> str:
    if messages[0]["role"] == "system":
        return "chat"
    if messages[0]["content"].startswith("Summarize this"):
        return "short"
    return "detailed"


class FakeTranscripts:
    def __init__(self, text: str = TRANSCRIPT, error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[str] = []

    def fetch_transcript(self, document_ref: str) -> str:
        self.calls.append(document_ref)
        if self.error is not None:
            raise self.error
        return self.text


class ScriptedClient:
    """
    Returns scripted outcomes per request kind (short, detailed, chat).

    Each script is consumed in order; its last outcome repeats forever.
    """

    def __init__(self, short=None, detailed=None, chat=None):
        self.scripts = {
            "short": list(short or [ok("short summary text")]),
            "detailed": list(detailed or [ok("detailed summary text")]),
            "chat": list(chat or [ok("chat reply")]),
        }
        self.calls: List[tuple] = []

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.calls if k == kind)

    async def generate(self, model: str, messages: List[Dict[str, str]], credential: str):
        kind = kind_of(messages)
        self.calls.append((kind, [dict(m) for m in messages]))
        script = self.scripts[kind]
        return script.pop(0) if len(script) > 1 else script[0]


class SlowClient(ScriptedClient):
    """ScriptedClient that holds each call open briefly and records peak concurrency."""

    def __init__(self, delay: float = 0.02, **scripts):
        super().__init__(**scripts)
        self.delay = delay
        self.open_calls = 0
        self.peak = 0

    async def generate(self, model: str, messages: List[Dict[str, str]], credential: str):
        self.open_calls += 1
        self.peak = max(self.peak, self.open_calls)
        try:
            await asyncio.sleep(self.delay)
            return await super().generate(model, messages, credential)
        finally:
            self.open_calls -= 1


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def models():
    return ModelCatalogue([AIModel("Test Model", TEST_MODEL, "Test", 1000, 1.0, 2.0)])


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def credentials():
    store = CredentialStore(":memory:")
    store.set("sk-or-test")
    yield store
    store.close()
