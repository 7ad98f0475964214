"""
Chat about a loaded video.

Keeps the conversation history, frames every request with the video's
detailed summary and transcript, and trims old turns once the last reported
token usage gets close to the model's context window. Trimmed turns are either
evicted outright or kept as "retired": visible in the history but never sent
to the model again.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Protocol

from .exceptions import ConfigurationMissing
from .models import ModelCatalogue
from .prompts import (
    CHAT_SYSTEM_MESSAGE_TEMPLATE,
    DETAILED_SUMMARY_SECTION,
    NO_VIDEO_CONTEXT,
    TRANSCRIPT_SECTION,
    VIDEO_CONTEXT_FOOTER,
    VIDEO_CONTEXT_HEADER,
)
from .retry_policy import Ladder, RetryPolicy
from .state import ChatMessage, GenerationFailed, GenerationOutcome, Observable, VideoContext
from .summariser import GenerationClient

# Trim when the last response used more than 80% of the context window
CONTEXT_THRESHOLD_PERCENTAGE = 80
# Keep 70% of the most recent messages, in the prompt and on trim
MESSAGES_TO_KEEP_PERCENTAGE = 70
# Share of the evicted count that is additionally retired from the kept messages
RETIRE_PERCENTAGE = 30


class CredentialProvider(Protocol):
    def get(self) -> str: ...


class ConversationContextManager:
    """Conversation history, context-window trimming and chat retries."""

    def __init__(
        self,
        client: GenerationClient,
        credentials: CredentialProvider,
        models: Optional[ModelCatalogue] = None,
        policy: Optional[RetryPolicy] = None,
        video_context: Optional[VideoContext] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        verbose: bool = False,
    ):
        self.client = client
        self.credentials = credentials
        self.models = models or ModelCatalogue()
        self.policy = policy or RetryPolicy()
        self.video_context = video_context if video_context is not None else VideoContext()
        self.sleep = sleep
        self.verbose = verbose

        self.model_id: Optional[str] = None
        self.history: List[ChatMessage] = []
        self.last_total_tokens = 0
        self.token_usage: Observable[str] = Observable("")
        self._pending: Optional[asyncio.Task] = None

    def set_selected_model(self, model_id: str) -> None:
        self.model_id = model_id
        if self.verbose:
            print(f"  Model set to {model_id}")

    # ----------------------------
    # Sending turns
    # ----------------------------

    def submit(self, turn_text: str) -> asyncio.Task:
        """
        Send a turn in the background; cancel_pending() abandons it.

        Turns submitted while another is pending are sent after it, in order.
        """
        self._pending = asyncio.ensure_future(self._send_after(self._pending, turn_text))
        return self._pending

    async def _send_after(self, previous: Optional[asyncio.Task], turn_text: str) -> str:
        if previous is not None and not previous.done():
            try:
                await asyncio.wait([previous])
            except asyncio.CancelledError:
                previous.cancel()
                raise
        return await self.send(turn_text)

    def cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def send(self, turn_text: str) -> str:
        """
        Send one user turn and return the assistant's reply.

        Raises ConfigurationMissing when no model or API key is set. Service
        failures are returned as an "Error: ..." string; the user's turn stays
        in the history either way.
        """
        if not self.model_id:
            raise ConfigurationMissing("No AI model selected")
        credential = self.credentials.get()
        if not credential:
            raise ConfigurationMissing("Please enter your OpenRouter API key")
        model = self.models.lookup(self.model_id)

        self.trim_if_needed(model.context_length)

        messages = [{"role": "system", "content": self.build_system_message()}]
        messages.extend(self._history_messages())
        messages.append({"role": "user", "content": turn_text})
        self.history.append(ChatMessage(content=turn_text, is_from_user=True))

        if self.verbose:
            print(f"  Sending {len(messages)} messages to {model.name} (1 system, {len(messages) - 2} history)")

        outcome = await self._generate_with_retries(self.model_id, messages, credential)
        if not outcome.ok:
            return f"Error: {outcome.user_message}"

        self.history.append(ChatMessage(content=outcome.text, is_from_user=False))
        self.last_total_tokens = outcome.usage.total_tokens
        self.token_usage.set(f"Last message tokens: {outcome.usage.total_tokens}")
        if self.verbose:
            print(f"  Token usage - Total: {outcome.usage.total_tokens} tokens")
        return outcome.text

    async def _generate_with_retries(
        self, model_id: str, messages: List[Dict[str, str]], credential: str
    ) -> GenerationOutcome:
        max_attempts = self.policy.attempts(Ladder.CHAT)
        for attempt_index in range(max_attempts):
            if self.verbose:
                print(f"  Using model: {model_id} (Attempt {attempt_index + 1})")
            try:
                outcome = await self.client.generate(model_id, messages, credential)
            except Exception as e:
                outcome = GenerationFailed(retryable=False, user_message=str(e) or e.__class__.__name__)
            if outcome.ok:
                return outcome
            if not RetryPolicy.is_retryable(outcome):
                return outcome
            if attempt_index == max_attempts - 1:
                break
            delay = self.policy.delay_for(Ladder.CHAT, attempt_index)
            print(f"  Warning: Attempt {attempt_index + 1} failed: {outcome.user_message}. Retrying in {delay:g}s...")
            await self.sleep(delay)

        return GenerationFailed(
            retryable=False,
            user_message=f"Failed after {max_attempts} attempts: {outcome.user_message}",
            code=outcome.code,
        )

    # ----------------------------
    # Context construction
    # ----------------------------

    def build_system_message(self) -> str:
        context = ""
        if self.video_context.loaded:
            context += VIDEO_CONTEXT_HEADER
            if self.video_context.detailed_summary is not None:
                context += DETAILED_SUMMARY_SECTION.format(detailed_summary=self.video_context.detailed_summary)
            if self.video_context.transcript is not None:
                # The full transcript is always sent, however long it is
                context += TRANSCRIPT_SECTION.format(transcript=self.video_context.transcript)
            context += VIDEO_CONTEXT_FOOTER
        else:
            context = NO_VIDEO_CONTEXT
        return CHAT_SYSTEM_MESSAGE_TEMPLATE.format(context=context)

    def _history_messages(self) -> List[Dict[str, str]]:
        active = [message for message in self.history if not message.is_retired]
        keep = len(active) * MESSAGES_TO_KEEP_PERCENTAGE // 100
        recent = active[len(active) - keep:] if keep else []
        return [{"role": message.role, "content": message.content} for message in recent]

    def trim_if_needed(self, context_length: int) -> bool:
        """
        Evict old history once the last usage crossed the threshold.

        With H messages, the oldest H - floor(0.7 * H) are removed and the
        oldest floor(0.3 * removed) of the remaining ones are retired.
        Returns True when a trim happened.
        """
        if self.last_total_tokens * 100 <= context_length * CONTEXT_THRESHOLD_PERCENTAGE:
            return False

        size = len(self.history)
        keep = size * MESSAGES_TO_KEEP_PERCENTAGE // 100
        evicted = size - keep
        if evicted <= 0:
            return False

        del self.history[:evicted]
        for message in self.history[: evicted * RETIRE_PERCENTAGE // 100]:
            message.is_retired = True
        print(f"  Trimmed chat history to {keep} messages (Token usage: {self.last_total_tokens}/{context_length})")
        return True

    # ----------------------------
    # Reset
    # ----------------------------

    def clear(self) -> None:
        self.cancel_pending()
        self.history.clear()
        self.last_total_tokens = 0
        self.token_usage.set("")
