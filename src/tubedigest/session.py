"""
One user session: a summary run plus the chat about the same video.

The summary orchestrator and the chat manager share a VideoContext, so chat
turns are framed with whatever transcript and detailed summary the latest run
produced. Their lifecycles are independent: each keeps its own pending task,
and starting a new video or clearing cancels both.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from .chat import ConversationContextManager, CredentialProvider
from .exceptions import ConfigurationMissing
from .models import ModelCatalogue
from .retry_policy import RetryPolicy
from .state import Observable, SessionState, VideoContext
from .summariser import GenerationClient, SummaryOrchestrator, TranscriptSource


class SummarySession:
    def __init__(
        self,
        transcripts: TranscriptSource,
        client: GenerationClient,
        credentials: CredentialProvider,
        models: Optional[ModelCatalogue] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        verbose: bool = False,
    ):
        self.credentials = credentials
        self.video_context = VideoContext()
        models = models or ModelCatalogue()
        policy = policy or RetryPolicy()
        self.summaries = SummaryOrchestrator(
            transcripts, client, models=models, policy=policy,
            video_context=self.video_context, sleep=sleep, verbose=verbose,
        )
        self.chat = ConversationContextManager(
            client, credentials, models=models, policy=policy,
            video_context=self.video_context, sleep=sleep, verbose=verbose,
        )

    @property
    def state(self) -> Observable[SessionState]:
        return self.summaries.state

    @property
    def token_usage(self) -> Observable[str]:
        return self.chat.token_usage

    def set_selected_model(self, model_id: str) -> None:
        self.chat.set_selected_model(model_id)

    def process_video(self, url: str, model_id: Optional[str] = None, credential: Optional[str] = None) -> asyncio.Task:
        """Start summarising a video, superseding any previous run and pending chat turn."""
        model_id = model_id or self.chat.model_id
        credential = credential or self.credentials.get()
        if not model_id:
            raise ConfigurationMissing("No AI model selected")
        if not credential:
            raise ConfigurationMissing("Please enter your OpenRouter API key")

        self.chat.cancel_pending()
        self.chat.set_selected_model(model_id)
        return self.summaries.submit(url, model_id, credential)

    async def send_chat_message(self, message: str) -> str:
        return await self.chat.submit(message)

    def clear_video_context(self) -> None:
        """Forget the current video; chat history is kept."""
        self.summaries.reset()
        self.chat.cancel_pending()
        self.video_context.clear()

    def clear_all(self) -> None:
        """Forget the video, the chat history and the token usage."""
        self.clear_video_context()
        self.chat.clear()
