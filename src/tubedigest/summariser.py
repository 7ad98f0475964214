"""
Dual summary generation for YouTube transcripts.

Produces a short and a detailed summary from one transcript. The two
summaries are requested concurrently and tracked independently: whichever
succeeds is kept for the rest of the run, and only the missing one(s) are
re-requested on the summary retry ladder. Every state change is published to
observers as a SessionState.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Protocol

from .exceptions import DocumentUnavailable, UnknownModelError
from .models import ModelCatalogue
from .prompts import DETAILED_SUMMARY_PROMPT_TEMPLATE, SHORT_SUMMARY_PROMPT_TEMPLATE
from .retry_policy import Ladder, RetryPolicy
from .state import (
    Error,
    GenerationFailed,
    GenerationOutcome,
    Idle,
    Loading,
    Observable,
    Retrying,
    SessionState,
    Success,
    VideoContext,
)


class TranscriptSource(Protocol):
    def fetch_transcript(self, document_ref: str) -> str: ...


class GenerationClient(Protocol):
    async def generate(self, model: str, messages: List[Dict[str, str]], credential: str) -> GenerationOutcome: ...


# ----------------------------
# Per-artifact state machine
# ----------------------------

class ArtifactKind(str, Enum):
    SHORT = "short"
    DETAILED = "detailed"

    @property
    def label(self) -> str:
        return f"{self.value} summary"


class ArtifactPhase(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    COMMITTED = "committed"


@dataclass
class ArtifactTask:
    """
    Tracks one summary across attempts.

    IDLE -> IN_FLIGHT -> COMMITTED on success, or back to IDLE on failure.
    Once COMMITTED the text is locked in; later outcomes are ignored.
    """

    kind: ArtifactKind
    phase: ArtifactPhase = ArtifactPhase.IDLE
    attempt: int = 0
    text: Optional[str] = None
    last_error: Optional[str] = None

    @property
    def committed(self) -> bool:
        return self.phase is ArtifactPhase.COMMITTED

    def start(self, attempt: int) -> None:
        if self.committed:
            raise RuntimeError(f"{self.kind.label} already committed")
        self.phase = ArtifactPhase.IN_FLIGHT
        self.attempt = attempt

    def record(self, outcome: GenerationOutcome) -> None:
        if self.committed:
            return
        if outcome.ok:
            self.text = outcome.text
            self.phase = ArtifactPhase.COMMITTED
        else:
            self.last_error = outcome.user_message
            self.phase = ArtifactPhase.IDLE


@dataclass(frozen=True)
class RequestContext:
    """Parameters of one run, captured once and passed explicitly."""

    document_ref: str
    model_id: str
    credential: str


class SummaryOrchestrator:
    """Drives short + detailed summary generation with partial-failure retries."""

    def __init__(
        self,
        transcripts: TranscriptSource,
        client: GenerationClient,
        models: Optional[ModelCatalogue] = None,
        policy: Optional[RetryPolicy] = None,
        video_context: Optional[VideoContext] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        verbose: bool = False,
    ):
        """
        Args:
            transcripts: Resolves a video reference to transcript text
            client: Generation client used for both summaries
            models: Model catalogue (context-length lookup)
            policy: Retry ladders; defaults to the standard tables
            video_context: Shared holder filled with the transcript and detailed summary for chat
            sleep: Awaitable used for retry waits (injected by tests)
            verbose: Enable verbose output for debugging
        """
        self.transcripts = transcripts
        self.client = client
        self.models = models or ModelCatalogue()
        self.policy = policy or RetryPolicy()
        self.video_context = video_context if video_context is not None else VideoContext()
        self.sleep = sleep
        self.verbose = verbose

        self.state: Observable[SessionState] = Observable(Idle())
        self._run_id = 0
        self._task: Optional[asyncio.Task] = None

    # ----------------------------
    # Run lifecycle
    # ----------------------------

    def submit(self, document_ref: str, model_id: str, credential: str) -> asyncio.Task:
        """Cancel any previous run and start a new one in the background."""
        self.cancel()
        self._task = asyncio.ensure_future(self.run(document_ref, model_id, credential))
        return self._task

    def cancel(self) -> None:
        """Invalidate the current run: its pending timer and in-flight calls are cancelled."""
        self._run_id += 1
        if self._task is not None and not self._task.done() and self._task is not _current_task():
            self._task.cancel()
        self._task = None

    def reset(self) -> None:
        self.cancel()
        self.state.set(Idle())

    async def stream(self, document_ref: str, model_id: str, credential: str) -> AsyncIterator[SessionState]:
        """
        Start a run and yield its published states.

        Ends on a terminal state, on Idle after a reset, or when the run's
        task finishes or is superseded by another run.
        """
        queue: asyncio.Queue = asyncio.Queue()
        finished = object()
        task: Optional[asyncio.Task] = None

        def forward(state: SessionState) -> None:
            if self._task is task or isinstance(state, Idle):
                queue.put_nowait(state)

        unsubscribe = self.state.subscribe(forward)
        task = self.submit(document_ref, model_id, credential)
        task.add_done_callback(lambda _: queue.put_nowait(finished))
        try:
            while True:
                state = await queue.get()
                if state is finished:
                    break
                yield state
                if state.terminal or isinstance(state, Idle):
                    break
        finally:
            unsubscribe()
            if not task.done():
                task.cancel()

    async def run(self, document_ref: str, model_id: str, credential: str) -> SessionState:
        """
        Generate both summaries for a video.

        Supersedes any run already in progress, whether it was started with
        submit() or by awaiting run() directly. Returns the terminal state of
        this run (also published to observers).
        """
        current = _current_task()
        if self._task is not current:
            self.cancel()
            self._task = current
        self._run_id += 1
        run_id = self._run_id
        try:
            return await self._run(run_id, RequestContext(document_ref, model_id, credential))
        finally:
            if self._task is current:
                self._task = None

    async def _run(self, run_id: int, request: RequestContext) -> SessionState:
        self._publish(run_id, Loading())

        if self.verbose:
            print(f"  Step 1: Looking up model {request.model_id}...")
        try:
            model = self.models.lookup(request.model_id)
        except UnknownModelError as e:
            return self._publish(run_id, Error(str(e)))
        if self.verbose:
            print(f"  ✓ {model.name} ({model.context_length:,} token context)")

        if self.verbose:
            print("  Step 2: Fetching transcript from YouTube...")
        try:
            transcript = await asyncio.to_thread(self.transcripts.fetch_transcript, request.document_ref)
        except DocumentUnavailable as e:
            return self._publish(run_id, Error(f"Failed to get video transcript: {e}"))
        if not transcript or not transcript.strip():
            return self._publish(run_id, Error("No transcript available for this video"))
        if self.verbose:
            print(f"  ✓ Transcript fetched: {len(transcript):,} characters")

        if self._is_current(run_id):
            self.video_context.transcript = transcript
            self.video_context.detailed_summary = None

        artifacts = {kind: ArtifactTask(kind) for kind in ArtifactKind}

        if self.verbose:
            print("  Step 3: Generating short and detailed summaries...")
        await self._attempt(run_id, request, transcript, artifacts, attempt=0)

        for attempt_index in range(self.policy.attempts(Ladder.SUMMARY)):
            missing = [task for task in artifacts.values() if not task.committed]
            if not missing:
                break
            self._publish(run_id, self._retrying_state(artifacts, attempt_index))
            delay = self.policy.delay_for(Ladder.SUMMARY, attempt_index)
            print(f"  Retry #{attempt_index + 1} for {_join_labels(missing)} in {delay:g}s...")
            await self.sleep(delay)
            await self._attempt(run_id, request, transcript, artifacts, attempt=attempt_index + 1)

        return self._publish(run_id, self._commit(artifacts))

    # ----------------------------
    # Attempts and reconciliation
    # ----------------------------

    async def _attempt(
        self,
        run_id: int,
        request: RequestContext,
        transcript: str,
        artifacts: Dict[ArtifactKind, ArtifactTask],
        attempt: int,
    ) -> None:
        """Request every uncommitted summary concurrently and record each outcome."""
        pending = [task for task in artifacts.values() if not task.committed]
        for task in pending:
            task.start(attempt)

        outcomes = await asyncio.gather(
            *(self._generate(request, transcript, task.kind) for task in pending),
            return_exceptions=True,
        )

        for task, outcome in zip(pending, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                outcome = GenerationFailed(retryable=False, user_message=str(outcome) or outcome.__class__.__name__)
            task.record(outcome)
            if task.committed:
                if task.kind is ArtifactKind.DETAILED and self._is_current(run_id):
                    self.video_context.detailed_summary = task.text
                if self.verbose:
                    print(f"    ✓ {task.kind.label.capitalize()} generated (attempt {attempt + 1})")
            else:
                print(f"    Warning: {task.kind.label.capitalize()} failed (attempt {attempt + 1}): {task.last_error}")

    async def _generate(self, request: RequestContext, transcript: str, kind: ArtifactKind) -> GenerationOutcome:
        template = SHORT_SUMMARY_PROMPT_TEMPLATE if kind is ArtifactKind.SHORT else DETAILED_SUMMARY_PROMPT_TEMPLATE
        messages = [{"role": "user", "content": template.format(transcript=transcript)}]
        if self.verbose:
            print(f"    Making API call for {kind.label} with model: {request.model_id}")
        return await self.client.generate(request.model_id, messages, request.credential)

    def _retrying_state(self, artifacts: Dict[ArtifactKind, ArtifactTask], attempt_index: int) -> Retrying:
        short = artifacts[ArtifactKind.SHORT]
        detailed = artifacts[ArtifactKind.DETAILED]
        missing = [task for task in (short, detailed) if not task.committed]

        if attempt_index == 0:
            if len(missing) == 2:
                message = "Failed to generate summaries. Retrying..."
            else:
                message = f"Failed to get {missing[0].kind.label}: {missing[0].last_error}. Retrying..."
        elif len(missing) == 2:
            message = f"Retry #{attempt_index} failed for both summaries. Retrying..."
        else:
            message = f"Retry #{attempt_index} failed for {missing[0].kind.label}: {missing[0].last_error}. Retrying..."

        return Retrying(
            message=message,
            attempt_number=attempt_index + 1,
            retrying_short=not short.committed,
            retrying_detailed=not detailed.committed,
            partial_short=short.text,
            partial_detailed=detailed.text,
        )

    @staticmethod
    def _commit(artifacts: Dict[ArtifactKind, ArtifactTask]) -> SessionState:
        short = artifacts[ArtifactKind.SHORT]
        detailed = artifacts[ArtifactKind.DETAILED]
        if short.committed and detailed.committed:
            return Success(short_summary=short.text, detailed_summary=detailed.text)
        missing = [task for task in (short, detailed) if not task.committed]
        return Error(f"Failed to generate {_join_labels(missing)} after multiple retries")

    def _is_current(self, run_id: int) -> bool:
        return run_id == self._run_id

    def _publish(self, run_id: int, state: SessionState) -> SessionState:
        # A superseded run must never overwrite newer state
        if self._is_current(run_id):
            self.state.set(state)
        return state


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def _join_labels(tasks: List[ArtifactTask]) -> str:
    return " and ".join(task.kind.label for task in tasks)
