"""
Shared data structures.

SessionState is what presentation layers observe: one of Idle, Loading,
Retrying, Success or Error. Generation outcomes and chat messages live here
too since both the orchestrator and the chat manager use them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar, Union


# ----------------------------
# Generation outcomes
# ----------------------------

@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class GenerationOk:
    text: str
    usage: TokenUsage = TokenUsage()

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class GenerationFailed:
    retryable: bool
    user_message: str
    code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return False


GenerationOutcome = Union[GenerationOk, GenerationFailed]


# ----------------------------
# Session state
# ----------------------------

@dataclass(frozen=True)
class Idle:
    terminal = False


@dataclass(frozen=True)
class Loading:
    terminal = False


@dataclass(frozen=True)
class Retrying:
    message: str
    attempt_number: int
    retrying_short: bool
    retrying_detailed: bool
    partial_short: Optional[str] = None
    partial_detailed: Optional[str] = None
    terminal = False


@dataclass(frozen=True)
class Success:
    short_summary: str
    detailed_summary: str
    terminal = True


@dataclass(frozen=True)
class Error:
    message: str
    terminal = True


SessionState = Union[Idle, Loading, Retrying, Success, Error]


# ----------------------------
# Chat
# ----------------------------

@dataclass
class ChatMessage:
    content: str
    is_from_user: bool
    is_retired: bool = False

    @property
    def role(self) -> str:
        return "user" if self.is_from_user else "assistant"


@dataclass
class VideoContext:
    """Document text and best-known detailed summary, used to frame chat turns."""

    transcript: Optional[str] = None
    detailed_summary: Optional[str] = None

    def clear(self) -> None:
        self.transcript = None
        self.detailed_summary = None

    @property
    def loaded(self) -> bool:
        return self.transcript is not None or self.detailed_summary is not None


# ----------------------------
# Observable value
# ----------------------------

T = TypeVar("T")


class Observable(Generic[T]):
    """Holds a current value and notifies subscribers on every set."""

    def __init__(self, initial: T):
        self._value = initial
        self._observers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for observer in list(self._observers):
            observer(value)

    def subscribe(self, observer: Callable[[T], None]) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe
