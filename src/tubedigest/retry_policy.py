"""
Retry ladders for summary generation and chat turns.

Delays are fixed tables indexed by attempt, not computed by formula. Callers
check ``attempts(ladder)`` before scheduling the next attempt; asking for a
delay past the end of a table is a programming error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from .state import GenerationOutcome


class Ladder(str, Enum):
    SUMMARY = "summary"
    CHAT = "chat"


class TaskKind(str, Enum):
    SHORT = "short"
    DETAILED = "detailed"
    CHAT = "chat"


# Seconds between attempts
SUMMARY_RETRY_DELAYS: Tuple[float, ...] = (10.0, 20.0, 30.0, 40.0, 50.0, 60.0)
CHAT_RETRY_DELAYS: Tuple[float, ...] = (2.0, 5.0, 10.0, 30.0, 60.0)


@dataclass(frozen=True)
class RetryAttempt:
    task_kind: TaskKind
    attempt_index: int
    scheduled_delay: float


class RetryPolicy:
    """Pure lookup over the per-use-case delay tables."""

    def __init__(
        self,
        summary_delays: Optional[Sequence[float]] = None,
        chat_delays: Optional[Sequence[float]] = None,
    ):
        self._tables: Dict[Ladder, Tuple[float, ...]] = {
            Ladder.SUMMARY: tuple(SUMMARY_RETRY_DELAYS if summary_delays is None else summary_delays),
            Ladder.CHAT: tuple(CHAT_RETRY_DELAYS if chat_delays is None else chat_delays),
        }

    def attempts(self, ladder: Ladder) -> int:
        """Number of entries in the ladder's table."""
        return len(self._tables[ladder])

    def delay_for(self, ladder: Ladder, attempt_index: int) -> float:
        """Return the wait in seconds before retry ``attempt_index`` (zero-based)."""
        table = self._tables[ladder]
        if attempt_index < 0 or attempt_index >= len(table):
            raise IndexError(
                f"Attempt index {attempt_index} outside {ladder.value} ladder of {len(table)} entries"
            )
        return table[attempt_index]

    def schedule(self, task_kind: TaskKind, attempt_index: int) -> RetryAttempt:
        ladder = Ladder.CHAT if task_kind is TaskKind.CHAT else Ladder.SUMMARY
        return RetryAttempt(task_kind, attempt_index, self.delay_for(ladder, attempt_index))

    @staticmethod
    def is_retryable(outcome: GenerationOutcome) -> bool:
        # Classification is done by the generation client; the policy only reads it.
        return not outcome.ok and outcome.retryable
