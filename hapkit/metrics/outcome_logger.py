"""
Question Outcome Logger — Local Structural Metrics.

Keeps a bounded in-memory buffer of QuestionOutcome records so an
integrator can watch resolution rates per ladder stage and ship them to
their own analytics.

INVARIANT: Only structural outcomes are stored; never user content.
INVARIANT: Past capacity, the oldest outcome is evicted first.
"""

import inspect
from collections import deque
from collections.abc import Awaitable, Callable, Iterable

from hapkit.models.metrics import QuestionOutcome, QuestionStats
from hapkit.models.protocol import LadderStage

DEFAULT_MAX_BUFFER_SIZE = 1000

# Receives a snapshot of the buffer; may be sync or async
OutcomeExporter = Callable[[tuple[QuestionOutcome, ...]], Awaitable[None] | None]


class QuestionOutcomeLogger:
    """Bounded FIFO buffer of question outcomes with aggregate stats."""

    def __init__(self, max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE) -> None:
        if max_buffer_size < 1:
            raise ValueError("max_buffer_size must be at least 1")
        self.max_buffer_size = max_buffer_size
        self._buffer: deque[QuestionOutcome] = deque(maxlen=max_buffer_size)

    def log(self, outcome: QuestionOutcome) -> None:
        self._buffer.append(outcome)

    def get_stats(self) -> QuestionStats:
        """Aggregate statistics over every buffered outcome."""
        return compute_stats(self._buffer)

    def get_stats_by_stage(self, stage: LadderStage | str) -> QuestionStats:
        """Aggregate statistics for one ladder stage."""
        stage = LadderStage(stage)
        return compute_stats(o for o in self._buffer if o.ladder_stage == stage)

    def get_buffer(self) -> tuple[QuestionOutcome, ...]:
        """Immutable snapshot of the buffer, oldest first."""
        return tuple(self._buffer)

    async def export(self, exporter: OutcomeExporter) -> None:
        """Hand a snapshot of the buffer to an exporter and await it if needed."""
        result = exporter(self.get_buffer())
        if inspect.isawaitable(result):
            await result

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)


def compute_stats(outcomes: Iterable[QuestionOutcome]) -> QuestionStats:
    """
    Compute aggregate statistics.

    Average turns is taken over resolved outcomes only; an empty input
    yields all-zero stats.
    """
    items = list(outcomes)
    if not items:
        return QuestionStats()

    resolved = [o for o in items if o.stop_resolved]
    total_resolved = len(resolved)
    phase_advanced = sum(1 for o in items if o.phase_advanced)

    avg_turns = (
        sum(o.turns_to_resolution for o in resolved) / total_resolved if total_resolved else 0.0
    )

    return QuestionStats(
        total=len(items),
        resolved_rate=total_resolved / len(items),
        avg_turns_to_resolution=avg_turns,
        phase_advanced_rate=phase_advanced / len(items),
        total_resolved=total_resolved,
        total_unresolved=len(items) - total_resolved,
    )
