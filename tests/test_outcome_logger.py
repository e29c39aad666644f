"""
Tests for QuestionOutcomeLogger.
"""

import pytest

from hapkit.metrics.outcome_logger import QuestionOutcomeLogger
from hapkit.models.metrics import QuestionOutcome, QuestionStats
from hapkit.models.protocol import LadderStage


def outcome(
    question_id: str = "q-1",
    stage: str = "meaning",
    resolved: bool = True,
    turns: int = 2,
    advanced: bool = False,
) -> QuestionOutcome:
    return QuestionOutcome(
        question_id=question_id,
        ladder_stage=stage,
        stop_resolved=resolved,
        turns_to_resolution=turns,
        phase_advanced=advanced,
        timestamp=1_700_000_000_000,
    )


class TestBuffer:
    """Tests for buffering."""

    def test_log_and_len(self) -> None:
        logger = QuestionOutcomeLogger()
        logger.log(outcome())
        logger.log(outcome("q-2"))
        assert len(logger) == 2

    def test_fifo_eviction(self) -> None:
        """Past capacity, the oldest outcome is dropped."""
        logger = QuestionOutcomeLogger(max_buffer_size=2)
        for i in range(3):
            logger.log(outcome(f"q-{i}"))

        assert [o.question_id for o in logger.get_buffer()] == ["q-1", "q-2"]

    def test_buffer_snapshot_is_immutable(self) -> None:
        logger = QuestionOutcomeLogger()
        logger.log(outcome())

        snapshot = logger.get_buffer()
        logger.log(outcome("q-2"))

        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1

    def test_clear(self) -> None:
        logger = QuestionOutcomeLogger()
        logger.log(outcome())
        logger.clear()
        assert len(logger) == 0

    def test_invalid_capacity(self) -> None:
        with pytest.raises(ValueError):
            QuestionOutcomeLogger(max_buffer_size=0)


class TestStats:
    """Tests for aggregate statistics."""

    def test_empty(self) -> None:
        assert QuestionOutcomeLogger().get_stats() == QuestionStats()

    def test_aggregates(self) -> None:
        logger = QuestionOutcomeLogger()
        logger.log(outcome(resolved=True, turns=2, advanced=True))
        logger.log(outcome(resolved=True, turns=4))
        logger.log(outcome(resolved=False, turns=9))
        logger.log(outcome(resolved=False, turns=0, advanced=True))

        stats = logger.get_stats()

        assert stats.total == 4
        assert stats.total_resolved == 2
        assert stats.total_unresolved == 2
        assert stats.resolved_rate == pytest.approx(0.5)
        assert stats.avg_turns_to_resolution == pytest.approx(3.0)
        assert stats.phase_advanced_rate == pytest.approx(0.5)

    def test_by_stage(self) -> None:
        logger = QuestionOutcomeLogger()
        logger.log(outcome(stage="meaning", resolved=True))
        logger.log(outcome(stage="purpose", resolved=False))
        logger.log(outcome(stage="purpose", resolved=True))

        purpose = logger.get_stats_by_stage(LadderStage.PURPOSE)
        action = logger.get_stats_by_stage("action")

        assert purpose.total == 2
        assert purpose.resolved_rate == pytest.approx(0.5)
        assert action.total == 0


class TestExport:
    """Tests for export()."""

    @pytest.mark.anyio
    async def test_sync_exporter(self) -> None:
        logger = QuestionOutcomeLogger()
        logger.log(outcome())
        received: list[tuple[QuestionOutcome, ...]] = []

        await logger.export(received.append)

        assert received == [logger.get_buffer()]

    @pytest.mark.anyio
    async def test_async_exporter(self) -> None:
        logger = QuestionOutcomeLogger()
        logger.log(outcome())
        logger.log(outcome("q-2"))
        received: list[int] = []

        async def exporter(outcomes: tuple[QuestionOutcome, ...]) -> None:
            received.append(len(outcomes))

        await logger.export(exporter)

        assert received == [2]
