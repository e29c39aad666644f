"""
Tests for GuardedAction type-state enforcement.
"""

import pytest

from hapkit.models.failure import UnresolvedStopError
from hapkit.models.protocol import LadderStage
from hapkit.services.guarded_action import (
    GuardedAction,
    ResolvedAction,
    StoppedAction,
    is_resolved,
    is_stopped,
)
from hapkit.services.stop_guard import ClarificationResult


def stopped() -> StoppedAction:
    return GuardedAction.create("What should we build?", "bp-123", LadderStage.MEANING)


class TestStoppedAction:
    """A stopped action cannot proceed."""

    def test_create(self) -> None:
        action = stopped()
        assert action.stopped is True
        assert action.question == "What should we build?"
        assert action.blueprint_id == "bp-123"
        assert action.ladder_stage == LadderStage.MEANING

    def test_proceed_raises_with_stage(self) -> None:
        action = GuardedAction.create("Why?", "bp-9", "purpose")

        with pytest.raises(UnresolvedStopError) as exc_info:
            action.proceed(lambda: "done")

        assert exc_info.value.ladder_stage == "purpose"
        assert "unspecified" in exc_info.value.message

    def test_resolve_returns_resolved(self) -> None:
        resolved = stopped().resolve("a todo app")
        assert isinstance(resolved, ResolvedAction)
        assert resolved.answer == "a todo app"

    def test_frozen(self) -> None:
        action = stopped()
        with pytest.raises(AttributeError):
            action.question = "changed"  # type: ignore[misc]


class TestResolvedAction:
    """A resolved action runs the callback."""

    @pytest.mark.anyio
    async def test_proceed_sync(self) -> None:
        assert await GuardedAction.create_resolved().proceed(lambda: 42) == 42

    @pytest.mark.anyio
    async def test_proceed_async(self) -> None:
        async def build() -> str:
            return "built"

        assert await stopped().resolve("yes").proceed(build) == "built"

    @pytest.mark.anyio
    async def test_proceed_propagates_errors(self) -> None:
        def fail() -> None:
            raise RuntimeError("action failed")

        with pytest.raises(RuntimeError, match="action failed"):
            await GuardedAction.create_resolved().proceed(fail)


class TestFromClarificationResult:
    """Tests for the StopGuard bridge."""

    def test_clarified_is_resolved(self) -> None:
        action = GuardedAction.from_clarification_result(ClarificationResult(clarified=True))
        assert is_resolved(action)
        assert not is_stopped(action)

    def test_unclarified_is_stopped(self) -> None:
        result = ClarificationResult(
            clarified=False,
            question="Which file?",
            blueprint_id="bp-1",
            ladder_stage=LadderStage.MEANING,
        )
        action = GuardedAction.from_clarification_result(result)
        assert is_stopped(action)
        assert action.question == "Which file?"

    def test_camel_case_mapping(self) -> None:
        action = GuardedAction.from_clarification_result(
            {"clarified": False, "question": "Q?", "blueprintId": "bp-1", "ladderStage": "action"}
        )
        assert is_stopped(action)
        assert action.ladder_stage == LadderStage.ACTION

    @pytest.mark.parametrize("missing", ["question", "blueprint_id", "ladder_stage"])
    def test_incomplete_unclarified_result(self, missing: str) -> None:
        data = {
            "clarified": False,
            "question": "Q?",
            "blueprint_id": "bp-1",
            "ladder_stage": "meaning",
        }
        del data[missing]

        with pytest.raises(ValueError, match="must include"):
            GuardedAction.from_clarification_result(data)
