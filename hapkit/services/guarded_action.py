"""
Guarded Action — Type-State Enforcement of Stop → Ask → Proceed.

An action is either stopped (a question is pending) or resolved. Only a
ResolvedAction can proceed; a StoppedAction must be resolved with the
user's answer first.

INVARIANT: StoppedAction and ResolvedAction are disjoint.
INVARIANT: StoppedAction.proceed() always raises UnresolvedStopError.

Example:
    action = GuardedAction.from_clarification_result(result)
    if is_stopped(action):
        action = action.resolve(answer)
    await action.proceed(build_something)
"""

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, NoReturn, TypeGuard, TypeVar

from hapkit.models.failure import UnresolvedStopError
from hapkit.models.protocol import LadderStage
from hapkit.services.stop_guard import ClarificationResult

T = TypeVar("T")


@dataclass(frozen=True)
class ResolvedAction:
    """An action whose stop, if any, has been answered."""

    stopped: ClassVar[bool] = False

    answer: str | None = None

    async def proceed(self, action: Callable[[], T | Awaitable[T]]) -> T:
        """Run the action, awaiting its result if it is awaitable."""
        result = action()
        if inspect.isawaitable(result):
            return await result
        return result


@dataclass(frozen=True)
class StoppedAction:
    """An action blocked on a clarification question."""

    stopped: ClassVar[bool] = True

    question: str
    blueprint_id: str
    ladder_stage: LadderStage

    def resolve(self, answer: str) -> ResolvedAction:
        """Record the user's answer and unlock proceeding."""
        return ResolvedAction(answer=answer)

    def proceed(self, *args: Any, **kwargs: Any) -> NoReturn:
        """Not allowed: resolve() first."""
        raise UnresolvedStopError(ladder_stage=self.ladder_stage)


class GuardedAction:
    """Constructors for stopped and resolved actions."""

    @staticmethod
    def create(question: str, blueprint_id: str, ladder_stage: LadderStage | str) -> StoppedAction:
        return StoppedAction(
            question=question,
            blueprint_id=blueprint_id,
            ladder_stage=LadderStage(ladder_stage),
        )

    @staticmethod
    def create_resolved() -> ResolvedAction:
        return ResolvedAction()

    @staticmethod
    def from_clarification_result(
        result: ClarificationResult | Mapping[str, Any],
    ) -> StoppedAction | ResolvedAction:
        """
        Build the matching variant from a StopGuard result.

        Mappings may use snake_case or camelCase keys.

        Raises:
            ValueError: If an unclarified result lacks question, blueprint
                id or ladder stage
        """
        if isinstance(result, Mapping):
            clarified = bool(result.get("clarified"))
            question = result.get("question")
            blueprint_id = result.get("blueprint_id", result.get("blueprintId"))
            ladder_stage = result.get("ladder_stage", result.get("ladderStage"))
        else:
            clarified = result.clarified
            question = result.question
            blueprint_id = result.blueprint_id
            ladder_stage = result.ladder_stage

        if clarified:
            return GuardedAction.create_resolved()

        if not question or not blueprint_id or not ladder_stage:
            raise ValueError(
                "Unclarified result must include question, blueprint_id, and ladder_stage"
            )

        return GuardedAction.create(question, blueprint_id, ladder_stage)


def is_stopped(action: StoppedAction | ResolvedAction) -> TypeGuard[StoppedAction]:
    return isinstance(action, StoppedAction)


def is_resolved(action: StoppedAction | ResolvedAction) -> TypeGuard[ResolvedAction]:
    return isinstance(action, ResolvedAction)
