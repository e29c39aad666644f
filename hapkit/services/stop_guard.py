"""
Stop Guard — Enforces Stop → Ask → Proceed.

When the agent signals a stop, the guard:
1. Requests an inquiry blueprint from the provider (structural request only)
2. Converts the blueprint into a QuestionSpec
3. Has the integrator's renderer produce the question from local context
4. Returns the question so the caller can ask it

INVARIANT: The local context is read only by the renderer; it is never
sent to the provider nor passed to middleware.
INVARIANT: A failed blueprint fetch never yields clarified=True.
INVARIANT: A failing middleware hook never breaks the flow.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from hapkit.models.protocol import InquiryBlueprint, InquiryRequest, LadderStage
from hapkit.models.question_spec import QuestionSpec
from hapkit.providers.base import HapProvider
from hapkit.services.question_spec import QuestionSpecFactory, default_question_spec_factory

logger = logging.getLogger(__name__)


@runtime_checkable
class QuestionRenderer(Protocol):
    """Integrator-supplied question generator."""

    def generate_question(self, context: Any, spec: QuestionSpec) -> str | Awaitable[str]: ...


RendererCallable = Callable[[Any, QuestionSpec], str | Awaitable[str]]


@dataclass(frozen=True)
class ClarificationResult:
    """
    Outcome of ensure_clarified().

    Attributes:
        clarified: True when no stop was triggered
        question: Question to ask (only when clarified is False)
        blueprint_id: Blueprint used, for feedback correlation
        ladder_stage: Stage the stop occurred at
    """

    clarified: bool
    question: str | None = None
    blueprint_id: str | None = None
    ladder_stage: LadderStage | None = None


class StopGuardMiddleware:
    """
    Observer of StopGuard events. Override any subset of hooks.

    Hooks receive structural data only.
    """

    def on_stop_detected(self, request: InquiryRequest) -> None:
        pass

    def on_blueprint_received(self, blueprint: InquiryBlueprint) -> None:
        pass

    def on_question_generated(self, question_id: str, spec: QuestionSpec) -> None:
        pass

    def on_clarification_skipped(self) -> None:
        pass


class LoggingMiddleware(StopGuardMiddleware):
    """Logs StopGuard events at INFO on the given logger."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def on_stop_detected(self, request: InquiryRequest) -> None:
        self.log.info(
            "Stop detected: stage=%s mode=%s pattern=%s",
            request.ladder_stage.value,
            request.agency_mode.value,
            request.stop_pattern,
        )

    def on_blueprint_received(self, blueprint: InquiryBlueprint) -> None:
        self.log.info("Blueprint received: %s", blueprint.id)

    def on_question_generated(self, question_id: str, spec: QuestionSpec) -> None:
        self.log.info(
            "Question generated from %s (stage=%s, tone=%s)",
            question_id,
            spec.ladder_stage.value,
            spec.tone,
        )

    def on_clarification_skipped(self) -> None:
        self.log.debug("No stop triggered; clarification skipped")


class StopGuard:
    """
    Primary enforcement point for the Stop → Ask → Proceed protocol.

    Args:
        provider: HapClient in production, LocalHapProvider in development
        renderer: Object with generate_question(context, spec), or a plain
            callable with the same signature; sync or async
        question_spec_factory: Optional custom factory
        middleware: Optional observers
    """

    def __init__(
        self,
        provider: HapProvider,
        renderer: QuestionRenderer | RendererCallable,
        question_spec_factory: QuestionSpecFactory | None = None,
        middleware: list[StopGuardMiddleware] | None = None,
    ) -> None:
        self.provider = provider
        self.renderer = renderer
        self.question_spec_factory = question_spec_factory or default_question_spec_factory
        self.middleware: list[StopGuardMiddleware] = list(middleware or [])

    async def ensure_clarified(self, context: Any, request: InquiryRequest) -> ClarificationResult:
        """
        Ensure the agent may proceed, or produce the question to ask.

        Args:
            context: Local context; handed to the renderer only
            request: Structural inquiry request

        Returns:
            clarified=True if no stop was triggered, else the question

        Raises:
            HapError: Provider failures propagate unchanged
            ValidationError: If the blueprint can't be turned into a spec
        """
        if not request.stop_trigger:
            self._notify("on_clarification_skipped")
            return ClarificationResult(clarified=True)

        self._notify("on_stop_detected", request)

        blueprint = await self.provider.request_inquiry_blueprint(request)
        self._notify("on_blueprint_received", blueprint)

        spec = self.question_spec_factory.from_blueprint(blueprint)
        question = await self._render(context, spec)

        self._notify("on_question_generated", blueprint.id, spec)

        return ClarificationResult(
            clarified=False,
            question=question,
            blueprint_id=blueprint.id,
            ladder_stage=request.ladder_stage,
        )

    def add_middleware(self, middleware: StopGuardMiddleware) -> None:
        self.middleware.append(middleware)

    def remove_middleware(self, middleware: StopGuardMiddleware) -> None:
        """Remove a middleware; unknown ones are ignored."""
        if middleware in self.middleware:
            self.middleware.remove(middleware)

    async def _render(self, context: Any, spec: QuestionSpec) -> str:
        if isinstance(self.renderer, QuestionRenderer):
            result = self.renderer.generate_question(context, spec)
        else:
            result = self.renderer(context, spec)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _notify(self, hook: str, *args: Any) -> None:
        for middleware in list(self.middleware):
            callback = getattr(middleware, hook, None)
            if callback is None:
                continue
            try:
                callback(*args)
            except Exception:
                logger.exception(
                    "StopGuard middleware %s.%s failed", type(middleware).__name__, hook
                )
