"""
Local HAP Provider — Blueprints from a directory or URL, no service calls.

The provider supplies infrastructure only:
- loading and caching blueprints
- filtering candidates by stage, mode and pattern
- ordering candidates by version (newest first)
- incremental per-blueprint metrics from feedback

Choosing among candidates is delegated to the integrator's selector.

INVARIANT: The selector's choice is one of the candidates (identity).
INVARIANT: Metrics are updated incrementally; no feedback history is kept.
INVARIANT: Metrics are scoped to the provider instance.
"""

import logging
import time
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import httpx

from hapkit.metrics.outcome_logger import QuestionOutcomeLogger
from hapkit.models.failure import (
    BlueprintNotFoundError,
    ConfigurationError,
    SelectorError,
)
from hapkit.models.metrics import BlueprintMetrics, QuestionOutcome
from hapkit.models.protocol import (
    FeedbackPayload,
    InquiryBlueprint,
    InquiryRequest,
    coerce_model,
)
from hapkit.providers.base import BlueprintSelector
from hapkit.providers.loader import load_blueprints

logger = logging.getLogger(__name__)


class LocalHapProvider:
    """
    File- or URL-backed implementation of the HapProvider protocol.

    Args:
        blueprint_source: Directory path or http(s) URL
        selector: Integrator's BlueprintSelector
        metrics_logger: Optional outcome logger fed from feedback
        transport: Optional httpx transport for URL sources

    Raises:
        ConfigurationError: If blueprint_source or selector is missing
    """

    def __init__(
        self,
        blueprint_source: str,
        selector: BlueprintSelector,
        metrics_logger: QuestionOutcomeLogger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not blueprint_source or not isinstance(blueprint_source, str):
            raise ConfigurationError(
                "blueprint_source is required and must be a string",
                field="blueprint_source",
            )
        if not callable(selector):
            raise ConfigurationError(
                "selector is required and must be callable",
                field="selector",
            )

        self.blueprint_source = blueprint_source
        self.selector = selector
        self.metrics_logger = metrics_logger
        self._transport = transport
        self._blueprints: dict[str, InquiryBlueprint] = {}
        self._metrics: dict[str, BlueprintMetrics] = {}
        self._loaded = False

    # =========================================================================
    # PROVIDER API
    # =========================================================================

    async def request_inquiry_blueprint(
        self, request: InquiryRequest | Mapping[str, Any]
    ) -> InquiryBlueprint:
        """
        Select a cached blueprint for the request.

        Steps:
        1. Load blueprints from the source (first call only)
        2. Filter by stage, mode and pattern; sort by version descending
        3. Hand candidates, request and a metrics snapshot to the selector
        4. Verify the selector returned one of the candidates

        Raises:
            ValidationError: If the request is invalid
            BlueprintLoadError: If the source can't be loaded
            BlueprintNotFoundError: If no blueprint matches
            SelectorError: If the selector returns a non-candidate
        """
        validated = coerce_model(InquiryRequest, request)
        await self._ensure_loaded()

        candidates = self.filter_candidates(validated)
        if not candidates:
            message = (
                f'No matching blueprints found for stage="{validated.ladder_stage.value}", '
                f'mode="{validated.agency_mode.value}"'
            )
            if validated.stop_pattern:
                message += f', pattern="{validated.stop_pattern}"'
            raise BlueprintNotFoundError(message)

        selected = self.selector(candidates, validated, self.metrics_snapshot())

        if selected is None:
            raise SelectorError("Selector returned None; it must return a blueprint")
        if not any(selected is candidate for candidate in candidates):
            raise SelectorError("Selector must return one of the provided candidates")

        logger.debug("Selected blueprint %s from %d candidates", selected.id, len(candidates))
        return selected

    async def send_feedback(self, payload: FeedbackPayload | Mapping[str, Any]) -> None:
        """
        Update local metrics from feedback. Nothing is sent anywhere.

        Raises:
            ValidationError: If the payload is invalid or lacks a blueprint id
        """
        validated = coerce_model(FeedbackPayload, payload)

        self._update_metrics(validated)
        if self.metrics_logger is not None:
            self.metrics_logger.log(_outcome_from_feedback(validated))

    # =========================================================================
    # CANDIDATES
    # =========================================================================

    def filter_candidates(self, request: InquiryRequest) -> list[InquiryBlueprint]:
        """
        Return matching blueprints, newest version first.

        Stage and mode must match exactly; when a pattern is given, the
        blueprint's stop condition must equal it. Ties keep load order.
        """
        candidates = [
            blueprint
            for blueprint in self._blueprints.values()
            if blueprint.ladder_stage == request.ladder_stage
            and blueprint.agency_mode == request.agency_mode
        ]

        if request.stop_pattern:
            candidates = [c for c in candidates if c.stop_condition.value == request.stop_pattern]

        candidates.sort(key=lambda blueprint: blueprint.version, reverse=True)
        return candidates

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        # Two concurrent first calls may both load; writes are last-wins per id
        blueprints = await load_blueprints(self.blueprint_source, transport=self._transport)
        for blueprint in blueprints:
            self._blueprints[blueprint.id] = blueprint
        # An empty source is retried on the next request
        self._loaded = bool(self._blueprints)

    # =========================================================================
    # METRICS
    # =========================================================================

    def _update_metrics(self, payload: FeedbackPayload) -> None:
        existing = self._metrics.get(payload.blueprint_id, BlueprintMetrics())

        total_uses = existing.total_uses + 1

        resolved_count = existing.resolution_rate * existing.total_uses
        new_resolved_count = resolved_count + 1 if payload.stop_resolved else resolved_count
        resolution_rate = new_resolved_count / total_uses

        # Mean over resolved events only
        average_turns = existing.average_turns
        if payload.stop_resolved and payload.turns_delta is not None:
            total_turns = existing.average_turns * resolved_count + abs(payload.turns_delta)
            average_turns = total_turns / new_resolved_count if new_resolved_count > 0 else 0.0

        # Mean over all events
        phase_advance_rate = existing.phase_advance_rate
        if payload.previous_phase is not None and payload.current_phase is not None:
            advanced = payload.previous_phase != payload.current_phase
            advance_count = (existing.phase_advance_rate or 0.0) * existing.total_uses
            phase_advance_rate = (advance_count + (1 if advanced else 0)) / total_uses

        self._metrics[payload.blueprint_id] = BlueprintMetrics(
            total_uses=total_uses,
            resolution_rate=min(1.0, resolution_rate),
            average_turns=average_turns,
            average_time_ms=existing.average_time_ms,
            phase_advance_rate=None if phase_advance_rate is None else min(1.0, phase_advance_rate),
        )

    def get_metrics(self, blueprint_id: str) -> BlueprintMetrics | None:
        """Current metrics for one blueprint, if any feedback was received."""
        return self._metrics.get(blueprint_id)

    def metrics_snapshot(self) -> Mapping[str, BlueprintMetrics]:
        """Read-only copy of all metrics."""
        return MappingProxyType(dict(self._metrics))

    @property
    def cached_blueprints(self) -> Mapping[str, InquiryBlueprint]:
        """Read-only view of the blueprint cache."""
        return MappingProxyType(self._blueprints)


def _outcome_from_feedback(payload: FeedbackPayload) -> QuestionOutcome:
    phase_advanced = (
        payload.previous_phase is not None
        and payload.current_phase is not None
        and payload.previous_phase != payload.current_phase
    )
    return QuestionOutcome(
        question_id=payload.blueprint_id,
        ladder_stage=payload.current_phase or payload.previous_phase or _stage_of(payload),
        stop_resolved=payload.stop_resolved,
        turns_to_resolution=abs(payload.turns_delta or 0),
        phase_advanced=phase_advanced,
        timestamp=int(time.time() * 1000),
    )


def _stage_of(payload: FeedbackPayload) -> str:
    # Blueprint ids follow {stage}-{mode}-{pattern}-v{N}
    prefix = payload.blueprint_id.split("-", 1)[0]
    return prefix if prefix in ("meaning", "purpose", "intention", "action") else "meaning"
