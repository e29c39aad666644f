"""
Stop Detector — Build InquiryRequests from Local Analysis.

Integrators either set stop_trigger themselves (create_request) or plug
in a strategy that inspects the local context (detect).

INVARIANT: Every request returned here is schema-valid.
INVARIANT: The context is only seen by the strategy.
"""

import inspect
from collections.abc import Awaitable, Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import StrictBool

from hapkit.models.failure import ValidationError
from hapkit.models.protocol import (
    AgencyMode,
    InquiryRequest,
    LadderStage,
    ProtocolModel,
    coerce_model,
)


class StopAnalysis(ProtocolModel):
    """
    Result of analysing a local context.

    Attributes:
        should_stop: Whether the agent must stop and ask
        ladder_stage: Current ladder stage
        agency_mode: Current agency mode
        reason: Optional note for local debugging; never sent anywhere
    """

    should_stop: StrictBool
    ladder_stage: LadderStage
    agency_mode: AgencyMode
    reason: str | None = None


@runtime_checkable
class StopDetectionStrategy(Protocol):
    """Decides whether to stop, given the local context."""

    def analyze(
        self, context: Any
    ) -> StopAnalysis | Mapping[str, Any] | Awaitable[StopAnalysis | Mapping[str, Any]]: ...


class StopDetector:
    """
    Helper for building stop requests.

    Args:
        strategy: Optional detection strategy used by detect()
    """

    def __init__(self, strategy: StopDetectionStrategy | None = None) -> None:
        self.strategy = strategy

    def create_request(
        self,
        ladder_stage: LadderStage | str,
        agency_mode: AgencyMode | str,
        stop_trigger: bool,
        **metadata: Any,
    ) -> InquiryRequest:
        """
        Build a request for integrators with their own stop logic.

        Args:
            ladder_stage: Current ladder stage
            agency_mode: Current agency mode
            stop_trigger: Whether to stop
            **metadata: Optional structural fields (stop_pattern, domain,
                complexity_signal, session_context, stop_condition)

        Raises:
            ValidationError: If any value is invalid
        """
        if not isinstance(stop_trigger, bool):
            raise ValidationError(
                "Request must include stop_trigger boolean", field_path="stopTrigger"
            )
        return coerce_model(
            InquiryRequest,
            {
                "ladderStage": ladder_stage,
                "agencyMode": agency_mode,
                "stopTrigger": stop_trigger,
                **metadata,
            },
        )

    async def detect(self, context: Any) -> InquiryRequest:
        """
        Run the strategy and build the request from its analysis.

        Raises:
            ValidationError: If no strategy is configured, or the analysis
                is invalid
        """
        if self.strategy is None:
            raise ValidationError(
                "No detection strategy configured. Use create_request() for manual "
                "detection or provide a strategy."
            )

        result = self.strategy.analyze(context)
        if inspect.isawaitable(result):
            result = await result
        analysis = coerce_model(StopAnalysis, result)

        return InquiryRequest(
            ladder_stage=analysis.ladder_stage,
            agency_mode=analysis.agency_mode,
            stop_trigger=analysis.should_stop,
        )
