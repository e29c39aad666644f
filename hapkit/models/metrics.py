"""
Metrics Models — Structural Outcome Statistics.

Everything here is numeric or enum-valued. No user content.
"""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from hapkit.models.protocol import LadderStage


class BlueprintMetrics(BaseModel):
    """
    Running performance statistics for one blueprint.

    Updated incrementally on every feedback; no history is retained.

    Attributes:
        total_uses: Number of feedback events received
        resolution_rate: Fraction of events where the stop was resolved
        average_turns: Mean |turns_delta| over resolved events
        average_time_ms: Mean time to resolution, when tracked
        phase_advance_rate: Fraction of events where the phase changed
    """

    model_config = ConfigDict(frozen=True)

    total_uses: int = Field(default=0, ge=0)
    resolution_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    average_turns: float = Field(default=0.0, ge=0.0)
    average_time_ms: float | None = Field(default=None, ge=0.0)
    phase_advance_rate: float | None = Field(default=None, ge=0.0, le=1.0)


class QuestionOutcome(BaseModel):
    """One completed stop episode, as recorded by the outcome logger."""

    model_config = ConfigDict(frozen=True)

    question_id: str = Field(..., min_length=1, max_length=100)
    ladder_stage: LadderStage
    stop_resolved: bool
    turns_to_resolution: int = Field(..., ge=0, le=100)
    phase_advanced: bool
    timestamp: int = Field(..., gt=0)


@dataclass(frozen=True)
class QuestionStats:
    """Aggregate statistics over a set of outcomes."""

    total: int = 0
    resolved_rate: float = 0.0
    avg_turns_to_resolution: float = 0.0
    phase_advanced_rate: float = 0.0
    total_resolved: int = 0
    total_unresolved: int = 0
