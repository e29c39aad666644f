"""
Question Spec — Local Rendering Specification.

The QuestionSpec is the only thing handed to the integrator's question
renderer. It is a read-only projection of an InquiryBlueprint.

INVARIANT: A fresh spec is built per blueprint; lists are copies, so the
renderer cannot corrupt the source blueprint.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from hapkit.models.protocol import LadderStage, StopCondition

Tone = Literal["facilitative", "probing", "directive"]
Addressing = Literal["individual", "group"]

VALID_TONES: tuple[str, ...] = ("facilitative", "probing", "directive")
VALID_ADDRESSING: tuple[str, ...] = ("individual", "group")


class QuestionSpec(BaseModel):
    """
    Structural instructions for generating one question locally.

    Attributes:
        ladder_stage: Ladder stage to address
        target_structures: Structural targets to focus on
        tone: facilitative, probing or directive
        addressing: individual or group
        stop_condition: What the agent is missing
        prompt_context: Optional guidance for an LLM-backed renderer
        examples: Optional style examples (never to be used verbatim)
    """

    model_config = ConfigDict(frozen=True)

    ladder_stage: LadderStage
    target_structures: list[str] = Field(..., min_length=1, max_length=10)
    tone: Tone
    addressing: Addressing
    stop_condition: StopCondition
    prompt_context: str | None = None
    examples: list[str] | None = None
