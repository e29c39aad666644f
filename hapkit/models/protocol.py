"""
Protocol Models — Structural Wire Types for the Human Agency Protocol.

These models carry ONLY structural, bounded fields between the agent and
the clarification service. No user text, prompts or answers.

INVARIANT: Every optional field is an enum, a bounded kebab-case tag,
or a numeric range.
INVARIANT: Blueprints are immutable once received.

Wire payloads use camelCase keys; Python attributes use snake_case.
"""

import re
from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from hapkit.models.failure import SemanticContentError, ValidationError


class LadderStage(str, Enum):
    """The four checkpoints of the inquiry ladder."""

    MEANING = "meaning"
    PURPOSE = "purpose"
    INTENTION = "intention"
    ACTION = "action"


class AgencyMode(str, Enum):
    """
    Agency modes.

    CONVERGENT: linear progress through ladder stages toward action
    REFLECTIVE: cyclical exploration within a stage
    """

    CONVERGENT = "convergent"
    REFLECTIVE = "reflective"


class StopCondition(str, Enum):
    """What the agent is missing."""

    MEANING = "meaning"
    DIRECTION = "direction"
    BOTH = "both"


# Kebab-case structural tag, e.g. "ambiguous-pronoun"
KEBAB_CASE_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
MAX_TAG_LENGTH = 50

_VERSION_SUFFIX = re.compile(r"v(\d+)$")
_WHITESPACE = re.compile(r"\s")


class ProtocolModel(BaseModel):
    """Base for wire models: frozen, camelCase aliases, extra keys rejected by default."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape sent over the wire."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# =============================================================================
# INQUIRY REQUEST
# =============================================================================


class SessionContext(ProtocolModel):
    """Structural session metrics that help blueprint selection."""

    previous_stops: int = Field(..., ge=0)
    consecutive_stops: int = Field(..., ge=0)
    average_resolution_turns: float = Field(..., ge=0)


class InquiryRequest(ProtocolModel):
    """
    Request for an inquiry blueprint.

    Attributes:
        ladder_stage: Which ladder stage we're at
        agency_mode: Which agency mode is active
        stop_trigger: Whether a stop condition was triggered
        stop_condition: What kind of stop was detected
        stop_pattern: Structural pattern id (e.g. "ambiguous-pronoun")
        domain: Application domain tag (e.g. "software-development")
        complexity_signal: 1 (simple) to 5 (many unknowns)
        session_context: Structural session metrics
    """

    ladder_stage: LadderStage
    agency_mode: AgencyMode
    stop_trigger: bool
    stop_condition: StopCondition | None = None
    stop_pattern: str | None = Field(
        default=None, max_length=MAX_TAG_LENGTH, pattern=KEBAB_CASE_PATTERN
    )
    domain: str | None = Field(default=None, max_length=MAX_TAG_LENGTH, pattern=KEBAB_CASE_PATTERN)
    complexity_signal: int | None = Field(default=None, ge=1, le=5)
    session_context: SessionContext | None = None


# =============================================================================
# INQUIRY BLUEPRINT
# =============================================================================


StructureName = Annotated[str, Field(max_length=50)]
ExampleText = Annotated[str, Field(max_length=200)]


class BlueprintConstraints(ProtocolModel):
    """Rendering constraints carried by a blueprint."""

    model_config = ConfigDict(extra="ignore")

    tone: str = Field(..., min_length=1, max_length=50)
    addressing: str = Field(..., min_length=1, max_length=50)


class InquiryBlueprint(ProtocolModel):
    """
    Structural specification of an inquiry act.

    Describes why and how to ask, never the question itself.
    Id convention: {stage}-{mode}-{pattern}-v{N}.
    Unknown keys from the service or a blueprint file are dropped.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, max_length=100)
    intent: str = Field(..., min_length=1, max_length=200)
    ladder_stage: LadderStage
    agency_mode: AgencyMode
    target_structures: tuple[StructureName, ...] = Field(..., min_length=1, max_length=10)
    constraints: BlueprintConstraints
    render_hint: str = Field(..., min_length=1, max_length=500)
    examples: tuple[ExampleText, ...] = Field(default=(), max_length=5)
    stop_condition: StopCondition
    prompt_context: str | None = Field(default=None, max_length=1000)

    @property
    def version(self) -> int:
        """Version parsed from the id suffix; 0 when absent."""
        return parse_blueprint_version(self.id)


def parse_blueprint_version(blueprint_id: str) -> int:
    """
    Extract the version number from a blueprint id.

    "meaning-convergent-ambiguous-v2" -> 2, "meaning-convergent" -> 0
    """
    match = _VERSION_SUFFIX.search(blueprint_id)
    return int(match.group(1)) if match else 0


# =============================================================================
# FEEDBACK
# =============================================================================


class FeedbackPayload(ProtocolModel):
    """
    Structural feedback after a stop episode.

    Not idempotent: sending the same episode twice counts it twice.
    """

    blueprint_id: str = Field(..., min_length=1, max_length=100)
    pattern_id: str = Field(..., min_length=1, max_length=100)
    agency_mode: AgencyMode
    stop_resolved: bool
    # Convergent mode
    previous_phase: LadderStage | None = None
    current_phase: LadderStage | None = None
    turns_delta: int | None = Field(default=None, ge=-100, le=100)
    # Reflective mode
    recognition_confirms: int | None = Field(default=None, ge=0, le=100)
    reflection_cycles: int | None = Field(default=None, ge=0, le=100)


# =============================================================================
# COERCION
# =============================================================================

M = TypeVar("M", bound=BaseModel)

_STRUCTURAL_TAG_FIELDS = (("stop_pattern", "stopPattern"), ("domain", "domain"))


def assert_structural(payload: Any) -> None:
    """
    Reject free-form text in tag fields before validation.

    Raises:
        SemanticContentError: If a tag field contains whitespace or is overlong
    """
    for name, alias in _STRUCTURAL_TAG_FIELDS:
        if isinstance(payload, Mapping):
            value = payload.get(alias, payload.get(name))
        else:
            value = getattr(payload, name, None)
        if isinstance(value, str) and (
            _WHITESPACE.search(value) is not None or len(value) > MAX_TAG_LENGTH
        ):
            raise SemanticContentError(field_path=alias)


def coerce_model(model_cls: type[M], value: Any, label: str | None = None) -> M:
    """
    Validate a model instance or mapping into model_cls.

    Model instances are re-validated from their wire form so that objects
    built with model_construct() cannot bypass the schema.

    Raises:
        ValidationError: If the value does not match the schema
    """
    label = label or model_cls.__name__
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True, exclude_none=True, mode="json")
    if not isinstance(value, Mapping):
        raise ValidationError(f"Invalid {label}: expected an object, got {type(value).__name__}")
    try:
        return model_cls.model_validate(dict(value))
    except PydanticValidationError as exc:
        raise validation_error_from(exc, f"Invalid {label}") from exc


def validation_error_from(exc: PydanticValidationError, message: str) -> ValidationError:
    """Convert a pydantic ValidationError into the SDK's ValidationError."""
    issues = exc.errors(include_url=False, include_input=False)
    field_path = None
    if issues:
        field_path = ".".join(str(part) for part in issues[0]["loc"]) or None
    summary = f"{message}: {field_path} - {issues[0]['msg']}" if field_path else message
    return ValidationError(summary, cause=exc, field_path=field_path, issues=issues)
