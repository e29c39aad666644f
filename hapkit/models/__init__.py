from hapkit.models.failure import (
    ApiResponse,
    AuthenticationError,
    BlueprintLoadError,
    BlueprintNotFoundError,
    CircuitOpenError,
    ConfigurationError,
    FailureDetail,
    FailureKind,
    HapError,
    InvalidResponseError,
    NetworkError,
    OutcomeType,
    ProtocolError,
    RequestTimeoutError,
    SelectorError,
    SemanticContentError,
    ServiceError,
    StopError,
    UnresolvedStopError,
    ValidationError,
    is_auth_error,
    is_retryable_error,
    is_stop_error,
)
from hapkit.models.metrics import BlueprintMetrics, QuestionOutcome, QuestionStats
from hapkit.models.protocol import (
    AgencyMode,
    BlueprintConstraints,
    FeedbackPayload,
    InquiryBlueprint,
    InquiryRequest,
    LadderStage,
    SessionContext,
    StopCondition,
    parse_blueprint_version,
)
from hapkit.models.question_spec import QuestionSpec

__all__ = [
    "AgencyMode",
    "ApiResponse",
    "AuthenticationError",
    "BlueprintConstraints",
    "BlueprintLoadError",
    "BlueprintMetrics",
    "BlueprintNotFoundError",
    "CircuitOpenError",
    "ConfigurationError",
    "FailureDetail",
    "FailureKind",
    "FeedbackPayload",
    "HapError",
    "InquiryBlueprint",
    "InquiryRequest",
    "InvalidResponseError",
    "LadderStage",
    "NetworkError",
    "OutcomeType",
    "ProtocolError",
    "QuestionOutcome",
    "QuestionSpec",
    "QuestionStats",
    "RequestTimeoutError",
    "SelectorError",
    "SemanticContentError",
    "ServiceError",
    "SessionContext",
    "StopCondition",
    "StopError",
    "UnresolvedStopError",
    "ValidationError",
    "is_auth_error",
    "is_retryable_error",
    "is_stop_error",
    "parse_blueprint_version",
]
