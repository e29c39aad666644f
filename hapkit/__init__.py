"""
hapkit — Human Agency Protocol SDK.

Stop, ask, then proceed: when an agent lacks meaning or direction, it
fetches a structural inquiry blueprint, renders a question locally, and
only continues once the stop is resolved.
"""

from hapkit.client.circuit_breaker import CircuitState
from hapkit.client.hap_client import HapClient
from hapkit.config import Settings
from hapkit.logging_utils import configure_logging
from hapkit.metrics.outcome_logger import QuestionOutcomeLogger
from hapkit.models import (
    AgencyMode,
    BlueprintMetrics,
    FeedbackPayload,
    HapError,
    InquiryBlueprint,
    InquiryRequest,
    LadderStage,
    QuestionOutcome,
    QuestionSpec,
    StopCondition,
    UnresolvedStopError,
)
from hapkit.providers.base import BlueprintSelector, HapProvider
from hapkit.providers.factory import build_provider
from hapkit.providers.local import LocalHapProvider
from hapkit.services.guarded_action import (
    GuardedAction,
    ResolvedAction,
    StoppedAction,
    is_resolved,
    is_stopped,
)
from hapkit.services.question_spec import QuestionSpecFactory
from hapkit.services.stop_detector import StopAnalysis, StopDetector
from hapkit.services.stop_guard import (
    ClarificationResult,
    LoggingMiddleware,
    StopGuard,
    StopGuardMiddleware,
)

__version__ = "0.1.0"

__all__ = [
    "AgencyMode",
    "BlueprintMetrics",
    "BlueprintSelector",
    "CircuitState",
    "ClarificationResult",
    "FeedbackPayload",
    "GuardedAction",
    "HapClient",
    "HapError",
    "HapProvider",
    "InquiryBlueprint",
    "InquiryRequest",
    "LadderStage",
    "LocalHapProvider",
    "LoggingMiddleware",
    "QuestionOutcome",
    "QuestionOutcomeLogger",
    "QuestionSpec",
    "QuestionSpecFactory",
    "ResolvedAction",
    "Settings",
    "StopAnalysis",
    "StopCondition",
    "StopDetector",
    "StopGuard",
    "StopGuardMiddleware",
    "StoppedAction",
    "UnresolvedStopError",
    "build_provider",
    "configure_logging",
    "is_resolved",
    "is_stopped",
    "__version__",
]
