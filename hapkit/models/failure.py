"""
Failure Taxonomy — Typed Errors and the Error Envelope.

This module defines every failure the SDK can surface, plus the response
envelope the clarification service uses for error bodies.

INVARIANT: Every failure surfaced to an integrator is a HapError subclass.
INVARIANT: Error messages never contain the configured API key.

Failure families:
- NetworkError: transport trouble (retryable unless the circuit is open)
- ValidationError: bad shape, local, never retried
- ProtocolError: the service answered, but not with what we need
- StopError: protocol discipline violation (proceeding without an answer)
- ConfigurationError: setup-time, fatal
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

REDACTED = "[REDACTED]"


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"
    MISSING_REQUIRED = "missing_required"
    SEMANTIC_CONTENT = "semantic_content"

    # Resource failures
    NOT_FOUND = "not_found"

    # Transport failures
    NETWORK = "network"
    TIMEOUT = "timeout"
    CIRCUIT_OPEN = "circuit_open"

    # Service failures
    SERVICE_ERROR = "service_error"
    INVALID_RESPONSE = "invalid_response"

    # Protocol discipline
    UNRESOLVED_STOP = "unresolved_stop"

    # Setup failures
    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="Explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )


class ApiResponse(BaseModel, Generic[T]):
    """
    Response envelope used by the clarification service.

    Successful calls return the bare payload; failed calls return this
    envelope so the client can surface a classified message.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )

    @classmethod
    def success(cls, data: T) -> "ApiResponse[T]":
        """Create a success response."""
        return cls(outcome=OutcomeType.SUCCESS, data=data)

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
    ) -> "ApiResponse[Any]":
        """Create a known failure response."""
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(kind=kind, message=message, detail=detail),
        )

    @classmethod
    def unknown_failure(cls, detail: str | None = None) -> "ApiResponse[Any]":
        """Create an unknown failure response."""
        return cls(
            outcome=OutcomeType.UNKNOWN_FAILURE,
            failure=FailureDetail(
                kind=FailureKind.UNKNOWN,
                message="An unexpected error occurred.",
                detail=detail,
            ),
        )


# =============================================================================
# BASE ERROR
# =============================================================================


class HapError(Exception):
    """
    Base class for all SDK errors.

    Attributes:
        kind: Failure classification
        message: Human-readable explanation (never contains secrets)
        cause: The underlying exception, if any
    """

    kind: FailureKind = FailureKind.UNKNOWN

    def __init__(self, message: str, cause: BaseException | None = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

    def redact(self, secret: str) -> "HapError":
        """Replace every occurrence of secret in the message, in place."""
        if secret and secret in self.message:
            self.message = self.message.replace(secret, REDACTED)
            self.args = (self.message,)
        return self

    def to_response(self) -> ApiResponse[Any]:
        """Convert to an ApiResponse error envelope."""
        return ApiResponse.known_failure(kind=self.kind, message=self.message)


# =============================================================================
# NETWORK ERRORS
# =============================================================================


class NetworkError(HapError):
    """
    Transport-level failure (connection refused, reset, DNS, ...).

    Retryable by default.
    """

    kind = FailureKind.NETWORK

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        retryable: bool = True,
        status_code: int | None = None,
    ):
        super().__init__(message, cause)
        self.retryable = retryable
        self.status_code = status_code


class RequestTimeoutError(NetworkError):
    """A single request attempt exceeded its timeout."""

    kind = FailureKind.TIMEOUT

    def __init__(self, message: str = "Request timed out", cause: BaseException | None = None):
        super().__init__(message, cause, retryable=True)


class CircuitOpenError(NetworkError):
    """The circuit breaker is open; no request was attempted."""

    kind = FailureKind.CIRCUIT_OPEN

    def __init__(
        self,
        message: str = "Circuit breaker is open - too many recent failures",
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause, retryable=False)


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(HapError):
    """
    Payload does not match the structural wire schema.

    Attributes:
        field_path: Dotted path of the first invalid field (e.g. "constraints.tone")
        issues: Raw validation issues, when available
    """

    kind = FailureKind.INVALID_INPUT

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        field_path: str | None = None,
        issues: list[dict[str, Any]] | None = None,
    ):
        super().__init__(message, cause)
        self.field_path = field_path
        self.issues = issues

    def to_response(self) -> ApiResponse[Any]:
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.field_path,
        )


class SemanticContentError(ValidationError):
    """
    Free-form content found where only structural values are allowed.

    Raised before anything leaves the process.
    """

    kind = FailureKind.SEMANTIC_CONTENT

    def __init__(
        self,
        message: str = "Semantic content detected in structural payload",
        cause: BaseException | None = None,
        field_path: str | None = None,
    ):
        super().__init__(message, cause, field_path=field_path)


# =============================================================================
# PROTOCOL ERRORS
# =============================================================================


class ProtocolError(HapError):
    """The service responded, but the exchange did not succeed."""

    kind = FailureKind.SERVICE_ERROR

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        protocol_version: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, cause)
        self.protocol_version = protocol_version
        self.status_code = status_code


class InvalidResponseError(ProtocolError):
    """The service returned a body that is not JSON."""

    kind = FailureKind.INVALID_RESPONSE


class ServiceError(ProtocolError):
    """The service returned a non-2xx status."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, cause, status_code=status_code)


# =============================================================================
# STOP ERRORS
# =============================================================================


class StopError(HapError):
    """
    Stop condition enforcement error.

    Attributes:
        ladder_stage: Stage at which the stop is pending
        stop_condition: What is missing, or None when unspecified
    """

    kind = FailureKind.UNRESOLVED_STOP

    def __init__(
        self,
        message: str,
        ladder_stage: str,
        stop_condition: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause)
        self.ladder_stage = ladder_stage
        self.stop_condition = stop_condition


class UnresolvedStopError(StopError):
    """Attempted to proceed without resolving a stop."""

    def __init__(self, ladder_stage: str, stop_condition: str | None = None):
        stage = getattr(ladder_stage, "value", ladder_stage)
        condition = getattr(stop_condition, "value", stop_condition)
        super().__init__(
            f"Cannot proceed: {condition or 'unspecified'} not resolved at {stage} stage",
            ladder_stage=stage,
            stop_condition=condition,
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(HapError):
    """
    SDK configuration error.

    Attributes:
        field: Name of the offending configuration field
    """

    kind = FailureKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        field: str | None = None,
    ):
        super().__init__(message, cause)
        self.field = field


class AuthenticationError(ConfigurationError):
    """
    Missing or invalid API key.

    IMPORTANT: The message must never include the key itself.
    """

    kind = FailureKind.AUTHENTICATION

    def __init__(
        self,
        message: str = "Invalid or missing API key",
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause, field="api_key")


class BlueprintLoadError(ConfigurationError):
    """Blueprints could not be loaded from the configured source."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message, cause, field="blueprint_source")


class SelectorError(ConfigurationError):
    """The integrator's selector returned something other than a candidate."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message, cause, field="selector")


class BlueprintNotFoundError(HapError):
    """No cached blueprint matches the request."""

    kind = FailureKind.NOT_FOUND


# =============================================================================
# CLASSIFICATION HELPERS
# =============================================================================


def is_retryable_error(error: BaseException) -> bool:
    """
    Return True if a failed attempt should be retried.

    Rules (in order):
    1. NetworkError (incl. timeouts) → its retryable flag
    2. ServiceError → only 5xx
    3. Everything else → False
    """
    if isinstance(error, NetworkError):
        return error.retryable
    if isinstance(error, ServiceError) and error.status_code is not None:
        return 500 <= error.status_code < 600
    return False


def is_stop_error(error: BaseException) -> bool:
    """Return True for stop-discipline errors."""
    return isinstance(error, StopError)


def is_auth_error(error: BaseException) -> bool:
    """Return True for authentication errors."""
    return isinstance(error, AuthenticationError)
