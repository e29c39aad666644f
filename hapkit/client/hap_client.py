"""
HAP Client — Resilient HTTP Provider for the Clarification Service.

Handles:
- Requesting inquiry blueprints and sending feedback
- Schema validation of outgoing and incoming payloads
- Per-attempt timeouts, retries with exponential backoff
- A circuit breaker around the whole call
- API key redaction in every surfaced error

INVARIANT: Payloads are validated before any network I/O.
INVARIANT: Validation failures never count against the circuit breaker.
INVARIANT: No error leaving this client contains the API key.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from types import TracebackType
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from hapkit.client.circuit_breaker import CircuitBreaker, CircuitState
from hapkit.config import (
    DEFAULT_CIRCUIT_BREAKER_RESET_MS,
    DEFAULT_CIRCUIT_BREAKER_THRESHOLD,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
    Settings,
)
from hapkit.models.failure import (
    ApiResponse,
    AuthenticationError,
    ConfigurationError,
    HapError,
    InvalidResponseError,
    NetworkError,
    RequestTimeoutError,
    ServiceError,
    is_retryable_error,
)
from hapkit.models.protocol import (
    FeedbackPayload,
    InquiryBlueprint,
    InquiryRequest,
    assert_structural,
    coerce_model,
    validation_error_from,
)

logger = logging.getLogger(__name__)

BLUEPRINTS_PATH = "/v1/inquiry/blueprints"
FEEDBACK_PATH = "/v1/feedback/instances"

# Cap on raw error body text included in ServiceError messages
_MAX_ERROR_BODY = 200


class HapClient:
    """
    HTTP implementation of the HapProvider protocol.

    Args:
        endpoint: Service base URL; http:// is upgraded to https://
        api_key: Bearer credential
        timeout_ms: Per-attempt timeout
        max_retries: Retries after the first attempt
        retry_delay_ms: Base backoff; attempt k waits retry_delay_ms * 2**(k-1)
        circuit_breaker_threshold: Consecutive failed calls before opening
        circuit_breaker_reset_ms: Open duration before a probe is allowed
        transport: Optional httpx transport (tests, proxies)
        http_client: Optional pre-built AsyncClient; not closed by aclose()
        sleep: Async sleep used for backoff
        clock: Monotonic clock (seconds) for the circuit breaker

    Raises:
        ConfigurationError: If endpoint is empty
        AuthenticationError: If api_key is empty
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        circuit_breaker_threshold: int = DEFAULT_CIRCUIT_BREAKER_THRESHOLD,
        circuit_breaker_reset_ms: int = DEFAULT_CIRCUIT_BREAKER_RESET_MS,
        transport: httpx.AsyncBaseTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not endpoint:
            raise ConfigurationError("endpoint is required", field="endpoint")
        if not api_key:
            raise AuthenticationError("API key is required")

        if endpoint.startswith("http://"):
            endpoint = "https://" + endpoint[len("http://") :]

        self.endpoint = endpoint.rstrip("/")
        self._api_key = api_key
        self.timeout_ms = timeout_ms
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms
        self._transport = transport
        self._client = http_client
        self._owns_client = http_client is None
        self._sleep = sleep
        self._breaker = CircuitBreaker(
            threshold=circuit_breaker_threshold,
            reset_timeout=circuit_breaker_reset_ms / 1000,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, config: Settings, **kwargs: Any) -> "HapClient":
        """Build a client from Settings; kwargs override or add options."""
        options: dict[str, Any] = {
            "timeout_ms": config.timeout_ms,
            "max_retries": config.max_retries,
            "retry_delay_ms": config.retry_delay_ms,
            "circuit_breaker_threshold": config.circuit_breaker_threshold,
            "circuit_breaker_reset_ms": config.circuit_breaker_reset_ms,
        }
        options.update(kwargs)
        return cls(config.endpoint, config.api_key, **options)

    def __repr__(self) -> str:
        return f"HapClient(endpoint={self.endpoint!r}, circuit_state={self.circuit_state.value!r})"

    # =========================================================================
    # PROVIDER API
    # =========================================================================

    async def request_inquiry_blueprint(
        self, request: InquiryRequest | Mapping[str, Any]
    ) -> InquiryBlueprint:
        """
        Request an inquiry blueprint from the service.

        Args:
            request: Structural inquiry request

        Returns:
            The validated blueprint

        Raises:
            ValidationError: Invalid request, or malformed blueprint returned
            SemanticContentError: Free-form text in a structural tag field
            NetworkError: Transport failure, timeout, or open circuit
            ServiceError: Non-2xx response
        """
        try:
            assert_structural(request)
            validated = coerce_model(InquiryRequest, request)
            body = await self._call(BLUEPRINTS_PATH, validated.to_wire())
            try:
                return InquiryBlueprint.model_validate(body)
            except PydanticValidationError as exc:
                raise validation_error_from(
                    exc, "Invalid InquiryBlueprint response from service"
                ) from exc
        except HapError as exc:
            raise exc.redact(self._api_key)
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    async def send_feedback(self, payload: FeedbackPayload | Mapping[str, Any]) -> None:
        """
        Send structural feedback to the service. The response body is ignored.

        Raises:
            ValidationError: Invalid payload
            NetworkError: Transport failure, timeout, or open circuit
            ServiceError: Non-2xx response
        """
        try:
            validated = coerce_model(FeedbackPayload, payload)
            await self._call(FEEDBACK_PATH, validated.to_wire(), expect_body=False)
        except HapError as exc:
            raise exc.redact(self._api_key)
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    # =========================================================================
    # CIRCUIT BREAKER INSPECTION
    # =========================================================================

    @property
    def circuit_state(self) -> CircuitState:
        return self._breaker.state

    @property
    def consecutive_failures(self) -> int:
        return self._breaker.consecutive_failures

    def reset_circuit_breaker(self) -> None:
        """Close the circuit and clear the failure counter."""
        self._breaker.reset()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HapClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                timeout=self.timeout_ms / 1000,
            )
        return self._client

    async def _call(self, path: str, body: dict[str, Any], expect_body: bool = True) -> Any:
        """
        Run one logical call: breaker check, attempts with backoff, outcome.

        A half-open probe gets a single attempt.
        """
        self._breaker.before_call()
        probing = self._breaker.state is CircuitState.HALF_OPEN
        max_attempts = 1 if probing else self.max_retries + 1

        for attempt in range(1, max_attempts + 1):
            try:
                result = await self._attempt(path, body, expect_body)
            except HapError as exc:
                retryable = is_retryable_error(exc)
                if not retryable or attempt == max_attempts:
                    self._record_outcome(exc)
                    raise
                delay_ms = self.retry_delay_ms * 2 ** (attempt - 1)
                logger.warning(
                    "Attempt %d/%d to %s failed (%s); retrying in %dms",
                    attempt,
                    max_attempts,
                    path,
                    type(exc).__name__,
                    delay_ms,
                )
                await self._sleep(delay_ms / 1000)
            except asyncio.CancelledError:
                self._breaker.release_probe()
                raise
            except Exception:
                self._breaker.record_failure()
                raise
            else:
                self._breaker.record_success()
                return result

        raise AssertionError("unreachable")  # pragma: no cover

    def _record_outcome(self, exc: HapError) -> None:
        # A 4xx means the service is up and answering
        if isinstance(exc, ServiceError) and not is_retryable_error(exc):
            self._breaker.record_success()
        else:
            self._breaker.record_failure()

    async def _attempt(self, path: str, body: dict[str, Any], expect_body: bool) -> Any:
        """One HTTP attempt, bounded by the per-attempt timeout."""
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        url = f"{self.endpoint}{path}"
        try:
            response = await asyncio.wait_for(
                self._http().post(url, json=body, headers=headers),
                timeout=self.timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RequestTimeoutError(
                f"Request timed out after {self.timeout_ms}ms", cause=exc
            ) from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Network error: {exc}", cause=exc) from exc

        if not response.is_success:
            raise ServiceError(
                f"HTTP {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
            )

        if not expect_body:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise InvalidResponseError(
                "Service returned a non-JSON response body",
                cause=exc,
                status_code=response.status_code,
            ) from exc

    def _normalize_error(self, exc: BaseException) -> HapError:
        """Map any exception to a HapError with the API key redacted."""
        if isinstance(exc, HapError):
            return exc.redact(self._api_key)
        return NetworkError(
            f"Unexpected {type(exc).__name__}: {exc}",
            cause=exc,
            retryable=False,
        ).redact(self._api_key)


def _error_detail(response: httpx.Response) -> str:
    """Prefer the service's error envelope message, else the raw body."""
    try:
        envelope = ApiResponse[Any].model_validate_json(response.content)
    except (PydanticValidationError, ValueError):
        envelope = None
    if envelope is not None and envelope.failure is not None:
        return envelope.failure.message
    text = response.text.strip()
    return text[:_MAX_ERROR_BODY] if text else response.reason_phrase or "Unknown error"
