"""
Provider Abstraction — Blueprint and Feedback Contract.

Any provider can:
- return an inquiry blueprint for a structural request
- accept structural feedback after a stop episode

Implementations:
- HapClient: the remote clarification service
- LocalHapProvider: blueprints loaded from a directory or URL

Callers depend only on this protocol, so the two are interchangeable.
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from hapkit.models.metrics import BlueprintMetrics
from hapkit.models.protocol import FeedbackPayload, InquiryBlueprint, InquiryRequest


@runtime_checkable
class HapProvider(Protocol):
    """Blueprint and feedback operations shared by every provider."""

    async def request_inquiry_blueprint(
        self, request: InquiryRequest | Mapping[str, Any]
    ) -> InquiryBlueprint:
        """
        Return a blueprint for the request.

        Raises:
            ValidationError: If the request is invalid
            NetworkError: If a remote provider is unavailable
        """
        ...

    async def send_feedback(self, payload: FeedbackPayload | Mapping[str, Any]) -> None:
        """
        Accept structural feedback for a completed stop episode.

        Raises:
            ValidationError: If the payload is invalid
            NetworkError: If a remote provider is unavailable
        """
        ...


# Chooses one blueprint among version-sorted candidates.
# Must return one of the candidate objects themselves.
BlueprintSelector = Callable[
    [list[InquiryBlueprint], InquiryRequest, Mapping[str, BlueprintMetrics]],
    InquiryBlueprint,
]
