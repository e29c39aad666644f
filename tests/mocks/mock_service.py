"""
Mock Clarification Service — FastAPI test double.

Serves registered blueprints, records feedback, counts requests, and can
simulate server, validation and slow-response failures. Drive it from a
HapClient through httpx.ASGITransport(app=service.app).
"""

import asyncio
from typing import Any, Literal

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from hapkit.models.failure import (
    ApiResponse,
    AuthenticationError,
    BlueprintNotFoundError,
    FailureKind,
    HapError,
    ServiceError,
    ValidationError,
)
from hapkit.models.protocol import FeedbackPayload, InquiryBlueprint, InquiryRequest

FailureMode = Literal["none", "server", "validation", "slow", "malformed"]

_STATUS_BY_KIND: dict[FailureKind, int] = {
    FailureKind.INVALID_INPUT: 400,
    FailureKind.SEMANTIC_CONTENT: 400,
    FailureKind.AUTHENTICATION: 401,
    FailureKind.NOT_FOUND: 404,
    FailureKind.SERVICE_ERROR: 500,
}


class MockHapService:
    """In-process clarification service for client tests."""

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self.blueprints: dict[str, InquiryBlueprint] = {}
        self.feedback_log: list[FeedbackPayload] = []
        self.request_counts: dict[str, int] = {"blueprints": 0, "feedback": 0}
        self.response_delay = 0.0
        self.failure_mode: FailureMode = "none"
        # Remaining failures; -1 fails forever
        self.failures_remaining = 0
        self.app = self._build_app()

    # =========================================================================
    # SETUP
    # =========================================================================

    def register_blueprint(self, blueprint: InquiryBlueprint) -> None:
        self.blueprints[blueprint.id] = blueprint

    def fail(self, mode: FailureMode, times: int = -1) -> None:
        """Fail the next `times` requests (forever when -1)."""
        self.failure_mode = mode
        self.failures_remaining = times

    def reset(self) -> None:
        self.failure_mode = "none"
        self.failures_remaining = 0
        self.response_delay = 0.0
        self.feedback_log.clear()
        self.request_counts = {"blueprints": 0, "feedback": 0}

    # =========================================================================
    # BEHAVIOUR
    # =========================================================================

    def _take_failure(self) -> FailureMode:
        if self.failure_mode == "none" or self.failures_remaining == 0:
            return "none"
        if self.failures_remaining > 0:
            self.failures_remaining -= 1
        return self.failure_mode

    def _check_auth(self, authorization: str | None) -> None:
        if authorization != f"Bearer {self.api_key}":
            raise AuthenticationError()

    async def _simulate(self) -> FailureMode:
        mode = self._take_failure()
        if mode == "server":
            raise ServiceError("Internal service failure", status_code=500)
        if mode == "validation":
            raise ValidationError("Request rejected by service", field_path="ladderStage")
        if mode == "slow":
            await asyncio.sleep(self.response_delay or 5.0)
        return mode

    def _build_app(self) -> FastAPI:
        app = FastAPI(title="Mock Clarification Service")

        @app.exception_handler(HapError)
        async def hap_error_handler(_request: Request, exc: HapError) -> JSONResponse:
            """Classified failures use the ApiResponse envelope."""
            response = exc.to_response()
            return JSONResponse(
                status_code=_STATUS_BY_KIND.get(exc.kind, 500),
                content=response.model_dump(mode="json"),
            )

        @app.post("/v1/inquiry/blueprints")
        async def request_blueprint(
            request: InquiryRequest,
            authorization: str | None = Header(default=None),
        ) -> JSONResponse:
            self.request_counts["blueprints"] += 1
            self._check_auth(authorization)
            mode = await self._simulate()
            if mode == "malformed":
                return JSONResponse(content={"id": "broken"})

            for blueprint in self.blueprints.values():
                if (
                    blueprint.ladder_stage == request.ladder_stage
                    and blueprint.agency_mode == request.agency_mode
                ):
                    return JSONResponse(content=blueprint.to_wire())

            raise BlueprintNotFoundError(
                f"No blueprint for {request.ladder_stage.value}/{request.agency_mode.value}"
            )

        @app.post("/v1/feedback/instances")
        async def receive_feedback(
            payload: FeedbackPayload,
            authorization: str | None = Header(default=None),
        ) -> dict[str, Any]:
            self.request_counts["feedback"] += 1
            self._check_auth(authorization)
            await self._simulate()
            self.feedback_log.append(payload)
            return ApiResponse.success({"received": True}).model_dump(mode="json")

        return app
