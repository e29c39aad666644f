"""Shared fixtures: anyio backend, fake time, blueprint builders."""

from typing import Any

import pytest

from hapkit.models.protocol import InquiryBlueprint, InquiryRequest

TEST_API_KEY = "sk-test-secret-key-12345"
TEST_ENDPOINT = "https://hap.example.com"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep that records delays instead of waiting."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.delays: list[float] = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)

    @property
    def delays_ms(self) -> list[int]:
        return [round(d * 1000) for d in self.delays]


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


def blueprint_data(**overrides: Any) -> dict[str, Any]:
    """Wire-format (camelCase) blueprint dict."""
    data: dict[str, Any] = {
        "id": "meaning-convergent-ambiguous-v1",
        "intent": "Clarify which object the user refers to",
        "ladderStage": "meaning",
        "agencyMode": "convergent",
        "targetStructures": ["object_of_reference", "scope"],
        "constraints": {"tone": "facilitative", "addressing": "individual"},
        "renderHint": "Ask one short question naming the candidates",
        "examples": ["Which file do you mean?"],
        "stopCondition": "meaning",
    }
    data.update(overrides)
    return data


def make_blueprint(**overrides: Any) -> InquiryBlueprint:
    return InquiryBlueprint.model_validate(blueprint_data(**overrides))


def make_request(**overrides: Any) -> InquiryRequest:
    data: dict[str, Any] = {
        "ladder_stage": "meaning",
        "agency_mode": "convergent",
        "stop_trigger": True,
    }
    data.update(overrides)
    return InquiryRequest.model_validate(data)
