import asyncio

import pytest
from fastapi.testclient import TestClient

from moving_estimator.main import app
from moving_estimator.services.estimation_gateway import get_gateway
from moving_estimator.services.estimation_provider import EstimationProvider


class StubProvider(EstimationProvider):
    """Replays a scripted sequence of outcomes: documents to return or exceptions to raise."""

    name = "stub"

    def __init__(self, *outcomes, delay: float = 0):
        self.outcomes = list(outcomes)
        self.delay = delay
        self.payloads = []
        self.cancelled = False

    async def fetch(self, payload: dict):
        self.payloads.append(payload)
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def make_provider():
    return StubProvider


@pytest.fixture
def valid_document():
    return {
        "total": 24500,
        "breakdown": [
            {"label": "Base Service", "amount": 18000, "rationale": "2BR property moving"},
            {"label": "Distance", "amount": 2500, "rationale": "25.0km transportation"},
            {"label": "Stairs", "amount": 4000, "rationale": "No elevator at pickup"},
        ],
        "clarifyingQuestions": [
            {"id": "appliances", "field": "inventory.appliances", "question": "Any large appliances?"},
        ],
    }


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def override_gateway():
    def _override(gateway):
        app.dependency_overrides[get_gateway] = lambda: gateway
        return gateway

    yield _override
    app.dependency_overrides.pop(get_gateway, None)
