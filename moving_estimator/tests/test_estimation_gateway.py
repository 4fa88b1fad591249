import asyncio

import httpx
import pytest

from moving_estimator.models.estimation import EstimateSource
from moving_estimator.models.pricing import PricingConfig
from moving_estimator.models.trip import TripInput
from moving_estimator.services.estimation_gateway import EstimationGateway, build_wire_payload
from moving_estimator.services.estimation_provider import EstimationProviderError
from moving_estimator.services.heuristic_estimator import estimate_heuristic


@pytest.fixture
def trip():
    return TripInput(
        distance_meters=25000,
        property_size="2BR",
        inventory={"beds": 2, "boxes": 20},
        additional_services=["Packing"],
    )


class TestPassThrough:

    @pytest.mark.asyncio
    async def test_valid_provider_estimate_returned_unchanged(self, trip, make_provider, valid_document):
        gateway = EstimationGateway(make_provider(valid_document), timeout=1)
        result = await gateway.resolve(trip)

        assert result.source == EstimateSource.PROVIDER
        assert result.fallback_reason is None
        assert result.estimation.model_dump(mode="json", by_alias=True) == valid_document

    @pytest.mark.asyncio
    async def test_estimate_returns_estimation(self, trip, make_provider, valid_document):
        gateway = EstimationGateway(make_provider(valid_document), timeout=1)
        estimation = await gateway.estimate(trip)
        assert estimation.total == 24500

    @pytest.mark.asyncio
    async def test_wire_payload_sent_to_provider(self, trip, make_provider, valid_document):
        provider = make_provider(valid_document)
        await EstimationGateway(provider, timeout=1).estimate(trip)

        assert len(provider.payloads) == 1
        payload = provider.payloads[0]
        assert payload["distance_meters"] == 25000
        assert payload["quote"]["propertySize"] == "2BR"
        assert payload["quote"]["additionalServices"] == ["Packing"]

    def test_unknown_distance_not_sent(self):
        payload = build_wire_payload(TripInput(property_size="Villa"))
        assert "distance_meters" not in payload
        assert "distanceMeters" not in payload["quote"]


class TestFallback:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        EstimationProviderError("Estimator request failed: 503 Service Unavailable"),
        httpx.ConnectError("connection refused"),
        RuntimeError("unexpected"),
    ])
    async def test_provider_error_falls_back(self, trip, make_provider, error):
        result = await EstimationGateway(make_provider(error), timeout=1).resolve(trip)

        assert result.source == EstimateSource.HEURISTIC
        assert result.estimation == estimate_heuristic(trip)
        assert "provider call failed" in result.fallback_reason

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, trip, make_provider, valid_document):
        provider = make_provider(valid_document, delay=1)
        result = await EstimationGateway(provider, timeout=0.05).resolve(trip)

        assert result.source == EstimateSource.HEURISTIC
        assert result.estimation == estimate_heuristic(trip)
        assert "timed out" in result.fallback_reason
        assert provider.cancelled

    @pytest.mark.asyncio
    async def test_sum_mismatch_falls_back(self, trip, make_provider):
        document = {
            "total": 100,
            "breakdown": [{"label": "X", "amount": 50, "rationale": "r"}],
            "clarifyingQuestions": [],
        }
        result = await EstimationGateway(make_provider(document), timeout=1).resolve(trip)

        assert result.source == EstimateSource.HEURISTIC
        assert result.estimation == estimate_heuristic(trip)
        assert "rejected" in result.fallback_reason

    @pytest.mark.asyncio
    @pytest.mark.parametrize("document", [
        None,
        "not json at all",
        {"estimation": {"total": 10, "breakdown": [], "clarifyingQuestions": []}},
        {"total": float("nan"), "breakdown": [{"label": "X", "amount": 1, "rationale": "r"}], "clarifyingQuestions": []},
        {"total": 1, "breakdown": [{"label": "X", "amount": 1}], "clarifyingQuestions": []},
        {"total": 1, "breakdown": [{"label": "X", "amount": 1, "rationale": "r"}]},
    ])
    async def test_malformed_document_falls_back(self, trip, make_provider, document):
        result = await EstimationGateway(make_provider(document), timeout=1).resolve(trip)

        assert result.source == EstimateSource.HEURISTIC
        assert result.estimation == estimate_heuristic(trip)

    @pytest.mark.asyncio
    async def test_close_but_not_equal_total_falls_back(self, trip, make_provider, valid_document):
        valid_document["total"] += 1
        result = await EstimationGateway(make_provider(valid_document), timeout=1).resolve(trip)
        assert result.source == EstimateSource.HEURISTIC

    @pytest.mark.asyncio
    async def test_no_provider_uses_heuristic(self, trip):
        result = await EstimationGateway(None).resolve(trip)

        assert result.source == EstimateSource.HEURISTIC
        assert result.fallback_reason == "provider not configured"
        assert result.estimation == estimate_heuristic(trip)

    @pytest.mark.asyncio
    async def test_fallback_uses_gateway_pricing(self, trip, make_provider):
        pricing = PricingConfig(base_amount=20000)
        gateway = EstimationGateway(make_provider(RuntimeError("down")), pricing=pricing, timeout=1)

        estimation = await gateway.estimate(trip)
        assert estimation == estimate_heuristic(trip, pricing)
        assert estimation.breakdown[0].amount == 20000


    @pytest.mark.asyncio
    async def test_huge_counts_still_resolve(self, make_provider):
        trip = TripInput(distance_meters=1e308, inventory={"beds": 1e308, "wardrobe": 1e308})

        for gateway in (EstimationGateway(None), EstimationGateway(make_provider(RuntimeError("down")), timeout=1)):
            estimation = await gateway.estimate(trip)
            assert estimation == estimate_heuristic(trip)
            assert estimation.total == sum(item.amount for item in estimation.breakdown)


class TestAttempts:

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self, trip, make_provider, valid_document):
        provider = make_provider(EstimationProviderError("boom"), valid_document)
        result = await EstimationGateway(provider, timeout=1, max_attempts=1).resolve(trip)

        assert result.source == EstimateSource.HEURISTIC
        assert len(provider.payloads) == 1

    @pytest.mark.asyncio
    async def test_retries_when_configured(self, trip, make_provider, valid_document):
        provider = make_provider(EstimationProviderError("boom"), valid_document)
        result = await EstimationGateway(provider, timeout=1, max_attempts=2).resolve(trip)

        assert result.source == EstimateSource.PROVIDER
        assert len(provider.payloads) == 2

    def test_attempts_never_below_one(self, make_provider, valid_document):
        gateway = EstimationGateway(make_provider(valid_document), max_attempts=0)
        assert gateway.max_attempts == 1


class TestCancellation:

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates_to_provider(self, trip, make_provider, valid_document):
        provider = make_provider(valid_document, delay=10)
        task = asyncio.create_task(EstimationGateway(provider, timeout=30).estimate(trip))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert provider.cancelled


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_calls_are_independent(self, make_provider, valid_document):
        gateway = EstimationGateway(make_provider(RuntimeError("down")), timeout=1)
        trips = [TripInput(distance_meters=d * 10000) for d in range(1, 6)]

        results = await asyncio.gather(*(gateway.estimate(t) for t in trips))
        assert results == [estimate_heuristic(t) for t in trips]
