import asyncio
from typing import Optional

from pydantic import ValidationError

from moving_estimator.core.config import settings
from moving_estimator.core.logger import get_logger
from moving_estimator.models.estimation import EstimateSource, Estimation, GatewayResult, ProviderEstimation
from moving_estimator.models.pricing import DEFAULT_PRICING, PricingConfig
from moving_estimator.models.trip import TripInput
from moving_estimator.services.estimation_provider import EstimationProvider, build_provider
from moving_estimator.services.heuristic_estimator import estimate_heuristic

logger = get_logger(__name__)


def build_wire_payload(trip: TripInput) -> dict:
    payload = {"quote": trip.to_wire()}
    if trip.distance_meters is not None:
        payload["distance_meters"] = trip.distance_meters
    return payload


class EstimationGateway:
    """
    Prefers the external provider's estimate and falls back to the heuristic.

    The provider's response is validated against the estimation contract
    (exact keys, finite whole amounts, breakdown summing to total). Any
    failure of the call or of validation resolves to the heuristic estimate
    for the same trip, so callers always get a consistent Estimation.
    """

    def __init__(
        self,
        provider: Optional[EstimationProvider] = None,
        pricing: PricingConfig = DEFAULT_PRICING,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ):
        self.provider = provider
        self.pricing = pricing
        self.timeout = settings.ESTIMATOR_TIMEOUT_SECONDS if timeout is None else timeout
        attempts = settings.ESTIMATOR_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.max_attempts = max(1, attempts)

    async def _attempt(self, payload: dict) -> Estimation:
        document = await asyncio.wait_for(self.provider.fetch(payload), timeout=self.timeout)
        return ProviderEstimation.model_validate(document).to_estimation()

    def _fallback(self, trip: TripInput, reason: str) -> GatewayResult:
        return GatewayResult(
            estimation=estimate_heuristic(trip, self.pricing),
            source=EstimateSource.HEURISTIC,
            fallback_reason=reason,
        )

    async def resolve(self, trip: TripInput) -> GatewayResult:
        if self.provider is None:
            return self._fallback(trip, "provider not configured")

        payload = build_wire_payload(trip)
        reason = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                estimation = await self._attempt(payload)
            except asyncio.TimeoutError:
                reason = f"provider timed out after {self.timeout}s"
            except ValidationError as e:
                reason = f"provider response rejected: {e.error_count()} contract violation(s): {e}"
            except Exception as e:
                # Anything raised by the provider call itself is a provider failure
                reason = f"provider call failed: {type(e).__name__}: {e}"
            else:
                logger.info(f"Using {self.provider.name} estimate, total={estimation.total}")
                return GatewayResult(estimation=estimation, source=EstimateSource.PROVIDER)

            logger.warning(f"Estimation attempt {attempt}/{self.max_attempts} failed: {reason}")

        logger.warning("Falling back to heuristic estimate")
        return self._fallback(trip, reason)

    async def estimate(self, trip: TripInput) -> Estimation:
        result = await self.resolve(trip)
        return result.estimation


def get_gateway() -> EstimationGateway:
    return EstimationGateway(provider=build_provider(settings))
