from fastapi import APIRouter, Depends, Response
from moving_estimator.core.logger import get_logger
from moving_estimator.core.middleware import ESTIMATE_SOURCE_HEADER
from moving_estimator.models.estimation import EstimateSource, Estimation
from moving_estimator.models.trip import TripInput
from moving_estimator.services.distance_service import get_distance_meters
from moving_estimator.services.estimation_gateway import EstimationGateway, get_gateway
from moving_estimator.services.heuristic_estimator import estimate_heuristic

estimate_router = APIRouter(prefix="/estimate", tags=["Estimate"])
logger = get_logger(__name__)


async def _with_distance(trip: TripInput) -> TripInput:
    """Fill in an unknown distance from origin/destination when both are given."""
    if trip.distance_meters is not None or not (trip.origin and trip.destination):
        return trip

    logger.info(f"Looking up distance from '{trip.origin}' to '{trip.destination}'")
    try:
        distance = await get_distance_meters(trip.origin, trip.destination)
    except ValueError as e:
        logger.warning(f"Distance lookup failed, pricing with unknown distance: {e}")
        return trip
    return trip.model_copy(update={"distance_meters": distance})


@estimate_router.post("", response_model=Estimation)
async def create_estimate(
    trip: TripInput,
    response: Response,
    gateway: EstimationGateway = Depends(get_gateway),
):
    """
    Itemized estimate for a move, from the external estimator when it
    returns a valid estimate, otherwise from the heuristic.
    """
    trip = await _with_distance(trip)
    result = await gateway.resolve(trip)
    if result.fallback_reason:
        logger.info(f"Heuristic estimate served: {result.fallback_reason}")
    response.headers[ESTIMATE_SOURCE_HEADER] = result.source.value
    return result.estimation


@estimate_router.post("/heuristic", response_model=Estimation)
def create_heuristic_estimate(trip: TripInput, response: Response):
    response.headers[ESTIMATE_SOURCE_HEADER] = EstimateSource.HEURISTIC.value
    return estimate_heuristic(trip)
