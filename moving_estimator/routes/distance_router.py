from fastapi import APIRouter, HTTPException, Query
from moving_estimator.core.logger import get_logger
from moving_estimator.models.distance import DistanceResponse
from moving_estimator.services.distance_service import get_distance_meters

distance_router = APIRouter(prefix="/distance", tags=["Distance"])
logger = get_logger(__name__)


@distance_router.get("", response_model=DistanceResponse)
async def get_distance(
    origin: str = Query(..., min_length=1),
    destination: str = Query(..., min_length=1),
):
    """
    Return the road distance between two places.
    """
    try:
        distance_meters = await get_distance_meters(origin, destination)
    except ValueError as e:
        logger.error(f"Distance lookup failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return DistanceResponse(origin=origin, destination=destination, distance_meters=distance_meters)
