import math
from typing import Optional

import httpx
from moving_estimator.core.config import settings


async def get_distance_meters(
    origin: str,
    destination: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> float:
    """
    Road distance (in meters) between two free-text places using the
    Google Distance Matrix API.

    Raises ValueError when the API key is missing, the API reports an
    error, or no route exists between the two places.
    """
    api_key = settings.GOOGLE_MAPS_API_KEY
    if not api_key:
        raise ValueError("GOOGLE_MAPS_API_KEY not configured in settings.")

    params = {
        "origins": origin,
        "destinations": destination,
        "units": "metric",
        "key": api_key,
    }

    try:
        async with httpx.AsyncClient(timeout=10, transport=transport) as client:
            response = await client.get(settings.DISTANCE_MATRIX_URL, params=params)
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise ValueError(f"Distance Matrix API error: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"Unexpected Distance Matrix response: {data}")

    status = data.get("status")
    if status != "OK":
        raise ValueError(f"Distance Matrix API error: {status} - {data.get('error_message', 'Unknown error')}")

    try:
        element = data["rows"][0]["elements"][0]
        element_status = element.get("status")
    except (KeyError, IndexError, TypeError, AttributeError):
        raise ValueError(f"Unexpected Distance Matrix response: {data}")

    if element_status != "OK":
        raise ValueError(f"No route from '{origin}' to '{destination}': {element_status}")

    try:
        meters = float(element["distance"]["value"])
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Distance Matrix element has no distance: {element}")

    if not math.isfinite(meters) or meters < 0:
        raise ValueError(f"Distance Matrix returned an invalid distance: {meters}")
    return meters
