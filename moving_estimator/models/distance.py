from pydantic import BaseModel


class DistanceResponse(BaseModel):
    origin: str
    destination: str
    distance_meters: float
