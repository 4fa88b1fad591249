import math
from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class PropertySize(str, Enum):
    BEDSITTER = "Bedsitter"
    ONE_BR = "1BR"
    TWO_BR = "2BR"
    THREE_BR = "3BR"
    FOUR_BR = "4BR"
    FIVE_BR_PLUS = "5BR+"
    MAISONETTE = "Maisonette"
    VILLA = "Villa"


def clamp_non_negative(value: float) -> float:
    """Negative, NaN and infinite values are priced as zero."""
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


class Inventory(BaseModel):
    """Item counts for the move. Unknown keys are kept as free-form counts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    fridge: Optional[bool] = None
    beds: float = 0
    wardrobe: float = 0
    sofa_seats: float = 0
    boxes: float = 0

    @field_validator("beds", "wardrobe", "sofa_seats", "boxes", mode="before")
    @classmethod
    def missing_count_is_zero(cls, value):
        return 0 if value is None else value

    @field_validator("beds", "wardrobe", "sofa_seats", "boxes")
    @classmethod
    def clamp_count(cls, value: float) -> float:
        return clamp_non_negative(value)

    @model_validator(mode="after")
    def clamp_extra_counts(self):
        for key, value in (self.model_extra or {}).items():
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                self.model_extra[key] = clamp_non_negative(float(value))
        return self


class TripInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # None means the distance is unknown; 0 is a same-location move
    distance_meters: Optional[float] = None
    property_size: Optional[str] = None
    inventory: Inventory = Field(default_factory=Inventory)
    additional_services: List[str] = Field(default_factory=list)
    elevator_current: Optional[bool] = None
    elevator_destination: Optional[bool] = None
    moving_date: Optional[date] = None
    origin: Optional[str] = None
    destination: Optional[str] = None

    @field_validator("distance_meters")
    @classmethod
    def clamp_distance(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        return clamp_non_negative(value)

    @field_validator("property_size", mode="before")
    @classmethod
    def unknown_size_type_is_unset(cls, value):
        if isinstance(value, PropertySize):
            return value.value
        return value if isinstance(value, str) else None

    @field_validator("inventory", mode="before")
    @classmethod
    def missing_inventory_is_empty(cls, value):
        return {} if value is None else value

    @field_validator("additional_services", mode="before")
    @classmethod
    def missing_services_is_empty(cls, value):
        return [] if value is None else value

    def to_wire(self) -> dict:
        """Camel-cased JSON form of the trip, without unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
