from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from moving_estimator.models.trip import PropertySize


def _reference_size_multipliers() -> Dict[str, float]:
    return {
        PropertySize.BEDSITTER.value: 0.7,
        PropertySize.ONE_BR.value: 1.0,
        PropertySize.TWO_BR.value: 1.4,
        PropertySize.THREE_BR.value: 1.8,
        PropertySize.FOUR_BR.value: 2.2,
        PropertySize.FIVE_BR_PLUS.value: 2.8,
        PropertySize.MAISONETTE.value: 2.5,
        PropertySize.VILLA.value: 3.2,
    }


class PricingConfig(BaseModel):
    """Constants of the heuristic pricing formula, in whole Kenyan Shillings."""

    model_config = ConfigDict(frozen=True)

    base_amount: float = Field(12000, ge=0)
    # Distance is billed in blocks, with a floor of one block per move
    distance_block_km: float = Field(10, gt=0)
    distance_block_rate: float = Field(1500, ge=0)
    labor_rate: float = Field(4000, ge=0)
    size_multipliers: Dict[str, float] = Field(default_factory=_reference_size_multipliers)
    default_size_multiplier: float = Field(1.0, ge=0)
    inventory_item_rate: float = Field(600, ge=0)
    box_weight: float = Field(0.1, ge=0)
    service_rate: float = Field(1500, ge=0)
    # Upper bound for any single breakdown amount
    max_component_amount: float = Field(1_000_000_000_000, gt=0, allow_inf_nan=False)

    def size_multiplier(self, property_size) -> float:
        if isinstance(property_size, PropertySize):
            property_size = property_size.value
        return self.size_multipliers.get(property_size, self.default_size_multiplier)


DEFAULT_PRICING = PricingConfig()
