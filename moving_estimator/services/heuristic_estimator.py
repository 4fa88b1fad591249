import math
from typing import List

from moving_estimator.models.estimation import ClarifyingQuestion, Estimation, EstimationBreakdownItem
from moving_estimator.models.pricing import DEFAULT_PRICING, PricingConfig
from moving_estimator.models.trip import TripInput, clamp_non_negative


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _component_amount(value: float, pricing: PricingConfig) -> int:
    """Whole amount for one breakdown line, capped at the configured maximum."""
    if math.isnan(value):
        # only reachable as an infinite count times a zero rate
        return 0
    return round_half_up(min(value, pricing.max_component_amount))


def _clarifying_questions(trip: TripInput) -> List[ClarifyingQuestion]:
    questions = []
    if trip.inventory.fridge is not True:
        questions.append(ClarifyingQuestion(
            id="fragile",
            field="inventory.fragile",
            question="Are there fragile or high-value items (glass, art, electronics) needing special packing?",
        ))
    if trip.elevator_current is not True or trip.elevator_destination is not True:
        questions.append(ClarifyingQuestion(
            id="staircases",
            field="access",
            question="Are there narrow staircases or access restrictions we should know about?",
        ))
    if trip.moving_date is None:
        questions.append(ClarifyingQuestion(
            id="flex-date",
            field="movingDate",
            question="Is your moving date flexible within a 3-day window?",
        ))
    return questions


def estimate_heuristic(trip: TripInput, pricing: PricingConfig = DEFAULT_PRICING) -> Estimation:
    """
    Price a move with the fixed heuristic formula: a flat base plus distance,
    labor, inventory and services factors.

    Every component is rounded before summing, so the total always equals the
    sum of the breakdown amounts. Pure and deterministic; never raises for a
    valid TripInput.
    """
    distance_km = clamp_non_negative(trip.distance_meters or 0) / 1000
    distance_factor = max(1, distance_km / pricing.distance_block_km) * pricing.distance_block_rate

    labor_factor = pricing.size_multiplier(trip.property_size) * pricing.labor_rate

    inventory = trip.inventory
    inventory_count = (
        inventory.beds + inventory.wardrobe + inventory.sofa_seats + inventory.boxes * pricing.box_weight
    )
    inventory_factor = inventory_count * pricing.inventory_item_rate

    services_factor = len(trip.additional_services) * pricing.service_rate

    if trip.distance_meters is None:
        distance_rationale = "Distance unknown, priced at the minimum"
    else:
        distance_rationale = f"{distance_km:.1f} km route"

    if trip.additional_services:
        services_rationale = "Additional selected services: " + ", ".join(trip.additional_services)
    else:
        services_rationale = "No additional services"

    breakdown = [
        EstimationBreakdownItem(
            label="Base", amount=_component_amount(pricing.base_amount, pricing), rationale="Minimum operational cost"
        ),
        EstimationBreakdownItem(
            label="Distance", amount=_component_amount(distance_factor, pricing), rationale=distance_rationale
        ),
        EstimationBreakdownItem(
            label="Labor",
            amount=_component_amount(labor_factor, pricing),
            rationale=f"Property size {trip.property_size or 'not specified'}",
        ),
        EstimationBreakdownItem(
            label="Inventory", amount=_component_amount(inventory_factor, pricing), rationale="Volume & handling complexity"
        ),
        EstimationBreakdownItem(
            label="Services", amount=_component_amount(services_factor, pricing), rationale=services_rationale
        ),
    ]

    return Estimation(
        total=sum(item.amount for item in breakdown),
        breakdown=breakdown,
        clarifying_questions=_clarifying_questions(trip),
    )
