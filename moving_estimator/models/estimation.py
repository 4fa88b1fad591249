import math
from enum import Enum
from typing import Annotated, List, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictStr, model_validator
from pydantic.alias_generators import to_camel


class EstimationBreakdownItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    amount: int
    rationale: str


class ClarifyingQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    field: str  # dotted path into TripInput
    question: str


class Estimation(BaseModel):
    """A priced, itemized estimate.

    ``total`` always equals the sum of the breakdown amounts; an Estimation
    that breaks this cannot be constructed.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    total: int
    breakdown: Tuple[EstimationBreakdownItem, ...]
    clarifying_questions: Tuple[ClarifyingQuestion, ...] = ()

    @model_validator(mode="after")
    def check_consistency(self):
        computed = sum(item.amount for item in self.breakdown)
        if computed != self.total:
            raise ValueError(f"breakdown sums to {computed} but total is {self.total}")

        ids = [q.id for q in self.clarifying_questions]
        if len(ids) != len(set(ids)):
            raise ValueError(f"clarifying question ids are not unique: {ids}")
        return self


class EstimateSource(str, Enum):
    PROVIDER = "provider"
    HEURISTIC = "heuristic"


class GatewayResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    estimation: Estimation
    source: EstimateSource
    fallback_reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Provider response contract. The provider is an LLM-backed service, so its
# output is validated field by field before it becomes an Estimation.
# ---------------------------------------------------------------------------

def _whole_amount(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    if not math.isfinite(value):
        raise ValueError("must be finite")
    if value != int(value):
        raise ValueError("must be a whole amount")
    return int(value)


WholeAmount = Annotated[int, BeforeValidator(_whole_amount)]


class ProviderBreakdownItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    label: StrictStr
    amount: WholeAmount
    rationale: StrictStr


class ProviderClarifyingQuestion(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: StrictStr
    field: StrictStr
    question: StrictStr


class ProviderEstimation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total: WholeAmount = Field(ge=0)
    breakdown: List[ProviderBreakdownItem] = Field(min_length=1)
    clarifying_questions: List[ProviderClarifyingQuestion] = Field(alias="clarifyingQuestions")

    def to_estimation(self) -> Estimation:
        # Estimation re-checks the sum and the question ids
        return Estimation(
            total=self.total,
            breakdown=[EstimationBreakdownItem(**item.model_dump()) for item in self.breakdown],
            clarifying_questions=[ClarifyingQuestion(**q.model_dump()) for q in self.clarifying_questions],
        )
