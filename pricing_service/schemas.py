from decimal import Decimal
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field, PlainSerializer

# Decimals go out as JSON numbers, not strings
JsonDecimal = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Urgency(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"


# Request body for the calculation endpoint
class ShipmentRequest(BaseModel):
    distance_km: Decimal = Field(gt=0)
    rate_per_km: Decimal = Field(gt=0)
    weight_kg: Decimal = Field(gt=0)
    rate_per_kg: Decimal = Field(gt=0)
    urgency: str = Urgency.NORMAL.value  # Normalized by the engine


# Response body, also stored as a snapshot on each delivery
class CostBreakdown(BaseModel):
    distance_cost: JsonDecimal = Field(ge=0)
    weight_cost: JsonDecimal = Field(ge=0)
    base_cost: JsonDecimal = Field(ge=0)
    surcharge: JsonDecimal = Field(ge=0, default=Decimal("0.00"))
    discount: JsonDecimal = Field(ge=0, default=Decimal("0.00"))
    extra_fee: JsonDecimal = Field(ge=0, default=Decimal("0.00"))
    final_cost: JsonDecimal = Field(ge=0)
