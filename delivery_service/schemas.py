from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Annotated
from enum import Enum
import datetime
import uuid

from pricing_service.schemas import CostBreakdown, JsonDecimal

CPF_PATTERN = r"^\d{3}\.\d{3}\.\d{3}-\d{2}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Fields that feed the pricing engine; changing any of them forces a recalculation
PRICING_FIELDS = ("urgency", "distance_km", "rate_per_km", "weight_kg", "rate_per_kg")

# Same precision as the NUMERIC(10, 2) shipment columns
ShipmentDecimal = Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]


class DeliveryStatus(str, Enum):
    CALCULATED = "calculated"
    IN_TRANSIT = "inTransit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Deliveries in these states keep the breakdown they were closed with
FINAL_STATUSES = (DeliveryStatus.DELIVERED.value, DeliveryStatus.CANCELLED.value)


# --- Clients ---

class ClientBase(BaseModel):
    name: str = Field(min_length=1, max_length=40)
    cpf: str = Field(pattern=CPF_PATTERN)
    phone: str = Field(min_length=1, max_length=12)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=100)
    address: str = Field(min_length=1, max_length=250)

class ClientCreate(ClientBase):
    pass

class ClientUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=40)
    cpf: str | None = Field(default=None, pattern=CPF_PATTERN)
    phone: str | None = Field(default=None, min_length=1, max_length=12)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=100)
    address: str | None = Field(default=None, min_length=1, max_length=250)

class ClientRead(ClientBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime.datetime


# --- Shipment attributes shared by orders and deliveries ---

class ShipmentFields(BaseModel):
    urgency: str
    distance_km: ShipmentDecimal
    rate_per_km: ShipmentDecimal
    weight_kg: ShipmentDecimal
    rate_per_kg: ShipmentDecimal


# --- Orders ---

class OrderCreate(ShipmentFields):
    client_id: uuid.UUID
    order_date: datetime.datetime

class OrderUpdate(BaseModel):
    client_id: uuid.UUID | None = None
    order_date: datetime.datetime | None = None
    urgency: str | None = None
    distance_km: ShipmentDecimal | None = None
    rate_per_km: ShipmentDecimal | None = None
    weight_kg: ShipmentDecimal | None = None
    rate_per_kg: ShipmentDecimal | None = None

class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    client_id: uuid.UUID
    order_date: datetime.datetime
    urgency: str
    distance_km: JsonDecimal
    rate_per_km: JsonDecimal
    weight_kg: JsonDecimal
    rate_per_kg: JsonDecimal
    final_cost: JsonDecimal
    created_at: datetime.datetime

class OrderListItem(OrderRead):
    client_name: str

class OrderCreated(BaseModel):
    order: OrderRead
    delivery_id: str
    costs: CostBreakdown


# --- Deliveries ---

class DeliveryCreate(BaseModel):
    order_id: uuid.UUID
    # Omitted shipment fields fall back to the order's values
    urgency: str | None = None
    distance_km: ShipmentDecimal | None = None
    rate_per_km: ShipmentDecimal | None = None
    weight_kg: ShipmentDecimal | None = None
    rate_per_kg: ShipmentDecimal | None = None
    status: DeliveryStatus = DeliveryStatus.CALCULATED

class DeliveryUpdate(BaseModel):
    order_id: uuid.UUID | None = None
    urgency: str | None = None
    distance_km: ShipmentDecimal | None = None
    rate_per_km: ShipmentDecimal | None = None
    weight_kg: ShipmentDecimal | None = None
    rate_per_kg: ShipmentDecimal | None = None
    status: DeliveryStatus | None = None

class DeliveryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: uuid.UUID
    urgency: str
    distance_km: JsonDecimal
    rate_per_km: JsonDecimal
    weight_kg: JsonDecimal
    rate_per_kg: JsonDecimal
    distance_cost: JsonDecimal
    weight_cost: JsonDecimal
    base_cost: JsonDecimal
    surcharge: JsonDecimal
    discount: JsonDecimal
    extra_fee: JsonDecimal
    final_cost: JsonDecimal
    status: DeliveryStatus
    created_at: datetime.datetime
    updated_at: datetime.datetime

