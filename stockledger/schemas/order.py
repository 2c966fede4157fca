from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from pydantic import BaseModel, field_validator


class OrderStatus(str, PyEnum):
    PENDING = "pending"
    VALIDATED = "validated"
    CANCELLED = "cancelled"


class OrderLineItemCreate(BaseModel):
    name: str
    quantity: Decimal
    unit_price: Decimal
    unit: str = "unit"

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip()


class OrderCreate(BaseModel):
    supplier: str
    supplier_email: str = ""
    line_items: list[OrderLineItemCreate]
    notes: str = ""


class OrderLineItem(BaseModel):
    name: str
    quantity: Decimal  # canonical unit
    unit: str
    unit_price: Decimal

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_price


class Order(BaseModel):
    id: int
    tenant_id: str
    supplier: str
    supplier_email: str = ""
    line_items: list[OrderLineItem]
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    notes: str = ""
    created_by: str
    created_at: datetime
    validated_by: str | None = None
    validated_at: datetime | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
