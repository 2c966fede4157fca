from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_validator


class StockItemCreate(BaseModel):
    name: str
    quantity: Decimal
    unit: str = "unit"  # g and ml are accepted and normalized to kg / l
    cost: Decimal = Decimal("0")  # purchase cost per canonical unit
    threshold: Decimal | None = None  # None = DEFAULT_ALERT_THRESHOLD
    category: str | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip()


class StockItemUpdate(BaseModel):
    name: str | None = None
    quantity: Decimal | None = None
    unit: str | None = None
    cost: Decimal | None = None
    threshold: Decimal | None = None
    category: str | None = None


class StockItem(BaseModel):
    id: int
    tenant_id: str
    name: str
    quantity: Decimal
    unit: str  # kg, l or unit
    purchase_unit_cost: Decimal = Decimal("0")
    alert_threshold: Decimal
    category: str
    added_by: str
    added_at: datetime

    @property
    def is_low(self) -> bool:
        return self.quantity <= self.alert_threshold
