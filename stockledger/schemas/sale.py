from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from pydantic import BaseModel


class SaleStatus(str, PyEnum):
    PENDING = "pending"
    VALIDATED = "validated"


class SaleCreate(BaseModel):
    recipe_id: int
    quantity: int = 1
    client: str | None = None


class Sale(BaseModel):
    id: int
    tenant_id: str
    recipe_id: int
    recipe_name: str
    quantity: int
    total_price: Decimal
    status: SaleStatus = SaleStatus.PENDING
    cost_total: Decimal | None = None  # frozen at validation
    profit: Decimal | None = None
    client: str
    created_by: str
    created_at: datetime
    validated_by: str | None = None
    validated_at: datetime | None = None
