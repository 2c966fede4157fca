from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_validator


class IngredientInput(BaseModel):
    stock_item_id: int
    quantity: Decimal
    unit: str | None = None  # None = already in the stock item's unit


class RecipeCreate(BaseModel):
    name: str
    price: Decimal = Decimal("0")
    ingredients: list[IngredientInput]
    category: str | None = None
    description: str = ""

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip()


class RecipeUpdate(BaseModel):
    name: str | None = None
    price: Decimal | None = None
    ingredients: list[IngredientInput] | None = None
    category: str | None = None
    description: str | None = None


class Ingredient(BaseModel):
    stock_item_id: int
    name: str  # frozen at recipe write time
    quantity: Decimal  # in the stock item's canonical unit
    unit: str


class Recipe(BaseModel):
    id: int
    tenant_id: str
    name: str
    price: Decimal
    ingredients: list[Ingredient]
    category: str
    description: str = ""
    created_by: str
    created_at: datetime
    updated_at: datetime | None = None
