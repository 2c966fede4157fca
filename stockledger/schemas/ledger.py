from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Any

from pydantic import BaseModel, Field, TypeAdapter

from stockledger.schemas.order import Order
from stockledger.schemas.recipe import Recipe
from stockledger.schemas.sale import Sale
from stockledger.schemas.stock import StockItem


_DETAILS = TypeAdapter(dict[str, Any])


def freeze_details(details: dict) -> dict[str, Any]:
    """JSON-safe copy of ``details``: Decimal and datetime become strings."""
    return _DETAILS.dump_python(details, mode="json")


# --- Movements ---

class MovementKind(str, PyEnum):
    RESTOCK = "restock"
    CONSUME = "consume"
    ADJUST = "adjust"
    DELETE = "delete"


class Movement(BaseModel):
    """Append-only record of one stock quantity change. Never edited."""

    id: int
    tenant_id: str
    stock_item_id: int
    stock_item_name: str
    kind: MovementKind
    delta: Decimal  # positive=in, negative=out
    quantity_before: Decimal
    quantity_after: Decimal
    timestamp: datetime
    caused_by: str  # "order:<id>", "sale:<id>", "recipe:<id>" or "manual"
    actor_id: str
    details: dict[str, Any] = {}


# --- Reports ---

class ReportKind(str, PyEnum):
    EXPENSE = "expense"
    REVENUE = "revenue"
    PROFIT = "profit"


class ReportEntry(BaseModel):
    id: int
    tenant_id: str
    kind: ReportKind
    related_id: str  # same reference format as Movement.caused_by
    amount: Decimal
    timestamp: datetime
    description: str = ""


class Reports(BaseModel):
    expenses: list[ReportEntry] = []
    revenue: list[ReportEntry] = []
    profit: list[ReportEntry] = []


class ReportSummary(BaseModel):
    expenses: list[ReportEntry]
    revenue: list[ReportEntry]
    profit: list[ReportEntry]
    total_expenses: Decimal
    total_revenue: Decimal
    total_profit: Decimal
    net_profit: Decimal  # total_revenue - total_expenses


# --- Action log ---

class ActionType(str, PyEnum):
    STOCK_ADD = "STOCK_ADD"
    STOCK_UPDATE = "STOCK_UPDATE"
    STOCK_DELETE = "STOCK_DELETE"
    ORDER_ADD = "ORDER_ADD"
    ORDER_VALIDATE = "ORDER_VALIDATE"
    ORDER_CANCEL = "ORDER_CANCEL"
    RECIPE_ADD = "RECIPE_ADD"
    RECIPE_USE_STOCK = "RECIPE_USE_STOCK"
    RECIPE_UPDATE = "RECIPE_UPDATE"
    RECIPE_DELETE = "RECIPE_DELETE"
    SALE_CREATE = "SALE_CREATE"
    SALE_COMPLETE = "SALE_COMPLETE"


class ActionLogEntry(BaseModel):
    id: int
    tenant_id: str
    timestamp: datetime
    action_type: ActionType
    actor_id: str
    actor_role: str
    details: dict[str, Any] = {}  # JSON-safe values frozen at write time


class HistoryEntry(BaseModel):
    id: int
    timestamp: datetime
    action_type: ActionType
    actor_id: str
    actor_role: str
    details: dict[str, Any]


# --- Tenant document ---

class TenantSnapshot(BaseModel):
    """Everything one tenant owns. Loaded, mutated and saved as a unit."""

    tenant_id: str
    stock: list[StockItem] = []
    orders: list[Order] = []
    recipes: list[Recipe] = []
    sales: list[Sale] = []
    movements: list[Movement] = []
    reports: Reports = Field(default_factory=Reports)
    action_log: list[ActionLogEntry] = []
    # Last id handed out per collection; ids are never reused after deletes
    sequences: dict[str, int] = {}

    def next_id(self, collection: str) -> int:
        value = self.sequences.get(collection, 0) + 1
        self.sequences[collection] = value
        return value

    def stock_item(self, item_id: int) -> StockItem | None:
        return next((s for s in self.stock if s.id == item_id and s.tenant_id == self.tenant_id), None)

    def stock_item_by_name(self, name: str) -> StockItem | None:
        key = name.strip().casefold()
        return next(
            (s for s in self.stock if s.name.casefold() == key and s.tenant_id == self.tenant_id),
            None,
        )

    def order(self, order_id: int) -> Order | None:
        return next((o for o in self.orders if o.id == order_id and o.tenant_id == self.tenant_id), None)

    def recipe(self, recipe_id: int) -> Recipe | None:
        return next((r for r in self.recipes if r.id == recipe_id and r.tenant_id == self.tenant_id), None)

    def sale(self, sale_id: int) -> Sale | None:
        return next((s for s in self.sales if s.id == sale_id and s.tenant_id == self.tenant_id), None)
