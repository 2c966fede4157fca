import logging
from datetime import datetime, timezone
from decimal import Decimal

from stockledger.config import settings
from stockledger.exceptions import NotFoundError, UnitMismatchError, ValidationError
from stockledger.schemas.identity import Actor
from stockledger.schemas.ledger import ActionType, MovementKind, ReportKind, TenantSnapshot
from stockledger.schemas.stock import StockItem, StockItemCreate, StockItemUpdate
from stockledger.services import units
from stockledger.services.action_log_service import append_action
from stockledger.services.movement_service import apply_movement
from stockledger.services.report_service import append_report
from stockledger.services.transaction import TenantLedger

logger = logging.getLogger(__name__)


def require_non_negative(value: Decimal | None, field: str) -> Decimal:
    if value is None or not value.is_finite() or value < 0:
        raise ValidationError(f"{field} must be a finite non-negative number", field=field)
    return value


def require_name(value: str | None, field: str = "name") -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError(f"{field} is required", field=field)
    return name


def get_item_or_404(snapshot: TenantSnapshot, item_id: int) -> StockItem:
    item = snapshot.stock_item(item_id)
    if item is None:
        raise NotFoundError("Stock item", item_id)
    return item


def require_unique_name(snapshot: TenantSnapshot, name: str, item_id: int | None = None) -> None:
    # orders are matched to stock by name, ignoring case
    existing = snapshot.stock_item_by_name(name)
    if existing is not None and existing.id != item_id:
        raise ValidationError(f"A stock item named '{existing.name}' already exists", field="name")


def new_stock_item(
    snapshot: TenantSnapshot,
    actor: Actor,
    *,
    name: str,
    unit: str,
    cost: Decimal,
    threshold: Decimal | None = None,
    category: str | None = None,
) -> StockItem:
    """Register an empty item. Quantity only ever arrives through a movement."""
    item = StockItem(
        id=snapshot.next_id("stock"),
        tenant_id=snapshot.tenant_id,
        name=name,
        quantity=Decimal("0"),
        unit=unit,
        purchase_unit_cost=cost,
        alert_threshold=Decimal(str(settings.DEFAULT_ALERT_THRESHOLD)) if threshold is None else threshold,
        category=category or settings.DEFAULT_CATEGORY,
        added_by=actor.actor_id,
        added_at=datetime.now(timezone.utc),
    )
    snapshot.stock.append(item)
    return item


def add_item(ledger: TenantLedger, tenant_id: str, data: StockItemCreate, actor: Actor) -> StockItem:
    name = require_name(data.name)
    quantity, unit = units.normalize(require_non_negative(data.quantity, "quantity"), data.unit)
    cost = require_non_negative(data.cost, "cost")
    threshold = None if data.threshold is None else require_non_negative(data.threshold, "threshold")

    with ledger.transaction(tenant_id) as snapshot:
        require_unique_name(snapshot, name)
        item = new_stock_item(
            snapshot, actor, name=name, unit=unit, cost=cost, threshold=threshold, category=data.category
        )
        apply_movement(
            snapshot, item, MovementKind.RESTOCK, quantity, actor,
            details={"source": "manual_add", "unit_cost": cost},
        )
        append_report(
            snapshot, ReportKind.EXPENSE, f"stock:{item.id}", cost * quantity,
            description=f"Purchase of {quantity} {unit} of {name}",
        )
        append_action(snapshot, ActionType.STOCK_ADD, actor, {
            "stock_item_id": item.id,
            "name": item.name,
            "quantity": item.quantity,
            "unit": item.unit,
            "cost": item.purchase_unit_cost,
            "threshold": item.alert_threshold,
            "category": item.category,
        })
    logger.info("Stock item %s (%s) added for tenant %s", item.id, item.name, tenant_id)
    return item


def update_item(
    ledger: TenantLedger, tenant_id: str, item_id: int, data: StockItemUpdate, actor: Actor
) -> StockItem:
    patch = data.model_dump(exclude_unset=True)
    for field in ("quantity", "cost", "threshold"):
        if field in patch:
            require_non_negative(patch[field], field)
    if "name" in patch:
        patch["name"] = require_name(patch["name"])
    if "category" in patch:
        patch["category"] = require_name(patch["category"], "category")

    with ledger.transaction(tenant_id) as snapshot:
        item = get_item_or_404(snapshot, item_id)

        # an item keeps its canonical unit for life; g may patch a kg item, l may not
        unit = patch.get("unit")
        if unit is not None and units.canonical_unit(unit) != item.unit:
            raise UnitMismatchError(unit, item.unit)
        new_quantity = item.quantity
        if "quantity" in patch:
            new_quantity = units.convert(patch["quantity"], unit or item.unit, item.unit)
        new_cost = patch.get("cost", item.purchase_unit_cost)

        name_before = item.name
        quantity_before = item.quantity
        cost_before = item.purchase_unit_cost

        if "name" in patch:
            require_unique_name(snapshot, patch["name"], item.id)
            item.name = patch["name"]
        if "threshold" in patch:
            item.alert_threshold = patch["threshold"]
        if "category" in patch:
            item.category = patch["category"]
        item.purchase_unit_cost = new_cost

        if new_quantity != quantity_before or new_cost != cost_before:
            apply_movement(
                snapshot, item, MovementKind.ADJUST, new_quantity - quantity_before, actor,
                details={
                    "source": "manual_update",
                    "quantity_before": quantity_before,
                    "quantity_after": new_quantity,
                    "cost_before": cost_before,
                    "cost_after": new_cost,
                },
            )

        append_action(snapshot, ActionType.STOCK_UPDATE, actor, {
            "stock_item_id": item.id,
            "name_before": name_before,
            "name": item.name,
            "quantity_before": quantity_before,
            "quantity_after": item.quantity,
            "cost_before": cost_before,
            "cost_after": item.purchase_unit_cost,
            "category": item.category,
        })
    return item


def delete_item(ledger: TenantLedger, tenant_id: str, item_id: int, actor: Actor) -> StockItem:
    with ledger.transaction(tenant_id) as snapshot:
        item = get_item_or_404(snapshot, item_id)
        last_quantity = item.quantity
        apply_movement(
            snapshot, item, MovementKind.DELETE, -last_quantity, actor,
            details={"source": "manual_delete", "last_quantity": last_quantity},
        )
        snapshot.stock.remove(item)
        append_action(snapshot, ActionType.STOCK_DELETE, actor, {
            "stock_item_id": item.id,
            "name": item.name,
            "last_quantity": last_quantity,
            "category": item.category,
        })
    logger.info("Stock item %s (%s) deleted for tenant %s", item.id, item.name, tenant_id)
    return item


def list_alerts(ledger: TenantLedger, tenant_id: str) -> list[StockItem]:
    return [item for item in ledger.read(tenant_id).stock if item.is_low]


def list_stock(ledger: TenantLedger, tenant_id: str, category: str | None = None) -> list[StockItem]:
    items = ledger.read(tenant_id).stock
    if category:
        items = [i for i in items if i.category == category]
    return items


def get_stock_item(ledger: TenantLedger, tenant_id: str, item_id: int) -> StockItem:
    return get_item_or_404(ledger.read(tenant_id), item_id)
