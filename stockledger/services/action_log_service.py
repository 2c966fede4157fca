"""
Append-only action log and its history projection.

Entries are stored in insertion order with ``details`` frozen at write
time (JSON-safe values only). ``list_history`` returns them newest first
and enriches each one from current state through one hydrator per
ActionType. When the referenced entity no longer exists the frozen
details are returned unchanged.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from stockledger.config import settings
from stockledger.schemas.identity import Actor
from stockledger.schemas.ledger import ActionLogEntry, ActionType, HistoryEntry, TenantSnapshot, freeze_details
from stockledger.services.movement_service import movements_caused_by
from stockledger.services.transaction import TenantLedger


def append_action(snapshot: TenantSnapshot, action_type: ActionType, actor: Actor, details: dict) -> ActionLogEntry:
    entry = ActionLogEntry(
        id=snapshot.next_id("action_log"),
        tenant_id=snapshot.tenant_id,
        timestamp=datetime.now(timezone.utc),
        action_type=action_type,
        actor_id=actor.actor_id,
        actor_role=actor.role,
        details=freeze_details(details),
    )
    snapshot.action_log.append(entry)
    return entry


# --- Hydration helpers ---

def _movement_lines(snapshot: TenantSnapshot, reference: str) -> list[dict]:
    return [
        {
            "movement_id": m.id,
            "stock_item_id": m.stock_item_id,
            "name": m.stock_item_name,
            "kind": m.kind.value,
            "delta": m.delta,
            "timestamp": m.timestamp,
        }
        for m in movements_caused_by(snapshot, reference)
    ]


def _stock_name(snapshot: TenantSnapshot, stock_item_id, fallback):
    item = snapshot.stock_item(stock_item_id) if stock_item_id is not None else None
    return item.name if item else fallback


def _ingredient_lines(snapshot: TenantSnapshot, ingredients: list[dict]) -> list[dict]:
    return [
        {**ing, "name": _stock_name(snapshot, ing.get("stock_item_id"), ing.get("name"))}
        for ing in ingredients
    ]


# --- One hydrator per action type ---

def _stock_add(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    details = dict(entry.details)
    item = snapshot.stock_item(details.get("stock_item_id"))
    details["deleted"] = item is None
    if item:
        details["current_name"] = item.name
        details["current_quantity"] = item.quantity
    return details


def _stock_update(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    details = dict(entry.details)
    details["current_name"] = _stock_name(snapshot, details.get("stock_item_id"), details.get("name"))
    details["difference"] = Decimal(details["quantity_after"]) - Decimal(details["quantity_before"])
    return details


def _stock_delete(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    return dict(entry.details)


def _order_add(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    details = dict(entry.details)
    order = snapshot.order(details.get("order_id"))
    if order:
        details["status"] = order.status.value
        details["supplier"] = order.supplier
    return details


def _order_validate(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    details = dict(entry.details)
    order_id = details.get("order_id")
    order = snapshot.order(order_id)
    if order:
        details["validated_at"] = order.validated_at
    details["line_items"] = [
        {**line, "name": _stock_name(snapshot, line.get("stock_item_id"), line.get("name"))}
        for line in details.get("line_items", [])
    ]
    details["movements"] = _movement_lines(snapshot, f"order:{order_id}")
    return details


def _order_cancel(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    details = dict(entry.details)
    order = snapshot.order(details.get("order_id"))
    if order:
        details["cancelled_at"] = order.cancelled_at
    return details


def _recipe_add(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    details = dict(entry.details)
    recipe = snapshot.recipe(details.get("recipe_id"))
    details["deleted"] = recipe is None
    if recipe:
        details["name"] = recipe.name
        details["price"] = recipe.price
    details["ingredients"] = _ingredient_lines(snapshot, details.get("ingredients", []))
    return details


def _recipe_use_stock(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    details = _recipe_add(entry, snapshot)
    details["movements"] = _movement_lines(snapshot, f"recipe:{details.get('recipe_id')}")
    return details


def _recipe_update(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    details = dict(entry.details)
    details["ingredients"] = _ingredient_lines(snapshot, details.get("ingredients", []))
    return details


def _recipe_delete(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    return dict(entry.details)


def _sale_create(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    details = dict(entry.details)
    recipe = snapshot.recipe(details.get("recipe_id"))
    if recipe:
        details["recipe_name"] = recipe.name
    sale = snapshot.sale(details.get("sale_id"))
    if sale:
        details["status"] = sale.status.value
    return details


def _sale_complete(entry: ActionLogEntry, snapshot: TenantSnapshot) -> dict:
    details = _sale_create(entry, snapshot)
    details["movements"] = _movement_lines(snapshot, f"sale:{details.get('sale_id')}")
    return details


_HYDRATORS: dict[ActionType, Callable[[ActionLogEntry, TenantSnapshot], dict]] = {
    ActionType.STOCK_ADD: _stock_add,
    ActionType.STOCK_UPDATE: _stock_update,
    ActionType.STOCK_DELETE: _stock_delete,
    ActionType.ORDER_ADD: _order_add,
    ActionType.ORDER_VALIDATE: _order_validate,
    ActionType.ORDER_CANCEL: _order_cancel,
    ActionType.RECIPE_ADD: _recipe_add,
    ActionType.RECIPE_USE_STOCK: _recipe_use_stock,
    ActionType.RECIPE_UPDATE: _recipe_update,
    ActionType.RECIPE_DELETE: _recipe_delete,
    ActionType.SALE_CREATE: _sale_create,
    ActionType.SALE_COMPLETE: _sale_complete,
}

_missing = set(ActionType) - set(_HYDRATORS)
if _missing:
    raise RuntimeError(f"No history hydrator for {sorted(m.value for m in _missing)}")


def hydrate(entry: ActionLogEntry, snapshot: TenantSnapshot) -> HistoryEntry:
    return HistoryEntry(
        id=entry.id,
        timestamp=entry.timestamp,
        action_type=entry.action_type,
        actor_id=entry.actor_id,
        actor_role=entry.actor_role,
        details=freeze_details(_HYDRATORS[entry.action_type](entry, snapshot)),
    )


def list_history(
    ledger: TenantLedger,
    tenant_id: str,
    action_type: ActionType | None = None,
    limit: int | None = None,
) -> list[HistoryEntry]:
    snapshot = ledger.read(tenant_id)
    limit = settings.HISTORY_LIMIT if limit is None else limit
    history = []
    for entry in reversed(snapshot.action_log):
        if len(history) >= limit:
            break
        if action_type is not None and entry.action_type != action_type:
            continue
        history.append(hydrate(entry, snapshot))
    return history
