from datetime import datetime, timezone
from decimal import Decimal

from stockledger.exceptions import InsufficientStockError
from stockledger.schemas.identity import Actor
from stockledger.schemas.ledger import Movement, MovementKind, TenantSnapshot, freeze_details
from stockledger.schemas.stock import StockItem
from stockledger.services.transaction import TenantLedger

MANUAL = "manual"


def apply_movement(
    snapshot: TenantSnapshot,
    item: StockItem,
    kind: MovementKind,
    delta: Decimal,
    actor: Actor,
    caused_by: str = MANUAL,
    details: dict | None = None,
) -> Movement:
    """Change ``item.quantity`` by ``delta`` and record why.

    The only place stock quantities move, so every change has a movement
    and no change can take a quantity below zero.
    """
    before = item.quantity
    after = before + delta
    if after < 0:
        raise InsufficientStockError(item.id, item.name, required=-delta, available=before)
    item.quantity = after
    movement = Movement(
        id=snapshot.next_id("movements"),
        tenant_id=snapshot.tenant_id,
        stock_item_id=item.id,
        stock_item_name=item.name,
        kind=kind,
        delta=delta,
        quantity_before=before,
        quantity_after=after,
        timestamp=datetime.now(timezone.utc),
        caused_by=caused_by,
        actor_id=actor.actor_id,
        details=freeze_details(details or {}),
    )
    snapshot.movements.append(movement)
    return movement


def movements_caused_by(snapshot: TenantSnapshot, reference: str) -> list[Movement]:
    return [m for m in snapshot.movements if m.caused_by == reference]


def list_movements(
    ledger: TenantLedger, tenant_id: str, stock_item_id: int | None = None, limit: int = 50
) -> list[Movement]:
    snapshot = ledger.read(tenant_id)
    movements = snapshot.movements
    if stock_item_id is not None:
        movements = [m for m in movements if m.stock_item_id == stock_item_id]
    return list(reversed(movements))[:limit]


def ledger_balance(snapshot: TenantSnapshot, stock_item_id: int) -> Decimal:
    return sum((m.delta for m in snapshot.movements if m.stock_item_id == stock_item_id), Decimal("0"))


def reconcile(ledger: TenantLedger, tenant_id: str) -> list[dict]:
    """Active items whose quantity disagrees with the sum of their movements."""
    snapshot = ledger.read(tenant_id)
    drift = []
    for item in snapshot.stock:
        balance = ledger_balance(snapshot, item.id)
        if balance != item.quantity:
            drift.append({
                "stock_item_id": item.id,
                "name": item.name,
                "quantity": item.quantity,
                "ledger_balance": balance,
            })
    return drift
