from fastapi import APIRouter, Depends

from stockledger.api.deps import get_actor, get_ledger
from stockledger.schemas.identity import Actor
from stockledger.schemas.ledger import Movement
from stockledger.schemas.stock import StockItem, StockItemCreate, StockItemUpdate
from stockledger.services import movement_service, stock_service
from stockledger.services.transaction import TenantLedger

router = APIRouter(prefix="/stock", tags=["Stock"])


@router.post("", response_model=StockItem, status_code=201)
def add_stock_item(
    data: StockItemCreate, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)
):
    return stock_service.add_item(ledger, actor.tenant_id, data, actor)


@router.get("", response_model=list[StockItem])
def list_stock(
    category: str | None = None, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)
):
    return stock_service.list_stock(ledger, actor.tenant_id, category=category)


@router.get("/alerts", response_model=list[StockItem])
def list_alerts(actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    """Items at or below their alert threshold."""
    return stock_service.list_alerts(ledger, actor.tenant_id)


@router.get("/movements", response_model=list[Movement])
def list_movements(
    stock_item_id: int | None = None,
    limit: int = 50,
    actor: Actor = Depends(get_actor),
    ledger: TenantLedger = Depends(get_ledger),
):
    return movement_service.list_movements(ledger, actor.tenant_id, stock_item_id=stock_item_id, limit=limit)


@router.get("/reconcile")
def reconcile(actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    """Items whose quantity disagrees with their movements. Empty when healthy."""
    return movement_service.reconcile(ledger, actor.tenant_id)


@router.get("/{item_id}", response_model=StockItem)
def get_stock_item(item_id: int, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    return stock_service.get_stock_item(ledger, actor.tenant_id, item_id)


@router.patch("/{item_id}", response_model=StockItem)
def update_stock_item(
    item_id: int,
    data: StockItemUpdate,
    actor: Actor = Depends(get_actor),
    ledger: TenantLedger = Depends(get_ledger),
):
    return stock_service.update_item(ledger, actor.tenant_id, item_id, data, actor)


@router.delete("/{item_id}", response_model=StockItem)
def delete_stock_item(item_id: int, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    return stock_service.delete_item(ledger, actor.tenant_id, item_id, actor)
