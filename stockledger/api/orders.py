from fastapi import APIRouter, Depends

from stockledger.api.deps import get_actor, get_ledger
from stockledger.schemas.identity import Actor
from stockledger.schemas.order import Order, OrderCreate, OrderStatus
from stockledger.services import order_service
from stockledger.services.transaction import TenantLedger

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=Order, status_code=201)
def create_order(data: OrderCreate, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    return order_service.create_order(ledger, actor.tenant_id, data, actor)


@router.get("", response_model=list[Order])
def list_orders(
    status: OrderStatus | None = None, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)
):
    return order_service.list_orders(ledger, actor.tenant_id, status=status)


@router.get("/{order_id}", response_model=Order)
def get_order(order_id: int, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    return order_service.get_order(ledger, actor.tenant_id, order_id)


@router.post("/{order_id}/validate", response_model=Order)
def validate_order(order_id: int, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    """Receive the goods: restock every line item and book the expense."""
    return order_service.validate_order(ledger, actor.tenant_id, order_id, actor)


@router.post("/{order_id}/cancel", response_model=Order)
def cancel_order(order_id: int, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    return order_service.cancel_order(ledger, actor.tenant_id, order_id, actor)
