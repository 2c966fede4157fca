from fastapi import APIRouter, Depends

from stockledger.api.deps import get_actor, get_ledger
from stockledger.schemas.identity import Actor
from stockledger.schemas.sale import Sale, SaleCreate, SaleStatus
from stockledger.services import sale_service
from stockledger.services.transaction import TenantLedger

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.post("", response_model=Sale, status_code=201)
def create_sale(data: SaleCreate, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    return sale_service.create_sale(ledger, actor.tenant_id, data, actor)


@router.get("", response_model=list[Sale])
def list_sales(
    status: SaleStatus | None = None, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)
):
    return sale_service.list_sales(ledger, actor.tenant_id, status=status)


@router.get("/{sale_id}", response_model=Sale)
def get_sale(sale_id: int, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    return sale_service.get_sale(ledger, actor.tenant_id, sale_id)


@router.post("/{sale_id}/validate", response_model=Sale)
def validate_sale(sale_id: int, actor: Actor = Depends(get_actor), ledger: TenantLedger = Depends(get_ledger)):
    return sale_service.validate_sale(ledger, actor.tenant_id, sale_id, actor)
