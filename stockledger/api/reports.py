from datetime import datetime

from fastapi import APIRouter, Depends, Query

from stockledger.api.deps import get_actor, get_ledger
from stockledger.schemas.identity import Actor
from stockledger.schemas.ledger import ActionType, HistoryEntry, ReportSummary
from stockledger.services import action_log_service, report_service
from stockledger.services.transaction import TenantLedger

router = APIRouter(tags=["Reports"])


@router.get("/reports", response_model=ReportSummary)
def list_reports(
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    actor: Actor = Depends(get_actor),
    ledger: TenantLedger = Depends(get_ledger),
):
    return report_service.list_reports(ledger, actor.tenant_id, start=start_date, end=end_date)


@router.get("/history", response_model=list[HistoryEntry])
def list_history(
    action_type: ActionType | None = None,
    limit: int | None = Query(None, ge=1),
    actor: Actor = Depends(get_actor),
    ledger: TenantLedger = Depends(get_ledger),
):
    return action_log_service.list_history(ledger, actor.tenant_id, action_type=action_type, limit=limit)
