from datetime import datetime, timezone
from decimal import Decimal

from stockledger.schemas.ledger import ReportEntry, ReportKind, ReportSummary, TenantSnapshot
from stockledger.services.transaction import TenantLedger

_COLLECTIONS = {
    ReportKind.EXPENSE: "expenses",
    ReportKind.REVENUE: "revenue",
    ReportKind.PROFIT: "profit",
}


def append_report(
    snapshot: TenantSnapshot, kind: ReportKind, related_id: str, amount: Decimal, description: str = ""
) -> ReportEntry:
    collection = _COLLECTIONS[kind]
    entry = ReportEntry(
        id=snapshot.next_id(f"reports.{collection}"),
        tenant_id=snapshot.tenant_id,
        kind=kind,
        related_id=related_id,
        amount=amount,
        timestamp=datetime.now(timezone.utc),
        description=description,
    )
    getattr(snapshot.reports, collection).append(entry)
    return entry


def _as_utc(value: datetime | None) -> datetime | None:
    # naive bounds are treated as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _in_range(entries: list[ReportEntry], start: datetime | None, end: datetime | None) -> list[ReportEntry]:
    start, end = _as_utc(start), _as_utc(end)
    return [
        e for e in entries
        if (start is None or e.timestamp >= start) and (end is None or e.timestamp <= end)
    ]


def _total(entries: list[ReportEntry]) -> Decimal:
    return sum((e.amount for e in entries), Decimal("0"))


def list_reports(
    ledger: TenantLedger, tenant_id: str, start: datetime | None = None, end: datetime | None = None
) -> ReportSummary:
    """Report entries plus totals. Totals are derived here, never stored."""
    reports = ledger.read(tenant_id).reports
    expenses = _in_range(reports.expenses, start, end)
    revenue = _in_range(reports.revenue, start, end)
    profit = _in_range(reports.profit, start, end)

    total_expenses = _total(expenses)
    total_revenue = _total(revenue)
    return ReportSummary(
        expenses=expenses,
        revenue=revenue,
        profit=profit,
        total_expenses=total_expenses,
        total_revenue=total_revenue,
        total_profit=_total(profit),
        net_profit=total_revenue - total_expenses,
    )
