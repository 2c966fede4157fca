import logging
from datetime import datetime, timezone
from decimal import Decimal

from stockledger.config import settings
from stockledger.exceptions import InvalidStateError, NotFoundError, ValidationError
from stockledger.schemas.identity import Actor
from stockledger.schemas.ledger import ActionType, MovementKind, ReportKind, TenantSnapshot
from stockledger.schemas.sale import Sale, SaleCreate, SaleStatus
from stockledger.services.action_log_service import append_action
from stockledger.services.movement_service import apply_movement
from stockledger.services.recipe_service import get_recipe_or_404, required_stock
from stockledger.services.report_service import append_report
from stockledger.services.transaction import TenantLedger

logger = logging.getLogger(__name__)


def _get_sale_or_404(snapshot: TenantSnapshot, sale_id: int) -> Sale:
    sale = snapshot.sale(sale_id)
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def _sale_details(sale: Sale) -> dict:
    return {
        "sale_id": sale.id,
        "recipe_id": sale.recipe_id,
        "recipe_name": sale.recipe_name,
        "quantity": sale.quantity,
        "total_price": sale.total_price,
        "client": sale.client,
        "cost_total": sale.cost_total,
        "profit": sale.profit,
    }


def create_sale(ledger: TenantLedger, tenant_id: str, data: SaleCreate, actor: Actor) -> Sale:
    if data.quantity <= 0:
        raise ValidationError("Sale quantity must be a positive number of portions", field="quantity")
    client = (data.client or "").strip() or settings.DEFAULT_CLIENT

    with ledger.transaction(tenant_id) as snapshot:
        recipe = get_recipe_or_404(snapshot, data.recipe_id)
        sale = Sale(
            id=snapshot.next_id("sales"),
            tenant_id=tenant_id,
            recipe_id=recipe.id,
            recipe_name=recipe.name,
            quantity=data.quantity,
            total_price=recipe.price * data.quantity,
            status=SaleStatus.PENDING,
            client=client,
            created_by=actor.actor_id,
            created_at=datetime.now(timezone.utc),
        )
        snapshot.sales.append(sale)
        append_action(snapshot, ActionType.SALE_CREATE, actor, _sale_details(sale))
    return sale


def validate_sale(ledger: TenantLedger, tenant_id: str, sale_id: int, actor: Actor) -> Sale:
    """Consume the ingredients of a pending sale and book its revenue and profit.

    Cost uses each stock item's purchase cost at validation time. If any
    ingredient is short, nothing is deducted.
    """
    with ledger.transaction(tenant_id) as snapshot:
        sale = _get_sale_or_404(snapshot, sale_id)
        if sale.status != SaleStatus.PENDING:
            raise InvalidStateError("Sale", sale.id, sale.status.value)
        recipe = get_recipe_or_404(snapshot, sale.recipe_id)

        plan = required_stock(snapshot, recipe.ingredients, sale.quantity)
        reference = f"sale:{sale.id}"
        cost_total = Decimal("0")
        for item, needed in plan:
            cost_total += item.purchase_unit_cost * needed
            apply_movement(
                snapshot, item, MovementKind.CONSUME, -needed, actor,
                caused_by=reference,
                details={"recipe": recipe.name, "portions": sale.quantity},
            )

        sale.cost_total = cost_total
        sale.profit = sale.total_price - cost_total
        sale.status = SaleStatus.VALIDATED
        sale.validated_by = actor.actor_id
        sale.validated_at = datetime.now(timezone.utc)

        append_report(
            snapshot, ReportKind.REVENUE, reference, sale.total_price,
            description=f"{sale.quantity} x {sale.recipe_name}",
        )
        append_report(
            snapshot, ReportKind.PROFIT, reference, sale.profit,
            description=f"{sale.quantity} x {sale.recipe_name}",
        )
        append_action(snapshot, ActionType.SALE_COMPLETE, actor, _sale_details(sale))
    logger.info("Sale %s validated for tenant %s (profit %s)", sale_id, tenant_id, sale.profit)
    return sale


def get_sale(ledger: TenantLedger, tenant_id: str, sale_id: int) -> Sale:
    return _get_sale_or_404(ledger.read(tenant_id), sale_id)


def list_sales(ledger: TenantLedger, tenant_id: str, status: SaleStatus | None = None) -> list[Sale]:
    sales = ledger.read(tenant_id).sales
    if status:
        sales = [s for s in sales if s.status == status]
    return sorted(sales, key=lambda s: s.created_at, reverse=True)
