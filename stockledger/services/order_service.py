import logging
from datetime import datetime, timezone
from decimal import Decimal

from stockledger.config import settings
from stockledger.exceptions import InvalidStateError, NotFoundError, UnitMismatchError, ValidationError
from stockledger.schemas.identity import Actor
from stockledger.schemas.ledger import ActionType, MovementKind, ReportKind, TenantSnapshot
from stockledger.schemas.order import Order, OrderCreate, OrderLineItem, OrderStatus
from stockledger.services import units
from stockledger.services.action_log_service import append_action
from stockledger.services.movement_service import apply_movement
from stockledger.services.report_service import append_report
from stockledger.services.stock_service import new_stock_item, require_name, require_non_negative
from stockledger.services.transaction import TenantLedger

logger = logging.getLogger(__name__)


def _line_summary(line: OrderLineItem) -> dict:
    return {
        "name": line.name,
        "quantity": line.quantity,
        "unit": line.unit,
        "unit_price": line.unit_price,
        "amount": line.amount,
    }


def _get_order_or_404(snapshot: TenantSnapshot, order_id: int) -> Order:
    order = snapshot.order(order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    return order


def _require_pending(order: Order) -> None:
    if order.status != OrderStatus.PENDING:
        raise InvalidStateError("Order", order.id, order.status.value)


def create_order(ledger: TenantLedger, tenant_id: str, data: OrderCreate, actor: Actor) -> Order:
    supplier = require_name(data.supplier, "supplier")
    if not data.line_items:
        raise ValidationError("An order needs at least one line item", field="line_items")

    line_items = []
    for idx, item_data in enumerate(data.line_items):
        name = require_name(item_data.name, f"line_items[{idx}].name")
        quantity, unit = units.normalize(
            require_non_negative(item_data.quantity, f"line_items[{idx}].quantity"), item_data.unit
        )
        if quantity == 0:
            raise ValidationError("Ordered quantity must be positive", field=f"line_items[{idx}].quantity")
        unit_price = require_non_negative(item_data.unit_price, f"line_items[{idx}].unit_price")
        # price per g becomes price per kg
        unit_price = unit_price * units.convert(Decimal("1"), unit, item_data.unit)
        line_items.append(OrderLineItem(name=name, quantity=quantity, unit=unit, unit_price=unit_price))

    with ledger.transaction(tenant_id) as snapshot:
        order = Order(
            id=snapshot.next_id("orders"),
            tenant_id=tenant_id,
            supplier=supplier,
            supplier_email=data.supplier_email,
            line_items=line_items,
            total_amount=sum((line.amount for line in line_items), Decimal("0")),
            status=OrderStatus.PENDING,
            notes=data.notes,
            created_by=actor.actor_id,
            created_at=datetime.now(timezone.utc),
        )
        snapshot.orders.append(order)
        append_action(snapshot, ActionType.ORDER_ADD, actor, {
            "order_id": order.id,
            "supplier": order.supplier,
            "line_items": [_line_summary(line) for line in order.line_items],
            "total_amount": order.total_amount,
        })
    return order


def validate_order(ledger: TenantLedger, tenant_id: str, order_id: int, actor: Actor) -> Order:
    """Receive the goods of a pending order.

    Every line item credits the stock item of the same name, creating it
    when the tenant has never stocked that product. All effects land in one
    transaction: a bad line item leaves the order and every stock item as
    they were.
    """
    with ledger.transaction(tenant_id) as snapshot:
        order = _get_order_or_404(snapshot, order_id)
        _require_pending(order)
        reference = f"order:{order.id}"

        received = []
        for line in order.line_items:
            item = snapshot.stock_item_by_name(line.name)
            created = item is None
            if created:
                item = new_stock_item(
                    snapshot, actor,
                    name=line.name,
                    unit=line.unit,
                    cost=line.unit_price,
                    category=settings.NEW_PRODUCT_CATEGORY,
                )
            elif item.unit != line.unit:
                raise UnitMismatchError(line.unit, item.unit)

            movement = apply_movement(
                snapshot, item, MovementKind.RESTOCK, line.quantity, actor,
                caused_by=reference,
                details={"supplier": order.supplier, "unit_price": line.unit_price},
            )
            received.append({
                **_line_summary(line),
                "stock_item_id": item.id,
                "stock_before": movement.quantity_before,
                "stock_after": movement.quantity_after,
                "created": created,
            })

        now = datetime.now(timezone.utc)
        order.status = OrderStatus.VALIDATED
        order.validated_by = actor.actor_id
        order.validated_at = now

        append_report(
            snapshot, ReportKind.EXPENSE, reference, order.total_amount,
            description=f"Order {order.id} from {order.supplier}",
        )
        append_action(snapshot, ActionType.ORDER_VALIDATE, actor, {
            "order_id": order.id,
            "supplier": order.supplier,
            "line_items": received,
            "total_amount": order.total_amount,
        })
    logger.info("Order %s validated for tenant %s (%d line items)", order_id, tenant_id, len(received))
    return order


def cancel_order(ledger: TenantLedger, tenant_id: str, order_id: int, actor: Actor) -> Order:
    with ledger.transaction(tenant_id) as snapshot:
        order = _get_order_or_404(snapshot, order_id)
        _require_pending(order)
        order.status = OrderStatus.CANCELLED
        order.cancelled_by = actor.actor_id
        order.cancelled_at = datetime.now(timezone.utc)
        append_action(snapshot, ActionType.ORDER_CANCEL, actor, {
            "order_id": order.id,
            "supplier": order.supplier,
            "total_amount": order.total_amount,
            "reason": "manual cancellation",
        })
    return order


def get_order(ledger: TenantLedger, tenant_id: str, order_id: int) -> Order:
    return _get_order_or_404(ledger.read(tenant_id), order_id)


def list_orders(ledger: TenantLedger, tenant_id: str, status: OrderStatus | None = None) -> list[Order]:
    orders = ledger.read(tenant_id).orders
    if status:
        orders = [o for o in orders if o.status == status]
    return sorted(orders, key=lambda o: o.created_at, reverse=True)
