"""
Order lifecycle service.

Creates, edits, pays, cancels and moves orders while keeping stock levels,
table occupancy and order totals consistent. Each public operation runs as
one unit of work on the given session: every precondition is read (rows
locked FOR UPDATE) and every write happens inside it, or nothing is
persisted. Callers get an OperationResult instead of an exception; change
notifications go out only after the commit.
"""
import logging
import uuid
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from restopos.database import unit_of_work
from restopos.models import Product, Order, OrderItem, OrderStatus, Table
from restopos.exceptions import (
    PosError, ValidationError, NotFoundError, ConflictError,
    InsufficientStockError, InternalError
)
from restopos.services.stock_ledger import StockLedger
from restopos.services.table_tracker import TableAvailabilityTracker
from restopos.services.business_snapshot import freeze, snapshot_for, compute_tax
from restopos.services.payment_settlement import PaymentRequest, settle
from restopos.services.settings_service import DatabaseSettingsProvider
from restopos.services.notifier import get_notifier
from restopos.services.result import OperationResult
from restopos.services.metrics_service import record_order_operation
from restopos.utils.number_format import parse_money, parse_quantity, round_money, MAX_AMOUNT, MAX_QUANTITY

logger = logging.getLogger(__name__)

StatusMessages = Dict[OrderStatus, str]


def generate_order_number(now: Optional[datetime] = None) -> str:
    """ORD-YYYYMMDD-HHMMSS-XXXX (random suffix keeps same-second orders unique)."""
    now = now or datetime.now()
    return f"ORD-{now:%Y%m%d}-{now:%H%M%S}-{uuid.uuid4().hex[:4].upper()}"


# =====================================================
# PUBLIC OPERATIONS
# =====================================================

def create_order(
    session,
    table_id: int,
    items: list,
    user_id: Optional[int] = None,
    customer_note: Optional[str] = None,
    discount=0,
    settings_provider=None,
    notifier=None,
) -> OperationResult:
    """
    Open a new PENDING order on an AVAILABLE or RESERVED table.

    Reserves stock for every stock-tracked item and marks the table OCCUPIED.
    """
    settings_provider = settings_provider or DatabaseSettingsProvider(session)

    def work():
        _require_id(table_id, 'Table ID')
        requested = _parse_items(items)
        discount_amount = _parse_discount(discount)

        tracker = TableAvailabilityTracker(session)
        table = tracker.lock(table_id)
        tracker.check_assignable(table)

        lines = _price_lines(session, requested)
        ledger = StockLedger(session, user_id)
        _check_stock(ledger, lines, held={})

        snapshot = freeze(settings_provider)
        subtotal = sum((line['subtotal'] for line in lines), Decimal('0.00'))
        tax, total = _totals(subtotal, discount_amount, snapshot)

        order = Order(
            order_number=generate_order_number(),
            table=table,
            user_id=user_id,
            status=OrderStatus.PENDING,
            customer_note=customer_note,
            subtotal=subtotal,
            tax=tax,
            discount=discount_amount,
            total=total,
            business_snapshot=snapshot.to_json(),
        )
        session.add(order)
        session.flush()

        _add_items(order, lines)
        _reserve_lines(ledger, lines, note=f'Order #{order.order_number}')
        tracker.occupy(table, order.id)

        logger.info(
            f"[ORDERS] Created {order.order_number} on table {table.number}: "
            f"subtotal={subtotal} tax={tax} total={total}"
        )
        return order, [table]

    return _run('create', session, work, notifier)


def update_order(
    session,
    order_id: int,
    items: list,
    user_id: Optional[int] = None,
    customer_note: Optional[str] = None,
    discount=0,
    settings_provider=None,
    notifier=None,
) -> OperationResult:
    """
    Replace the items of a PENDING order.

    Stock already held by the order counts as available for its new items.
    Totals are recomputed with the order's frozen business snapshot.
    """
    settings_provider = settings_provider or DatabaseSettingsProvider(session)

    def work():
        requested = _parse_items(items)
        discount_amount = _parse_discount(discount)

        order = _lock_order(session, order_id)
        _require_pending(order, {
            OrderStatus.COMPLETED: 'Only pending orders can be updated',
            OrderStatus.CANCELLED: 'Only pending orders can be updated',
        })

        # Keep the frozen unit price for products already on the order
        old_prices = {item.product_id: item.price for item in order.items}
        lines = _price_lines(session, requested, frozen_prices=old_prices)

        held: Dict[int, int] = {}
        for item in order.items:
            held[item.product_id] = held.get(item.product_id, 0) + item.quantity

        ledger = StockLedger(session, user_id)
        _check_stock(ledger, lines, held=held)

        snapshot = snapshot_for(order, settings_provider)
        subtotal = sum((line['subtotal'] for line in lines), Decimal('0.00'))
        tax, total = _totals(subtotal, discount_amount, snapshot)

        # Return everything the old items held, then take what the new items need
        note = f'Order #{order.order_number} updated'
        for item in list(order.items):
            if item.product.needs_stock_tracking:
                ledger.release(item.product_id, item.quantity, note=note)
        order.items.clear()
        session.flush()

        _add_items(order, lines)
        _reserve_lines(ledger, lines, note=note)

        order.subtotal = subtotal
        order.tax = tax
        order.discount = discount_amount
        order.total = total
        order.customer_note = customer_note
        order.updated_at = datetime.now()

        logger.info(f"[ORDERS] Updated {order.order_number}: subtotal={subtotal} tax={tax} total={total}")
        return order, []

    return _run('update', session, work, notifier)


def cancel_order(session, order_id: int, user_id: Optional[int] = None, notifier=None) -> OperationResult:
    """Cancel a PENDING order, returning its stock and freeing its table."""

    def work():
        order = _lock_order(session, order_id)
        _require_pending(order, {
            OrderStatus.COMPLETED: 'Cannot cancel completed order',
            OrderStatus.CANCELLED: 'Order is already cancelled',
        })

        order.status = OrderStatus.CANCELLED
        order.updated_at = datetime.now()
        session.flush()

        ledger = StockLedger(session, user_id)
        for item in order.items:
            if item.product.needs_stock_tracking:
                ledger.release(item.product_id, item.quantity, note=f'Order #{order.order_number} cancelled')

        tracker = TableAvailabilityTracker(session)
        table = tracker.lock(order.table_id, include_inactive=True)
        tracker.release(table, order.id)

        logger.info(f"[ORDERS] Cancelled {order.order_number}, table {table.number} released")
        return order, [table]

    return _run('cancel', session, work, notifier)


def pay_order(session, order_id: int, payment, user_id: Optional[int] = None, notifier=None) -> OperationResult:
    """
    Settle a PENDING order and free its table.

    Stock is not touched: it was reserved when the items were ordered.
    """

    def work():
        request = payment if isinstance(payment, PaymentRequest) else PaymentRequest.from_dict(payment)

        order = _lock_order(session, order_id)
        _require_pending(order, {
            OrderStatus.COMPLETED: 'Order is already completed',
            OrderStatus.CANCELLED: 'Cannot pay a cancelled order',
        })

        settlement = settle(request, order.total)
        tender = settlement.tender

        order.status = OrderStatus.COMPLETED
        order.payment_method = settlement.payment_method
        order.currency = tender.currency
        order.paid_usd = tender.paid_usd
        order.paid_riel = tender.paid_riel
        order.split_bill = settlement.split_bill
        order.split_details = settlement.split_json
        order.mixed_payments = settlement.mixed_payments
        order.payment_details = settlement.mixed_json
        order.nested_payments = settlement.nested_payments
        order.mixed_currency = settlement.mixed_currency
        order.split_mixed_currency = settlement.split_mixed_currency
        order.completed_at = datetime.now()
        order.updated_at = order.completed_at
        session.flush()

        tracker = TableAvailabilityTracker(session)
        table = tracker.lock(order.table_id, include_inactive=True)
        tracker.release(table, order.id)

        logger.info(
            f"[ORDERS] Paid {order.order_number} by user {user_id}: {settlement.payment_method} "
            f"{tender.currency.value} usd={tender.paid_usd} riel={tender.paid_riel}"
        )
        return order, [table]

    return _run('pay', session, work, notifier)


def reassign_table(session, order_id: int, new_table_id: int, user_id: Optional[int] = None, notifier=None) -> OperationResult:
    """Move a PENDING order to another table."""

    def work():
        _require_id(new_table_id, 'Table ID')
        order = _lock_order(session, order_id)
        _require_pending(order, {
            OrderStatus.COMPLETED: 'Only pending orders can change table',
            OrderStatus.CANCELLED: 'Only pending orders can change table',
        })
        if order.table_id == new_table_id:
            raise ValidationError('Order is already assigned to this table')

        # Lock both tables in id order so two opposite moves cannot deadlock
        tracker = TableAvailabilityTracker(session)
        locked = {}
        for tid in sorted([order.table_id, new_table_id]):
            locked[tid] = tracker.lock(tid, include_inactive=(tid == order.table_id))
        old_table, new_table = locked[order.table_id], locked[new_table_id]
        if not new_table.is_active:
            raise NotFoundError(f'Table {new_table_id} not found')

        tracker.check_assignable(new_table, order.id)

        order.table = new_table
        order.updated_at = datetime.now()
        session.flush()

        tracker.release(old_table, order.id)
        tracker.occupy(new_table, order.id)

        logger.info(
            f"[ORDERS] Moved {order.order_number} by user {user_id} "
            f"from table {old_table.number} to table {new_table.number}"
        )
        return order, [old_table, new_table]

    return _run('reassign_table', session, work, notifier)


# =====================================================
# READ HELPERS
# =====================================================

def get_order(session, order_id: int) -> Order:
    order = session.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError('Order not found')
    return order


def list_orders(
    session,
    status: Optional[OrderStatus] = None,
    table_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = 1,
    per_page: int = 20,
) -> Tuple[List[Order], int]:
    """Orders newest first, with filters and pagination. Returns (orders, total)."""
    query = session.query(Order)
    if status:
        query = query.filter(Order.status == status)
    if table_id:
        query = query.filter(Order.table_id == table_id)
    if start:
        query = query.filter(Order.created_at >= start)
    if end:
        query = query.filter(Order.created_at <= end)

    total = query.count()
    page = max(int(page), 1)
    orders = (
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return orders, total


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _run(operation: str, session, work: Callable, notifier=None) -> OperationResult:
    """Run ``work`` in one unit of work and convert its outcome to an OperationResult."""
    try:
        with unit_of_work(session):
            order, tables = work()
    except InternalError as e:
        logger.exception(f"[ORDERS] {operation} aborted: {e.message}")
        record_order_operation(operation, e.kind)
        return OperationResult.failure(e)
    except PosError as e:
        logger.info(f"[ORDERS] {operation} rejected ({e.kind}): {e.message}")
        record_order_operation(operation, e.kind)
        return OperationResult.failure(e)
    except Exception as e:
        logger.exception(f"[ORDERS] {operation} failed, transaction rolled back: {e}")
        record_order_operation(operation, 'internal')
        return OperationResult.failure(InternalError())

    record_order_operation(operation, 'ok')
    _broadcast(notifier or get_notifier(), operation, order, tables)
    return OperationResult.success(order)


def _broadcast(notifier, action: str, order: Order, tables: List[Table]) -> None:
    """Post-commit notification; failures are logged and dropped."""
    try:
        for table in tables:
            notifier.notify_table_changed(table.to_dict())
        notifier.notify_order_changed({
            'type': 'order_update',
            'action': action,
            'order': order.to_dict(),
        })
    except Exception as e:
        logger.warning(f"[NOTIFY] Could not broadcast {action} for order {order.id}: {e}")


def _require_id(value, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{label} is required')


def _lock_order(session, order_id: int) -> Order:
    order = session.query(Order).filter(Order.id == order_id).with_for_update().first()
    if not order:
        raise NotFoundError('Order not found')
    return order


def _require_pending(order: Order, messages: StatusMessages) -> None:
    """Accept only PENDING orders; terminal states get the operation's own message."""
    if order.status.can_transition(OrderStatus.PENDING):
        return
    raise ConflictError(
        messages.get(order.status, f'Order {order.order_number} is {order.status.value}'),
        payload={'order_status': order.status.value},
    )


def _parse_items(items) -> 'OrderedDict[int, int]':
    """Validate the item payload and merge duplicate products (product_id -> quantity)."""
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError('At least one item is required')

    requested: 'OrderedDict[int, int]' = OrderedDict()
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError('Each item must be an object')
        product_id = raw.get('productId', raw.get('product_id'))
        if isinstance(product_id, bool):
            raise ValidationError('Product ID is required')
        try:
            product_id = int(product_id)
        except (TypeError, ValueError):
            raise ValidationError('Product ID is required')
        try:
            quantity = parse_quantity(raw.get('quantity'))
        except ValueError as e:
            raise ValidationError(str(e))
        requested[product_id] = requested.get(product_id, 0) + quantity
        if requested[product_id] > MAX_QUANTITY:
            raise ValidationError(f'Quantity for product {product_id} must not exceed {MAX_QUANTITY}')
    return requested


def _parse_discount(discount) -> Decimal:
    try:
        amount = round_money(parse_money(discount if discount is not None else 0))
    except ValueError as e:
        raise ValidationError(f'Invalid discount: {e}')
    if amount > MAX_AMOUNT:
        raise ValidationError(f'Invalid discount: must not exceed {MAX_AMOUNT}')
    return amount


def _price_lines(session, requested: Dict[int, int], frozen_prices: Optional[Dict[int, Decimal]] = None) -> List[dict]:
    """Load products and price each requested line."""
    frozen_prices = frozen_prices or {}
    products = session.query(Product).filter(Product.id.in_(list(requested.keys()))).all()
    products_dict = {p.id: p for p in products}

    lines = []
    for product_id, quantity in requested.items():
        product = products_dict.get(product_id)
        if not product or not product.is_active:
            raise ValidationError(f'Product {product_id} not found or inactive')

        price = frozen_prices.get(product_id, product.price)
        try:
            subtotal = round_money(Decimal(price) * quantity)
        except ValueError:
            subtotal = None
        if subtotal is None or subtotal > MAX_AMOUNT:
            raise ValidationError(f'Quantity {quantity} of {product.name} is too large')

        lines.append({
            'product': product,
            'product_id': product_id,
            'quantity': quantity,
            'price': price,
            'subtotal': subtotal,
        })
    return lines


def _check_stock(ledger: StockLedger, lines: List[dict], held: Dict[int, int]) -> None:
    """Every tracked line must fit in current stock plus what the order already holds."""
    tracked = [line for line in lines if line['product'].needs_stock_tracking]
    levels = ledger.lock_levels(line['product_id'] for line in tracked)

    for line in tracked:
        available = levels.get(line['product_id'], 0) + held.get(line['product_id'], 0)
        if available < line['quantity']:
            raise InsufficientStockError(line['product'].name, line['quantity'], available)


def _totals(subtotal: Decimal, discount: Decimal, snapshot) -> Tuple[Decimal, Decimal]:
    tax = compute_tax(subtotal, snapshot)
    if subtotal + tax > MAX_AMOUNT:
        raise ValidationError('Order amount is too large')
    if discount > subtotal + tax:
        raise ValidationError('Discount cannot exceed the order amount')
    return tax, round_money(subtotal + tax - discount)


def _add_items(order: Order, lines: List[dict]) -> None:
    for line in lines:
        order.items.append(OrderItem(
            product_id=line['product_id'],
            quantity=line['quantity'],
            price=line['price'],
            subtotal=line['subtotal'],
        ))


def _reserve_lines(ledger: StockLedger, lines: List[dict], note: str) -> None:
    for line in lines:
        if line['product'].needs_stock_tracking:
            ledger.reserve(line['product_id'], line['quantity'], note=note)
