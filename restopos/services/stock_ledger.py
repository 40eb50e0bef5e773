"""
Stock ledger - the only writer of Stock.quantity.

Every quantity mutation appends exactly one StockLog row. Sufficiency is
the caller's concern: ``reserve`` never fails because stock is short, it
floors the counter at zero instead.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from restopos.models import Product, Stock, StockLog, StockLogType
from restopos.exceptions import ValidationError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_NOTES = {
    StockLogType.ADD: 'Stock added',
    StockLogType.REMOVE: 'Stock removed',
    StockLogType.ADJUST: 'Stock adjusted',
}


def _require_magnitude(qty) -> int:
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise ValidationError(f'Stock quantity must be a positive whole number, got {qty!r}')
    return qty


class StockLedger:
    """Append-only, floor-clamped inventory counter bound to one session and acting user."""

    def __init__(self, session, user_id: Optional[int] = None):
        self.session = session
        self.user_id = user_id

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _stock_for_product(self, product_id: int, lock: bool = True) -> Stock:
        """Return the stock row of a stock-tracked product."""
        product = self.session.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError(f'Product {product_id} not found')
        if not product.needs_stock_tracking:
            raise ValidationError(
                f'Stock can only be managed for products that need stock tracking ({product.name})'
            )

        query = self.session.query(Stock).filter(Stock.product_id == product_id)
        if lock:
            query = query.with_for_update()
        stock = query.first()
        if not stock:
            raise NotFoundError(f'No stock record for product "{product.name}"')
        return stock

    def _stock_by_id(self, stock_id: int) -> Stock:
        stock = self.session.query(Stock).filter(Stock.id == stock_id).with_for_update().first()
        if not stock:
            raise NotFoundError(f'Stock {stock_id} not found')
        if not stock.product.needs_stock_tracking:
            raise ValidationError(
                f'Stock can only be managed for products that need stock tracking ({stock.product.name})'
            )
        return stock

    def lock_levels(self, product_ids: Iterable[int]) -> Dict[int, int]:
        """Lock stock rows FOR UPDATE and return current levels keyed by product id."""
        product_ids = list(set(product_ids))
        if not product_ids:
            return {}

        rows = (
            self.session.query(Stock)
            .filter(Stock.product_id.in_(product_ids))
            .order_by(Stock.id)
            .with_for_update()
            .all()
        )
        return {row.product_id: row.quantity for row in rows}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _append_log(self, stock: Stock, log_type: StockLogType, qty: int, note: Optional[str]) -> StockLog:
        entry = StockLog(
            stock_id=stock.id,
            user_id=self.user_id,
            type=log_type,
            quantity=qty,
            note=note or DEFAULT_NOTES[log_type],
            created_at=datetime.now(),
        )
        self.session.add(entry)
        return entry

    def reserve(self, product_id: int, qty: int, note: Optional[str] = None) -> Stock:
        """Decrement stock by ``qty``, floored at 0, and log a REMOVE of ``qty``."""
        qty = _require_magnitude(qty)
        stock = self._stock_for_product(product_id)

        old_qty = stock.quantity
        stock.quantity = max(old_qty - qty, 0)
        if old_qty < qty:
            logger.warning(
                f"[STOCK] Reserve of {qty} on product {product_id} exceeded stock {old_qty}; clamped to 0"
            )

        self._append_log(stock, StockLogType.REMOVE, qty, note)
        logger.debug(f"[STOCK] reserve product={product_id} {old_qty}->{stock.quantity}")
        return stock

    def release(self, product_id: int, qty: int, note: Optional[str] = None) -> Stock:
        """Increment stock by ``qty`` and log an ADD of ``qty``."""
        qty = _require_magnitude(qty)
        stock = self._stock_for_product(product_id)

        old_qty = stock.quantity
        stock.quantity = old_qty + qty

        self._append_log(stock, StockLogType.ADD, qty, note)
        logger.debug(f"[STOCK] release product={product_id} {old_qty}->{stock.quantity}")
        return stock

    def set_absolute(self, stock_id: int, qty: int, note: Optional[str] = None) -> Stock:
        """Set stock to ``qty`` and log the delta as ADD or REMOVE."""
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
            raise ValidationError('Quantity must be a non-negative number')
        stock = self._stock_by_id(stock_id)

        old_qty = stock.quantity
        difference = qty - old_qty
        if difference == 0:
            logger.debug(f"[STOCK] set stock={stock_id} unchanged at {qty}, nothing logged")
            return stock
        stock.quantity = qty

        log_type = StockLogType.ADD if difference > 0 else StockLogType.REMOVE
        self._append_log(stock, log_type, abs(difference), note or f'Stock adjusted from {old_qty} to {qty}')

        logger.info(f"[STOCK] set stock={stock_id} {old_qty}->{qty} by user {self.user_id}")
        return stock

    def adjust(self, stock_id: int, log_type: StockLogType, qty: int, note: Optional[str] = None) -> Stock:
        """
        Manual adjustment.

        ADD increments, REMOVE decrements (floored at 0), ADJUST sets the
        absolute level. The log records ``log_type`` with magnitude ``qty``
        (the new level for ADJUST). ADD and REMOVE need a positive quantity.
        """
        if not isinstance(log_type, StockLogType):
            try:
                log_type = StockLogType(str(log_type).upper())
            except ValueError:
                raise ValidationError('Type must be ADD, REMOVE, or ADJUST')
        if log_type is StockLogType.ADJUST:
            if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
                raise ValidationError('Quantity must be a non-negative number')
        else:
            qty = _require_magnitude(qty)

        stock = self._stock_by_id(stock_id)
        old_qty = stock.quantity

        if log_type is StockLogType.ADD:
            new_qty = old_qty + qty
        elif log_type is StockLogType.REMOVE:
            new_qty = old_qty - qty
        else:
            new_qty = qty
        stock.quantity = max(new_qty, 0)

        self._append_log(stock, log_type, qty, note)
        logger.info(
            f"[STOCK] {log_type.value} stock={stock_id} {old_qty}->{stock.quantity} by user {self.user_id}"
        )
        return stock

    def update_min_stock(self, stock_id: int, min_stock: int) -> Stock:
        """Change the low-stock threshold (not a quantity mutation, so no log entry)."""
        if isinstance(min_stock, bool) or not isinstance(min_stock, int) or min_stock < 0:
            raise ValidationError('Minimum stock must be a non-negative number')
        stock = self._stock_by_id(stock_id)
        stock.min_stock = min_stock
        return stock


# =====================================================
# READ HELPERS
# =====================================================

def get_low_stock(session) -> List[Stock]:
    """Stock rows at or below their threshold, tracked products only, emptiest first."""
    return (
        session.query(Stock)
        .join(Product, Product.id == Stock.product_id)
        .filter(
            Product.needs_stock_tracking.is_(True),
            Stock.quantity <= Stock.min_stock,
        )
        .order_by(Stock.quantity.asc(), Stock.id)
        .all()
    )


def get_stock_logs(
    session,
    stock_id: Optional[int] = None,
    log_type: Optional[StockLogType] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = 1,
    per_page: int = 20,
) -> Tuple[List[StockLog], int]:
    """
    Paginated stock log query for tracked products, newest first.

    Returns:
        (logs, total) where total counts every row matching the filters.
    """
    query = (
        session.query(StockLog)
        .join(Stock, Stock.id == StockLog.stock_id)
        .join(Product, Product.id == Stock.product_id)
        .filter(Product.needs_stock_tracking.is_(True))
    )

    if stock_id:
        query = query.filter(StockLog.stock_id == stock_id)
    if log_type:
        query = query.filter(StockLog.type == log_type)
    if start:
        query = query.filter(StockLog.created_at >= start)
    if end:
        query = query.filter(StockLog.created_at <= end)

    total = query.count()
    page = max(int(page), 1)
    logs = (
        query.order_by(StockLog.created_at.desc(), StockLog.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return logs, total
