"""Table availability state machine."""
import logging
from typing import Optional

from restopos.models import Table, TableStatus, Order, OrderStatus
from restopos.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ASSIGNABLE_STATUSES = (TableStatus.AVAILABLE, TableStatus.RESERVED)


class TableAvailabilityTracker:
    """
    Guards every table status change.

    AVAILABLE/RESERVED -> OCCUPIED when an order takes the table,
    OCCUPIED -> AVAILABLE when the order is paid, cancelled or moved away.
    A table never goes AVAILABLE while a PENDING order references it.
    """

    def __init__(self, session):
        self.session = session

    def lock(self, table_id: int, include_inactive: bool = False) -> Table:
        """Load a table FOR UPDATE (active tables only unless include_inactive)."""
        table = self.session.query(Table).filter(Table.id == table_id).with_for_update().first()
        if not table or not (table.is_active or include_inactive):
            raise NotFoundError(f'Table {table_id} not found')
        return table

    def active_order_for(self, table_id: int, exclude_order_id: Optional[int] = None) -> Optional[Order]:
        """The PENDING order holding this table, ignoring ``exclude_order_id``."""
        query = self.session.query(Order).filter(
            Order.table_id == table_id,
            Order.status == OrderStatus.PENDING,
        )
        if exclude_order_id is not None:
            query = query.filter(Order.id != exclude_order_id)
        return query.first()

    def check_assignable(self, table: Table, order_id: Optional[int] = None) -> None:
        """Raise ConflictError unless ``table`` can take the order ``order_id``."""
        if table.status is TableStatus.MAINTENANCE:
            raise ConflictError(f'Table {table.number} is under maintenance')

        holder = self.active_order_for(table.id, exclude_order_id=order_id)
        if holder:
            raise ConflictError(
                f'Table {table.number} is already occupied by order {holder.order_number}',
                payload={'order_number': holder.order_number},
            )
        if table.status not in ASSIGNABLE_STATUSES:
            raise ConflictError(f'Table is not available. Current status: {table.status.value}')

    def occupy(self, table: Table, order_id: Optional[int] = None) -> Table:
        self.check_assignable(table, order_id)
        table.status = TableStatus.OCCUPIED
        logger.debug(f"[TABLES] table {table.number} OCCUPIED by order {order_id}")
        return table

    def release(self, table: Table, order_id: int) -> Table:
        """Vacate ``table`` on behalf of ``order_id``."""
        holder = self.active_order_for(table.id, exclude_order_id=order_id)
        if holder:
            raise ConflictError(
                f'Cannot set table {table.number} to AVAILABLE. There is an active order '
                f'({holder.order_number}) for this table.'
            )
        table.status = TableStatus.AVAILABLE
        logger.debug(f"[TABLES] table {table.number} AVAILABLE (released by order {order_id})")
        return table

    def set_status(self, table_id: int, status) -> Table:
        """Manual status change requested by staff."""
        if not isinstance(status, TableStatus):
            try:
                status = TableStatus(str(status).upper())
            except ValueError:
                raise ValidationError('Invalid status')

        table = self.lock(table_id)
        active_order = self.active_order_for(table.id)

        # Only an order takes a table (occupy)
        if status is TableStatus.OCCUPIED and not active_order:
            raise ConflictError(
                f'Table {table.number} can only become OCCUPIED by opening an order on it'
            )

        if status is TableStatus.AVAILABLE and active_order:
            raise ConflictError(
                f'Cannot set table to AVAILABLE. There is an active order ({active_order.order_number}) '
                'for this table. Please complete or cancel the order first.'
            )
        if status in (TableStatus.OCCUPIED, TableStatus.RESERVED) and active_order:
            raise ConflictError(
                f'Table is already occupied by order {active_order.order_number}. '
                'Please complete or cancel the existing order first.'
            )
        if status is TableStatus.MAINTENANCE and active_order:
            raise ConflictError(
                f'Cannot put table {table.number} under maintenance while order '
                f'{active_order.order_number} is open.'
            )

        table.status = status
        logger.info(f"[TABLES] table {table.number} set to {status.value}")
        return table


def change_table_status(session, table_id: int, status, notifier=None) -> Table:
    """Apply a manual status change in its own unit of work and broadcast it."""
    from restopos.database import unit_of_work
    from restopos.services.notifier import get_notifier

    with unit_of_work(session):
        table = TableAvailabilityTracker(session).set_status(table_id, status)

    try:
        (notifier or get_notifier()).notify_table_changed(table.to_dict())
    except Exception as e:
        logger.warning(f"[NOTIFY] Could not broadcast table {table_id} change: {e}")
    return table
