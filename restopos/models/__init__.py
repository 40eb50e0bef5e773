"""Models package - exports all SQLAlchemy models."""
from restopos.models.product import Product
from restopos.models.stock import Stock
from restopos.models.stock_log import StockLog, StockLogType
from restopos.models.table import Table, TableStatus
from restopos.models.order import Order, OrderStatus, Currency
from restopos.models.order_item import OrderItem
from restopos.models.business_setting import BusinessSetting

__all__ = [
    'Product', 'Stock', 'StockLog', 'StockLogType',
    'Table', 'TableStatus',
    'Order', 'OrderStatus', 'Currency', 'OrderItem',
    'BusinessSetting',
]
