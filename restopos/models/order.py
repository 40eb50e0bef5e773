"""Order model."""
from sqlalchemy import Column, BigInteger, String, Boolean, Numeric, DateTime, Text, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restopos.database import Base, BigIntPK
import enum
import json


class OrderStatus(enum.Enum):
    """Order status enum. COMPLETED and CANCELLED are terminal."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self):
        return self is not OrderStatus.PENDING

    def can_transition(self, target):
        """PENDING may move to itself (edits), COMPLETED or CANCELLED; terminal states never move."""
        if self is not OrderStatus.PENDING:
            return False
        return target in (OrderStatus.PENDING, OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class Currency(enum.Enum):
    """Tender currency enum."""
    USD = "USD"
    RIEL = "RIEL"


class Order(Base):
    """Order (a table's open or closed bill)."""

    __tablename__ = 'orders'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_number = Column(String(40), nullable=False, unique=True, index=True)
    table_id = Column(BigInteger, ForeignKey('dining_table.id'), nullable=False, index=True)
    user_id = Column(BigInteger, nullable=True)
    status = Column(Enum(OrderStatus, name='order_status'), nullable=False, default=OrderStatus.PENDING)
    customer_note = Column(Text, nullable=True)

    # Totals (total = round(subtotal + tax - discount, 2))
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False, default=0)

    # Payment
    currency = Column(Enum(Currency, name='order_currency'), nullable=False, default=Currency.USD)
    payment_method = Column(String(20), nullable=True)
    paid_usd = Column(Numeric(10, 2), nullable=True)
    paid_riel = Column(Numeric(14, 2), nullable=True)
    split_bill = Column(Boolean, nullable=False, default=False)
    split_details = Column(Text, nullable=True)
    mixed_payments = Column(Boolean, nullable=False, default=False)
    payment_details = Column(Text, nullable=True)

    # Reporting-only flags
    nested_payments = Column(Boolean, nullable=False, default=False)
    mixed_currency = Column(Boolean, nullable=False, default=False)
    split_mixed_currency = Column(Boolean, nullable=False, default=False)

    # Frozen tax configuration captured at creation
    business_snapshot = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    table = relationship('Table')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan', order_by='OrderItem.id')

    @property
    def snapshot(self):
        """Decoded BusinessSnapshot, or None for legacy orders."""
        if not self.business_snapshot:
            return None
        from restopos.services.business_snapshot import BusinessSnapshot
        return BusinessSnapshot.from_json(self.business_snapshot)

    @property
    def split_breakdown(self):
        """Decoded split entries (tuple of SplitEntry)."""
        if not self.split_details:
            return ()
        from restopos.services.payment_settlement import SplitEntry
        return tuple(SplitEntry.from_dict(e) for e in json.loads(self.split_details))

    @property
    def payment_breakdown(self):
        """Decoded mixed-payment entries (tuple of MixedPaymentEntry)."""
        if not self.payment_details:
            return ()
        from restopos.services.payment_settlement import MixedPaymentEntry
        return tuple(MixedPaymentEntry.from_dict(e) for e in json.loads(self.payment_details))

    def to_dict(self):
        return {
            'id': self.id,
            'order_number': self.order_number,
            'table_id': self.table_id,
            'table_number': self.table.number if self.table else None,
            'user_id': self.user_id,
            'status': self.status.value,
            'customer_note': self.customer_note,
            'subtotal': str(self.subtotal),
            'tax': str(self.tax),
            'discount': str(self.discount),
            'total': str(self.total),
            'currency': self.currency.value if self.currency else None,
            'payment_method': self.payment_method,
            'paid_usd': str(self.paid_usd) if self.paid_usd is not None else None,
            'paid_riel': str(self.paid_riel) if self.paid_riel is not None else None,
            'split_bill': self.split_bill,
            'split_details': json.loads(self.split_details) if self.split_details else None,
            'mixed_payments': self.mixed_payments,
            'payment_details': json.loads(self.payment_details) if self.payment_details else None,
            'nested_payments': self.nested_payments,
            'mixed_currency': self.mixed_currency,
            'split_mixed_currency': self.split_mixed_currency,
            'business_snapshot': json.loads(self.business_snapshot) if self.business_snapshot else None,
            'items': [item.to_dict() for item in self.items],
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self):
        return f"<Order(id={self.id}, number={self.order_number}, status={self.status.value}, total={self.total})>"
