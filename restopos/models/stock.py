"""Stock model."""
from sqlalchemy import Column, BigInteger, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restopos.database import Base, BigIntPK


class Stock(Base):
    """
    Stock - 1:1 with a stock-tracked Product.

    ``quantity`` is only ever written by ``StockLedger``.
    """

    __tablename__ = 'stock'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False, unique=True)
    quantity = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=10, server_default='10')
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    product = relationship('Product', back_populates='stock')
    logs = relationship('StockLog', back_populates='stock', order_by='StockLog.id')

    @property
    def is_low(self):
        return self.quantity <= self.min_stock

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product_name': self.product.name if self.product else None,
            'quantity': self.quantity,
            'min_stock': self.min_stock,
            'is_low': self.is_low,
        }

    def __repr__(self):
        return f"<Stock(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
