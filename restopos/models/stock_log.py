"""Stock Log model."""
from sqlalchemy import Column, BigInteger, Integer, DateTime, Text, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restopos.database import Base, BigIntPK
import enum


class StockLogType(enum.Enum):
    """Stock log type enum. The sign of a movement is implied by its type."""
    ADD = "ADD"
    REMOVE = "REMOVE"
    ADJUST = "ADJUST"


class StockLog(Base):
    """Stock Log (append-only audit trail of stock movements)."""

    __tablename__ = 'stock_log'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    stock_id = Column(BigInteger, ForeignKey('stock.id'), nullable=False, index=True)
    user_id = Column(BigInteger, nullable=True)
    type = Column(Enum(StockLogType, name='stock_log_type'), nullable=False)
    quantity = Column(Integer, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    stock = relationship('Stock', back_populates='logs')

    def to_dict(self):
        return {
            'id': self.id,
            'stock_id': self.stock_id,
            'user_id': self.user_id,
            'type': self.type.value,
            'quantity': self.quantity,
            'note': self.note,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<StockLog(id={self.id}, type={self.type.value}, quantity={self.quantity})>"
