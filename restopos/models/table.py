"""Dining table model."""
from sqlalchemy import Column, Integer, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from restopos.database import Base, BigIntPK
import enum


class TableStatus(enum.Enum):
    """Table status enum."""
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    MAINTENANCE = "MAINTENANCE"


class Table(Base):
    """Dining table. Occupancy is managed by TableAvailabilityTracker."""

    __tablename__ = 'dining_table'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    number = Column(Integer, nullable=False, unique=True)
    capacity = Column(Integer, nullable=False, default=4)
    status = Column(Enum(TableStatus, name='table_status'), nullable=False, default=TableStatus.AVAILABLE)
    is_active = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'number': self.number,
            'capacity': self.capacity,
            'status': self.status.value,
        }

    def __repr__(self):
        return f"<Table(id={self.id}, number={self.number}, status={self.status.value})>"
