"""Business settings model (backing store of the settings provider)."""
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from restopos.database import Base
import json


class BusinessSetting(Base):
    """One JSON document per settings category ('business', 'system', ...)."""

    __tablename__ = 'business_setting'

    category = Column(String(50), primary_key=True)
    data = Column(Text, nullable=False, default='{}')
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def values(self) -> dict:
        return json.loads(self.data or '{}')

    def __repr__(self):
        return f"<BusinessSetting(category='{self.category}')>"
