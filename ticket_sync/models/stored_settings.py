"""Stored settings model"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from ticket_sync.models.base import Base


class StoredSettings(Base):
    """Named key/value record holding a JSON settings document"""

    __tablename__ = "stored_settings"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    value = Column(Text, nullable=True)  # JSON object
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<StoredSettings(name='{self.name}')>"
