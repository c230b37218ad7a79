from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from .database import Base


class StoredValue(Base):
    """Namespaced key-value entry (preferences, calculation history)."""
    __tablename__ = "stored_values"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)  # JSON text
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
