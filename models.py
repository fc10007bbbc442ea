from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime

from database import Base

class SessionRecord(Base):
    """Server-side token record keyed by the opaque session id."""
    __tablename__ = "poster_sessions"

    session_id = Column(String, primary_key=True)
    data = Column(Text, nullable=False)  # JSON-serialized TokenRecord
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
