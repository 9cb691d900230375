from datetime import datetime
from sqlalchemy import Column, String, DateTime
from digital_humans.core.database import Base

class BaseModel(Base):
    """Abstract base: string primary key plus creation/update timestamps."""
    __abstract__ = True

    id = Column(String(64), primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
