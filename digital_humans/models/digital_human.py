from sqlalchemy import Column, String, Text, Float, Integer, Boolean, JSON, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from .base import BaseModel

class DigitalHuman(BaseModel):
    """A chatbot persona owned by one user"""
    __tablename__ = "digital_humans"

    user_id = Column(String(64), ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String(200), nullable=False)
    prompt = Column(Text, nullable=False)  # system prompt
    rules = Column(JSON, nullable=False, default=list)  # ordered list of rule strings
    personality = Column(Text, nullable=False, default="")
    temperature = Column(Float, nullable=False, default=0.7)
    max_tokens = Column(Integer, nullable=False, default=1000)
    is_public = Column(Boolean, nullable=False, default=False, index=True)

    sessions = relationship(
        "ChatSession",
        back_populates="digital_human",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("temperature >= 0 AND temperature <= 1", name="ck_digital_humans_temperature"),
        CheckConstraint("max_tokens > 0", name="ck_digital_humans_max_tokens"),
    )
