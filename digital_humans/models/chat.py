from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from digital_humans.core.database import Base
from .base import BaseModel

class ChatSession(BaseModel):
    """Conversation thread between one user and one digital human"""
    __tablename__ = "chat_sessions"

    user_id = Column(String(64), ForeignKey("users.id"), index=True, nullable=False)
    digital_human_id = Column(
        String(64), ForeignKey("digital_humans.id", ondelete="CASCADE"), index=True, nullable=False
    )

    digital_human = relationship("DigitalHuman", back_populates="sessions")
    messages = relationship(
        "ChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChatMessage.id",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "digital_human_id", name="uq_chat_sessions_user_bot"),
    )

class ChatMessage(Base):
    """One turn in a session; append-only"""
    __tablename__ = "chat_messages"

    # Integer id doubles as the tie-breaker for equal timestamps
    id = Column(Integer, primary_key=True, autoincrement=True)
    chat_session_id = Column(
        String(64), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False
    )
    role = Column(String(20), nullable=False)  # user | assistant
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    session = relationship("ChatSession", back_populates="messages")

    __table_args__ = (
        CheckConstraint("role IN ('user','assistant')", name="ck_chat_messages_role"),
        Index("ix_chat_messages_session_ts", "chat_session_id", "timestamp"),
    )
