import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from digital_humans.models.chat import ChatSession, ChatMessage
from digital_humans.utils.ids import new_id

logger = logging.getLogger("chat_repository")

class ChatRepository:
    def get_session(self, db: Session, user_id: str, digital_human_id: str) -> Optional[ChatSession]:
        return db.query(ChatSession).filter(
            ChatSession.user_id == user_id,
            ChatSession.digital_human_id == digital_human_id,
        ).first()

    def get_or_create_session(self, db: Session, user_id: str, digital_human_id: str) -> ChatSession:
        existing = self.get_session(db, user_id, digital_human_id)
        if existing:
            return existing

        db_session = ChatSession(id=new_id("session"), user_id=user_id, digital_human_id=digital_human_id)
        db.add(db_session)
        try:
            db.commit()
        except IntegrityError:
            # Another handler created the pair first; the unique constraint kept it single
            db.rollback()
            logger.info("Session for user %s / bot %s already created, re-reading", user_id, digital_human_id)
            existing = self.get_session(db, user_id, digital_human_id)
            if existing is None:
                raise
            return existing
        db.refresh(db_session)
        return db_session

    def create_message(self, db: Session, session_id: str, role: str, content: str) -> ChatMessage:
        db_message = ChatMessage(
            chat_session_id=session_id,
            role=role,
            content=content,
            timestamp=datetime.utcnow(),
        )
        db.add(db_message)
        db.query(ChatSession).filter(ChatSession.id == session_id).update(
            {"updated_at": db_message.timestamp}, synchronize_session=False
        )
        db.commit()
        db.refresh(db_message)
        return db_message

    def get_messages(self, db: Session, session_id: str, limit: int = None) -> List[ChatMessage]:
        """Messages oldest first; with ``limit``, only the most recent ``limit`` of them."""
        if limit is None:
            return db.query(ChatMessage).filter(
                ChatMessage.chat_session_id == session_id
            ).order_by(ChatMessage.timestamp.asc(), ChatMessage.id.asc()).all()

        recent = db.query(ChatMessage).filter(
            ChatMessage.chat_session_id == session_id
        ).order_by(ChatMessage.timestamp.desc(), ChatMessage.id.desc()).limit(limit).all()
        return list(reversed(recent))

    def delete_messages(self, db: Session, session_id: str) -> int:
        deleted = db.query(ChatMessage).filter(
            ChatMessage.chat_session_id == session_id
        ).delete(synchronize_session=False)
        db.commit()
        return deleted

    def list_sessions_for_user(self, db: Session, user_id: str) -> List[ChatSession]:
        return db.query(ChatSession).filter(
            ChatSession.user_id == user_id
        ).order_by(ChatSession.updated_at.desc()).all()

    def count_sessions(self, db: Session) -> int:
        return db.query(func.count(ChatSession.id)).scalar() or 0

chat_repository = ChatRepository()
