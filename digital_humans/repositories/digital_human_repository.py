from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from .base import BaseRepository
from digital_humans.models.digital_human import DigitalHuman

class DigitalHumanRepository(BaseRepository[DigitalHuman]):
    def __init__(self):
        super().__init__(DigitalHuman)

    def _newest_first(self, query):
        return query.order_by(DigitalHuman.updated_at.desc(), DigitalHuman.created_at.desc())

    def list_all(self, db: Session) -> List[DigitalHuman]:
        return self._newest_first(db.query(DigitalHuman)).all()

    def list_for_user(self, db: Session, user_id: str) -> List[DigitalHuman]:
        return self._newest_first(
            db.query(DigitalHuman).filter(DigitalHuman.user_id == user_id)
        ).all()

    def list_public(self, db: Session, limit: int = 50) -> List[DigitalHuman]:
        return self._newest_first(
            db.query(DigitalHuman).filter(DigitalHuman.is_public.is_(True))
        ).limit(limit).all()

    def list_visible(self, db: Session, user_id: str) -> List[DigitalHuman]:
        """Public bots plus the user's own."""
        return self._newest_first(
            db.query(DigitalHuman).filter(
                or_(DigitalHuman.is_public.is_(True), DigitalHuman.user_id == user_id)
            )
        ).all()

    def search(self, db: Session, query: str, user_id: Optional[str] = None) -> List[DigitalHuman]:
        pattern = f"%{query}%"
        q = db.query(DigitalHuman).filter(
            or_(
                DigitalHuman.name.ilike(pattern),
                DigitalHuman.personality.ilike(pattern),
                DigitalHuman.prompt.ilike(pattern),
            )
        )
        if user_id:
            q = q.filter(or_(DigitalHuman.is_public.is_(True), DigitalHuman.user_id == user_id))
        else:
            q = q.filter(DigitalHuman.is_public.is_(True))
        return self._newest_first(q).all()

    def update_owned(self, db: Session, id: str, user_id: str, values: Dict[str, Any]) -> int:
        """Conditional update; the ownership check and the write are one statement.

        Returns the number of rows changed (0 when the bot is missing or not owned).
        """
        values = dict(values)
        values["updated_at"] = datetime.utcnow()
        changed = db.query(DigitalHuman).filter(
            DigitalHuman.id == id,
            DigitalHuman.user_id == user_id,
        ).update(values, synchronize_session=False)
        db.commit()
        return changed

    def delete_owned(self, db: Session, id: str, user_id: str) -> int:
        """Conditional delete; sessions and messages go with it via ON DELETE CASCADE."""
        deleted = db.query(DigitalHuman).filter(
            DigitalHuman.id == id,
            DigitalHuman.user_id == user_id,
        ).delete(synchronize_session=False)
        db.commit()
        return deleted

digital_human_repository = DigitalHumanRepository()
