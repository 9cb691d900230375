from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional
from .base import BaseRepository
from digital_humans.models.user import User

class UserRepository(BaseRepository[User]):
    def __init__(self):
        super().__init__(User)

    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    def get_by_username(self, db: Session, username: str) -> Optional[User]:
        return db.query(User).filter(User.username == username).first()

    def exists(self, db: Session, username: str, email: Optional[str]) -> bool:
        conditions = [User.username == username]
        if email:
            conditions.append(User.email == email)
        return db.query(User.id).filter(or_(*conditions)).first() is not None

user_repository = UserRepository()
