from sqlalchemy import Column, String, Boolean
from .base import BaseModel

class User(BaseModel):
    __tablename__ = "users"

    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=True)  # guests have none
    password_hash = Column(String(255), nullable=True)  # guests have none
    is_guest = Column(Boolean, default=False, nullable=False)
