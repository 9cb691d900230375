from typing import Optional
from pydantic import Field, EmailStr
from .base import BaseSchema, TimestampMixin

class RegisterRequest(BaseSchema):
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)

class LoginRequest(BaseSchema):
    email: str
    password: str

class TokenRequest(BaseSchema):
    token: str

class UserResponse(BaseSchema, TimestampMixin):
    id: str
    username: str
    email: Optional[str] = None
    is_guest: bool = False

class AuthResponse(BaseSchema):
    success: bool = True
    token: str
    user: UserResponse

class VerifyResponse(BaseSchema):
    success: bool = True
    user: UserResponse
