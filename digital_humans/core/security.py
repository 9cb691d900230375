from datetime import datetime, timedelta
from typing import Optional

import bcrypt
import jwt

from .config import settings
from .exceptions import InvalidToken

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    if not isinstance(password, str):
        raise ValueError("password must be a string")
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password with a random per-password salt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, stored_hash: Optional[str]) -> bool:
    if not stored_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), stored_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store
        return False


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed token embedding the user id, valid for ``jwt_expire_days`` by default."""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.jwt_expire_days)
    now = datetime.utcnow()
    payload = {
        "userId": user_id,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> str:
    """Return the user id embedded in ``token``; raises InvalidToken on any failure."""
    if not token or not isinstance(token, str):
        raise InvalidToken()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise InvalidToken("Token has expired")
    except jwt.InvalidTokenError:
        raise InvalidToken()

    user_id = payload.get("userId")
    if not user_id:
        raise InvalidToken()
    return user_id
