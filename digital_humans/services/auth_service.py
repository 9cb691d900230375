import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from digital_humans.core.exceptions import DuplicateUser, InvalidCredentials, UserNotFound
from digital_humans.core.security import create_access_token, decode_access_token, hash_password, verify_password
from digital_humans.models.user import User
from digital_humans.repositories.user_repository import user_repository
from digital_humans.schemas.user import AuthResponse, RegisterRequest, UserResponse
from digital_humans.utils.ids import new_id

logger = logging.getLogger("auth_service")

class AuthService:
    def _issue(self, user: User) -> AuthResponse:
        return AuthResponse(token=create_access_token(user.id), user=UserResponse.model_validate(user))

    def register(self, db: Session, data: RegisterRequest) -> AuthResponse:
        email = str(data.email).lower()
        if user_repository.exists(db, data.username, email):
            raise DuplicateUser()

        try:
            user = user_repository.create(db, {
                "id": new_id("user"),
                "username": data.username,
                "email": email,
                "password_hash": hash_password(data.password),
                "is_guest": False,
            })
        except IntegrityError:
            # Lost the race against a concurrent registration
            db.rollback()
            raise DuplicateUser()

        logger.info("User registered: %s (%s)", user.username, user.id)
        return self._issue(user)

    def login(self, db: Session, email: str, password: str) -> AuthResponse:
        """Unknown email and wrong password both fail with InvalidCredentials."""
        user = user_repository.get_by_email(db, (email or "").strip().lower())
        if user is None or not verify_password(password or "", user.password_hash):
            raise InvalidCredentials()
        logger.info("User logged in: %s", user.id)
        return self._issue(user)

    def verify_token(self, db: Session, token: str) -> UserResponse:
        user_id = decode_access_token(token)
        # Fresh read: the token only carries the id
        user = user_repository.get_by_id(db, user_id)
        if user is None:
            raise UserNotFound()
        return UserResponse.model_validate(user)

    def refresh_token(self, db: Session, token: str) -> AuthResponse:
        user = self.verify_token(db, token)
        return AuthResponse(token=create_access_token(user.id), user=user)

    def authenticate_guest(self, db: Session) -> AuthResponse:
        guest_id = new_id("guest")
        user = user_repository.create(db, {
            "id": guest_id,
            "username": guest_id[:18],
            "email": None,
            "password_hash": None,
            "is_guest": True,
        })
        logger.info("Guest user created: %s", user.id)
        return self._issue(user)

auth_service = AuthService()
