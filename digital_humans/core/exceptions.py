"""Application error taxonomy.

Every error carries a human-readable ``message``, a machine-readable ``code``
(what the realtime gateway puts in its ``error`` event) and the HTTP status
used by the REST controllers.
"""


class AppError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None, code: str = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code}


class AuthRequired(AppError):
    code = "AUTH_REQUIRED"
    status_code = 401
    default_message = "User not authenticated"


class InvalidCredentials(AppError):
    code = "AUTH_ERROR"
    status_code = 401
    default_message = "Invalid email or password"


class DuplicateUser(AppError):
    code = "AUTH_ERROR"
    status_code = 400
    default_message = "User with this username or email already exists"


class InvalidToken(AppError):
    code = "AUTH_ERROR"
    status_code = 401
    default_message = "Invalid or expired token"


class UserNotFound(AppError):
    code = "AUTH_ERROR"
    status_code = 401
    default_message = "User not found"


class PermissionDenied(AppError):
    code = "PERMISSION_DENIED"
    status_code = 403
    default_message = "Permission denied: You can only modify your own digital humans"


class NotFound(AppError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Digital human not found"


class BotNotFound(NotFound):
    code = "HUMAN_NOT_FOUND"


class GenerationError(AppError):
    code = "GENERATION_ERROR"
    status_code = 502
    default_message = "Failed to generate digital human"


class MessageError(AppError):
    code = "MESSAGE_ERROR"
    status_code = 502
    default_message = "Failed to process message"


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid request payload"
