"""Domain errors raised by the auth flow and repositories.

Each error carries the HTTP status it maps to; rollcall.errors turns them into
the `{message, data: null}` envelope.
"""


class AuthFlowError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationFailedError(AuthFlowError):
    default_message = "Invalid request"


class MissingFieldsError(ValidationFailedError):
    default_message = "Please fill all fields."


class PasswordMismatchError(ValidationFailedError):
    default_message = "Passwords do not match."


class AlreadyRegisteredError(AuthFlowError):
    default_message = "User already registered. Please log in."


class ConflictError(AuthFlowError):
    default_message = "A record with these details already exists."


class NotFoundError(AuthFlowError):
    default_message = "Not found"


class AccountNotFoundError(NotFoundError):
    default_message = "User not registered. Please sign up."


class TokenNotFoundError(NotFoundError):
    default_message = "Token not found or already used"


class InvalidCodeError(AuthFlowError):
    default_message = "Invalid or expired code"


class InvalidCredentialsError(AuthFlowError):
    default_message = "Invalid login credentials."


class RateLimitedError(AuthFlowError):
    status_code = 429

    def __init__(self, wait_minutes: int, message: str | None = None):
        self.wait_minutes = wait_minutes
        super().__init__(
            message
            or f"Please wait {wait_minutes} more minute(s) before requesting a new code."
        )

    @property
    def retry_after_seconds(self) -> int:
        return self.wait_minutes * 60


class UnauthenticatedError(AuthFlowError):
    status_code = 401
    default_message = "Not authorized"


class MissingTokenError(UnauthenticatedError):
    default_message = "No refresh token"


class TokenExpiredError(UnauthenticatedError):
    default_message = "Token has expired"


class InvalidTokenError(UnauthenticatedError):
    default_message = "Invalid token"


class TokenNotRecognizedError(UnauthenticatedError):
    default_message = "Refresh token not recognized"


class ForbiddenError(AuthFlowError):
    status_code = 403
    default_message = "Forbidden: insufficient permissions"
