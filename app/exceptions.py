"""Account service failure kinds.

Each failure carries the HTTP status the API boundary maps it to. Services
raise these; ``main.py`` renders them as ``{path, timestamp, message}``.
"""


class AccountError(Exception):
    """Base class for expected account failures."""

    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationFailure(AccountError):
    """Credentials or bearer token missing, unknown or expired."""

    status_code = 401
    default_message = "Incorrect credentials"


class ForbiddenFailure(AccountError):
    """Caller is known but not allowed to do this."""

    status_code = 403
    default_message = "Forbidden"


class InvalidTokenFailure(AccountError):
    """Activation secret not recognized."""

    status_code = 400
    default_message = "This account is either active or the token is invalid"


class TokenNotFoundFailure(AccountError):
    """Password reset secret not recognized."""

    status_code = 403
    default_message = "You are not authorized to update your password. Please follow the password reset steps again."


class NotFoundFailure(AccountError):
    status_code = 404
    default_message = "Not found"


class EmailDispatchFailure(AccountError):
    """Mail collaborator rejected the message or the transport failed."""

    status_code = 502
    default_message = "E-mail failure"


class ValidationFailure(AccountError):
    """Field level validation errors, keyed by field name."""

    status_code = 400
    default_message = "Validation failure"

    def __init__(self, errors: dict[str, str], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = errors
