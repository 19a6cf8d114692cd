"""Password reset: issue a single-use secret, consume it to set a new password."""

import logging

from sqlalchemy.orm import Session

from app.config import get_settings
from app.exceptions import EmailDispatchFailure, NotFoundFailure, TokenNotFoundFailure
from app.models.user import User
from app.security import hash_password, random_string
from app.services.mailer import EmailDispatcher
from app.services.store import UserStore
from app.services.tokens import TokenService, get_token_service

logger = logging.getLogger("account_service")


class PasswordResetService:
    """Handles reset requests and reset consumption."""

    def __init__(self, token_service: TokenService, secret_length: int = 16) -> None:
        self.token_service = token_service
        self.secret_length = secret_length

    def request_reset(self, db: Session, mailer: EmailDispatcher, email: str) -> None:
        """Persist a fresh reset secret and mail it.

        The secret is committed before the mail is sent and is kept when
        dispatch fails.
        """
        store = UserStore(db)
        user = store.find_user_by("email", email)
        if user is None:
            raise NotFoundFailure("E-mail not found")

        user.password_reset_token = random_string(self.secret_length)
        store.update_user(user)

        try:
            mailer.send_password_reset(email, user.password_reset_token)
        except EmailDispatchFailure:
            logger.warning("Password reset mail to %s failed, reset token kept", email)
            raise
        except Exception as e:
            logger.warning("Password reset mail to %s failed, reset token kept", email)
            raise EmailDispatchFailure() from e

    def find_by_reset_token(self, db: Session, token: str | None) -> User | None:
        if not token:
            return None
        return UserStore(db).find_user_by("password_reset_token", token)

    def consume_reset(self, db: Session, token: str, new_password: str) -> User:
        """Set a new password, reactivate the account and log out every session."""
        user = self.find_by_reset_token(db, token)
        if user is None:
            raise TokenNotFoundFailure()

        user.password_hash = hash_password(new_password)
        user.password_reset_token = None
        user.activation_token = None
        user.inactive = False
        UserStore(db).update_user(user)

        self.token_service.revoke_all(db, user.id)
        return user


_password_reset_service: PasswordResetService | None = None


def get_password_reset_service() -> PasswordResetService:
    """Get singleton password reset service instance."""
    global _password_reset_service
    if _password_reset_service is None:
        _password_reset_service = PasswordResetService(
            get_token_service(),
            secret_length=get_settings().SECRET_LENGTH,
        )
    return _password_reset_service
