"""Registration and account activation."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.exceptions import EmailDispatchFailure, InvalidTokenFailure, ValidationFailure
from app.models.user import User
from app.security import hash_password, random_string
from app.services.mailer import EmailDispatcher
from app.services.store import UserStore

logger = logging.getLogger("account_service")


class RegistrationService:
    """Creates inactive users whose row only becomes durable once the activation mail is sent.

    The user insert is staged inside an open transaction, the mail is sent,
    and only then is the transaction committed. When the mail fails the
    staged row is discarded, so a failed attempt leaves no user behind.
    A commit failing after a successful send is not masked.
    """

    def __init__(self, secret_length: int = 16) -> None:
        self.secret_length = secret_length

    def register(self, db: Session, mailer: EmailDispatcher, username: str, email: str, password: str) -> User:
        """Register a user and mail the activation secret.

        Raises EmailDispatchFailure, or ValidationFailure when the e-mail is already taken.
        """
        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            activation_token=random_string(self.secret_length),
            inactive=True,
        )

        store = UserStore(db)
        store.begin()
        try:
            store.insert_user(user)
        except IntegrityError:
            # Lost a race with a concurrent registration for the same address
            store.rollback()
            raise ValidationFailure({"email": "E-mail in use"}) from None

        try:
            mailer.send_activation(email, user.activation_token)
        except Exception as e:
            self.discard(store)
            logger.warning("Registration for %s rolled back: activation mail failed", email)
            if isinstance(e, EmailDispatchFailure):
                raise
            raise EmailDispatchFailure() from e

        store.commit()
        return user

    def discard(self, store: UserStore) -> None:
        """Undo the staged user insert."""
        store.rollback()

    def activate(self, db: Session, token: str) -> User:
        """Consume an activation secret. Raises InvalidTokenFailure if unknown."""
        store = UserStore(db)
        user = store.find_user_by("activation_token", token) if token else None
        if user is None:
            raise InvalidTokenFailure()

        user.inactive = False
        user.activation_token = None
        return store.update_user(user)


_registration_service: RegistrationService | None = None


def get_registration_service() -> RegistrationService:
    """Get singleton registration service instance."""
    global _registration_service
    if _registration_service is None:
        _registration_service = RegistrationService(secret_length=get_settings().SECRET_LENGTH)
    return _registration_service
