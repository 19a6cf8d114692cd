"""Row-level access to users and session tokens."""

from datetime import datetime

from sqlalchemy import case
from sqlalchemy.orm import Session

from app.models.token import Token
from app.models.user import User

USER_LOOKUP_FIELDS = {"id", "email", "activation_token", "password_reset_token"}


class UserStore:
    """CRUD over user rows plus the session's transaction boundary."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def begin(self) -> None:
        """Open a transaction unless the session already has one."""
        if not self.db.in_transaction():
            self.db.begin()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def insert_user(self, user: User) -> User:
        """Stage a user inside the open transaction. Not durable until commit."""
        self.db.add(user)
        self.db.flush()
        return user

    def find_user_by(self, field: str, value) -> User | None:
        """Exact-match lookup on one of USER_LOOKUP_FIELDS."""
        if field not in USER_LOOKUP_FIELDS:
            raise ValueError(f"Unsupported user lookup field '{field}'")
        if value is None:
            return None
        return self.db.query(User).filter(getattr(User, field) == value).first()

    def update_user(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete_user(self, user: User) -> None:
        self.db.delete(user)
        self.db.commit()


class TokenStore:
    """CRUD over token rows. Every write is committed on its own."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def insert_token(self, token: str, user_id: int, last_used_at: datetime) -> Token:
        row = Token(token=token, user_id=user_id, last_used_at=last_used_at)
        self.db.add(row)
        self.db.commit()
        return row

    def find_owner(self, token: str) -> int | None:
        return self.db.query(Token.user_id).filter(Token.token == token).scalar()

    def refresh_token(self, token: str, last_used_at: datetime, not_before: datetime) -> bool:
        """Refresh last_used_at in one conditional UPDATE.

        Only a row still present and last used at or after ``not_before`` is
        refreshed. The timestamp never moves backwards. Returns False when no
        row matched, e.g. the token was deleted or swept concurrently.
        """
        updated = (
            self.db.query(Token)
            .filter(Token.token == token, Token.last_used_at >= not_before)
            .update(
                {Token.last_used_at: case((Token.last_used_at < last_used_at, last_used_at), else_=Token.last_used_at)},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated == 1

    def delete_token(self, token: str) -> int:
        deleted = self.db.query(Token).filter(Token.token == token).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def delete_tokens_for_user(self, user_id: int) -> int:
        deleted = self.db.query(Token).filter(Token.user_id == user_id).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def delete_tokens_older_than(self, cutoff: datetime) -> int:
        deleted = self.db.query(Token).filter(Token.last_used_at < cutoff).delete(synchronize_session=False)
        self.db.commit()
        return deleted
