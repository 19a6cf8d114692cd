"""User login, listing, profile update and account deletion."""

import math
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.exceptions import NotFoundFailure
from app.models.user import User
from app.security import matches
from app.services.images import ProfileImageStore
from app.services.store import UserStore
from app.services.tokens import TokenService, get_token_service


@dataclass
class AuthResult:
    """Result of an authentication attempt."""

    success: bool
    error: str | None = None
    inactive: bool = False
    user: User | None = None


@dataclass
class UserPage:
    """One page of public user records."""

    content: list[User]
    page: int
    size: int
    total_pages: int


class UserService:
    """Handles credential checks, login and profile management."""

    def __init__(self, token_service: TokenService) -> None:
        self.token_service = token_service

    def email_in_use(self, db: Session, email: str) -> bool:
        return UserStore(db).find_user_by("email", email) is not None

    def authenticate(self, db: Session, email: str, password: str) -> AuthResult:
        """Check email and password. Inactive accounts fail after the password check."""
        user = UserStore(db).find_user_by("email", email)
        if not user or not matches(password, user.password_hash):
            return AuthResult(success=False, error="Incorrect credentials")

        if user.inactive:
            return AuthResult(success=False, error="Account is inactive", inactive=True)

        return AuthResult(success=True, user=user)

    def login(self, db: Session, user: User) -> str:
        """Issue a session token for an authenticated user."""
        return self.token_service.issue(db, user.id)

    def list_users(self, db: Session, page: int, size: int, exclude_id: int | None = None) -> UserPage:
        """Active users, excluding the caller, ordered by id."""
        query = db.query(User).filter(User.inactive.is_(False))
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)

        total = query.count()
        rows = query.order_by(User.id).offset(page * size).limit(size).all()
        return UserPage(content=rows, page=page, size=size, total_pages=math.ceil(total / size))

    def get_user(self, db: Session, user_id: int) -> User:
        user = UserStore(db).find_user_by("id", user_id)
        if user is None or user.inactive:
            raise NotFoundFailure("User not found")
        return user

    def update_user(
        self,
        db: Session,
        images: ProfileImageStore,
        user_id: int,
        username: str,
        image: bytes | None = None,
    ) -> User:
        """Update username, replacing the stored profile image when one is given."""
        store = UserStore(db)
        user = store.find_user_by("id", user_id)
        if user is None:
            raise NotFoundFailure("User not found")

        user.username = username
        if image:
            if user.image:
                images.delete(user.image)
            user.image = images.save(image)

        return store.update_user(user)

    def delete_user(self, db: Session, images: ProfileImageStore, user_id: int) -> None:
        """Delete the account, its session tokens and its profile image."""
        store = UserStore(db)
        user = store.find_user_by("id", user_id)
        if user is None:
            return

        self.token_service.revoke_all(db, user_id)
        if user.image:
            images.delete(user.image)
        store.delete_user(user)


_user_service: UserService | None = None


def get_user_service() -> UserService:
    """Get singleton user service instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService(get_token_service())
    return _user_service
