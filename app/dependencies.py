"""Authentication and pagination dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import AuthenticationFailure, ForbiddenFailure
from app.services.tokens import get_token_service

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 20


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: int
    token: str


@dataclass
class Pagination:
    page: int
    size: int


def get_bearer_token(request: Request) -> str | None:
    """Extract the token from an ``Authorization: Bearer`` header."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> CurrentUser | None:
    """Resolve the bearer token to a user. Missing, unknown or expired tokens yield an anonymous request."""
    token = get_bearer_token(request)
    if not token:
        return None

    try:
        user_id = get_token_service().verify(db, token)
    except AuthenticationFailure:
        return None

    return CurrentUser(user_id=user_id, token=token)


def require_account_owner(user_id: int, current: CurrentUser | None, message: str) -> CurrentUser:
    """Raise ForbiddenFailure unless the caller is the owner of the account."""
    if current is None or current.user_id != user_id:
        raise ForbiddenFailure(message)
    return current


def _as_int(value: str | None) -> int | None:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def get_pagination(page: str | None = None, size: str | None = None) -> Pagination:
    """Clamp page/size query parameters. Bad values fall back to page 0, size 10."""
    page_number = _as_int(page)
    page_size = _as_int(size)

    if page_number is None or page_number < 0:
        page_number = 0
    if page_size is None or page_size < 1 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE

    return Pagination(page=page_number, size=page_size)
