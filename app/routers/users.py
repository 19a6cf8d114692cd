"""User registration, activation and profile API endpoints."""

from fastapi import APIRouter, Body, Depends, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, Pagination, get_current_user, get_pagination, require_account_owner
from app.exceptions import ValidationFailure
from app.rate_limit import limiter
from app.schemas.user import (
    MessageResponse,
    RegisterRequest,
    UserPageResponse,
    UserResponse,
    UserUpdateRequest,
    validation_errors,
)
from app.services.images import ProfileImageStore, get_image_store
from app.services.mailer import EmailDispatcher, get_email_dispatcher
from app.services.registration import get_registration_service
from app.services.users import get_user_service

router = APIRouter(prefix="/api/1.0/users", tags=["Users"])


@router.post("", response_model=MessageResponse)
@limiter.limit("5/minute")
def register(
    request: Request,
    payload: dict = Body(default={}),
    db: Session = Depends(get_db),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
) -> MessageResponse:
    """Create an inactive account and mail its activation token."""
    errors: dict[str, str] = {}
    body = None
    try:
        body = RegisterRequest.model_validate(payload)
    except ValidationError as e:
        errors = validation_errors(e)

    email = payload.get("email")
    if "email" not in errors and isinstance(email, str) and get_user_service().email_in_use(db, email):
        errors["email"] = "E-mail in use"

    if errors:
        ordered = {field: errors[field] for field in ("username", "email", "password") if field in errors}
        raise ValidationFailure(ordered)

    get_registration_service().register(db, mailer, body.username, body.email, body.password)
    return MessageResponse(message="User created")


@router.post("/token/{token}", response_model=MessageResponse)
def activate(token: str, db: Session = Depends(get_db)) -> MessageResponse:
    """Activate an account with its activation token."""
    get_registration_service().activate(db, token)
    return MessageResponse(message="Account is activated")


@router.get("", response_model=UserPageResponse)
def list_users(
    pagination: Pagination = Depends(get_pagination),
    current: CurrentUser | None = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserPageResponse:
    """List active users, excluding the caller."""
    page = get_user_service().list_users(
        db, pagination.page, pagination.size, exclude_id=current.user_id if current else None
    )
    return UserPageResponse(
        content=[UserResponse.model_validate(u) for u in page.content],
        page=page.page,
        size=page.size,
        total_pages=page.total_pages,
    )


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)) -> UserResponse:
    """Get an active user by id."""
    return UserResponse.model_validate(get_user_service().get_user(db, user_id))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    payload: dict = Body(default={}),
    current: CurrentUser | None = Depends(get_current_user),
    db: Session = Depends(get_db),
    images: ProfileImageStore = Depends(get_image_store),
) -> UserResponse:
    """Update the caller's username and profile image."""
    require_account_owner(user_id, current, "You are not authorized to update user")

    errors: dict[str, str] = {}
    body = None
    try:
        body = UserUpdateRequest.model_validate(payload)
    except ValidationError as e:
        errors = validation_errors(e)

    image = None
    image_b64 = payload.get("image")
    if image_b64:
        image = images.decode(image_b64) if isinstance(image_b64, str) else None
        if image is not None and not images.is_within_size(image):
            errors["image"] = "Your profile image cannot be bigger than 2MB"
        elif image is None or not images.is_supported(image):
            errors["image"] = "Only JPEG or PNG files are allowed"

    if errors:
        raise ValidationFailure(errors)

    user = get_user_service().update_user(db, images, user_id, body.username, image)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    current: CurrentUser | None = Depends(get_current_user),
    db: Session = Depends(get_db),
    images: ProfileImageStore = Depends(get_image_store),
) -> dict:
    """Delete the caller's account and every session token it owns."""
    require_account_owner(user_id, current, "You are not authorized to delete user")
    get_user_service().delete_user(db, images, user_id)
    return {}
