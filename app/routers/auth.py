"""Authentication and password reset API endpoints."""

from fastapi import APIRouter, Body, Depends, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_bearer_token
from app.exceptions import AuthenticationFailure, ForbiddenFailure, TokenNotFoundFailure, ValidationFailure
from app.rate_limit import limiter
from app.schemas.auth import LoginRequest, LoginResponse, PasswordResetRequest, PasswordUpdateRequest
from app.schemas.user import MessageResponse, validation_errors
from app.services.mailer import EmailDispatcher, get_email_dispatcher
from app.services.password_reset import get_password_reset_service
from app.services.tokens import get_token_service
from app.services.users import get_user_service

router = APIRouter(prefix="/api/1.0", tags=["Authentication"])


@router.post("/auth", response_model=LoginResponse)
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """Authenticate with email and password and receive a session token."""
    if not body.email or not body.password:
        raise AuthenticationFailure()

    user_service = get_user_service()
    result = user_service.authenticate(db, body.email, body.password)

    if not result.success:
        if result.inactive:
            raise ForbiddenFailure(result.error)
        raise AuthenticationFailure(result.error)

    user = result.user
    token = user_service.login(db, user)
    return LoginResponse(id=user.id, username=user.username, token=token, image=user.image)


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db)) -> dict:
    """Revoke the bearer token, if any. Always succeeds."""
    get_token_service().revoke(db, get_bearer_token(request))
    return {}


@router.post("/user/password", response_model=MessageResponse)
@limiter.limit("3/minute")
def request_password_reset(
    request: Request,
    payload: dict = Body(default={}),
    db: Session = Depends(get_db),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
) -> MessageResponse:
    """Mail a password reset secret to a registered address."""
    try:
        body = PasswordResetRequest.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailure(validation_errors(e)) from None

    get_password_reset_service().request_reset(db, mailer, body.email)
    return MessageResponse(message="Check your e-mail for resetting your password")


@router.put("/user/password", response_model=MessageResponse)
@limiter.limit("5/minute")
def update_password(
    request: Request,
    payload: dict = Body(default={}),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Set a new password with a reset secret. Unknown secrets are rejected before the password is checked."""
    service = get_password_reset_service()
    reset_token = payload.get("passwordResetToken")
    if not isinstance(reset_token, str) or service.find_by_reset_token(db, reset_token) is None:
        raise TokenNotFoundFailure()

    try:
        body = PasswordUpdateRequest.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailure(validation_errors(e)) from None

    service.consume_reset(db, body.password_reset_token, body.password)
    return MessageResponse(message="Password updated")
