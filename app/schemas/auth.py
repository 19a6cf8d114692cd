"""Pydantic schemas for authentication and password reset endpoints."""

from pydantic import BaseModel, Field, field_validator

from app.schemas.user import check_email, check_password


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class LoginResponse(BaseModel):
    id: int
    username: str
    token: str
    image: str | None


class PasswordResetRequest(BaseModel):
    email: str | None = Field(default=None, validate_default=True)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str | None) -> str:
        return check_email(value)


class PasswordUpdateRequest(BaseModel):
    password_reset_token: str | None = Field(default=None, alias="passwordResetToken")
    password: str | None = Field(default=None, validate_default=True)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str | None) -> str:
        return check_password(value)
