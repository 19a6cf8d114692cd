"""Pydantic schemas for user endpoints."""

import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, validate_email
from pydantic_core import PydanticCustomError

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).*$")


def check_username(value: str | None) -> str:
    if value is None or value == "":
        raise PydanticCustomError("username_null", "Username cannot be null")
    if not 4 <= len(value) <= 32:
        raise PydanticCustomError("username_size", "Must have min 4 and max 32 characters")
    return value


def check_email(value: str | None) -> str:
    if value is None or value == "":
        raise PydanticCustomError("email_null", "E-mail cannot be null")
    try:
        _, address = validate_email(value)
    except PydanticCustomError:
        raise PydanticCustomError("email_invalid", "E-mail is not valid") from None
    # validate_email also accepts "Name <address>"; only a bare address is allowed
    if address.lower() != value.lower():
        raise PydanticCustomError("email_invalid", "E-mail is not valid")
    return value


def check_password(value: str | None) -> str:
    if value is None or value == "":
        raise PydanticCustomError("password_null", "Password cannot be null")
    if len(value) < 6:
        raise PydanticCustomError("password_size", "Password must be at least 6 characters")
    if not PASSWORD_PATTERN.match(value):
        raise PydanticCustomError(
            "password_pattern", "Password must have at least 1 uppercase, 1 lowercase letter and 1 number"
        )
    return value


def validation_errors(exc: ValidationError) -> dict[str, str]:
    """Flatten a pydantic ValidationError into {field: message}, first error per field."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "body"
        errors.setdefault(field, error["msg"])
    return errors


class RegisterRequest(BaseModel):
    username: str | None = Field(default=None, validate_default=True)
    email: str | None = Field(default=None, validate_default=True)
    password: str | None = Field(default=None, validate_default=True)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str | None) -> str:
        return check_username(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str | None) -> str:
        return check_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str | None) -> str:
        return check_password(value)


class UserUpdateRequest(BaseModel):
    username: str | None = Field(default=None, validate_default=True)
    image: str | None = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str | None) -> str:
        return check_username(value)


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    image: str | None

    model_config = {"from_attributes": True}


class UserPageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: list[UserResponse]
    page: int
    size: int
    total_pages: int = Field(alias="totalPages")


class MessageResponse(BaseModel):
    message: str
