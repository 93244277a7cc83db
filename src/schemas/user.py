"""User and authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

MIN_PASSWORD_LENGTH = 6


class UserRegister(BaseModel):
    """User registration request."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
    password2: str = Field(..., min_length=1, max_length=128)


class UserLogin(BaseModel):
    """User login request."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class UserEdit(BaseModel):
    """Profile edit request. Accepts camelCase or snake_case keys."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr = Field(..., max_length=255)
    current_password: str = Field(..., alias="currentPassword", min_length=1, max_length=128)
    new_password: str = Field(..., alias="newPassword", min_length=1, max_length=128)
    confirm_new_password: str = Field(
        ..., alias="confirmNewPassword", min_length=1, max_length=128
    )


class UserSummary(BaseModel):
    """Minimal user info returned after registration."""

    model_config = ConfigDict(from_attributes=True)

    email: str
    name: str


class RegisterResponse(BaseModel):
    """Registration confirmation."""

    message: str
    user: UserSummary


class LoginResponse(BaseModel):
    """Access token plus the identity it was issued for."""

    token: str
    id: int
    name: str


class UserResponse(BaseModel):
    """Public user information. Never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    avatar: str | None
    posts: int
    created_at: datetime
    updated_at: datetime


class AvatarResponse(BaseModel):
    """Filename of a newly stored avatar."""

    avatar: str


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str
