"""Pydantic schemas for API requests and responses."""

from src.schemas.post import PostResponse
from src.schemas.user import (
    LoginResponse,
    RegisterResponse,
    UserEdit,
    UserLogin,
    UserRegister,
    UserResponse,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserEdit",
    "UserResponse",
    "RegisterResponse",
    "LoginResponse",
    "PostResponse",
]
