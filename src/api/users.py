"""User API endpoints: registration, login, profiles and avatars."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_identity, get_file_intake
from src.config import get_settings
from src.database import get_db
from src.errors import APIError
from src.models.user import User
from src.schemas.user import (
    MIN_PASSWORD_LENGTH,
    AvatarResponse,
    LoginResponse,
    MessageResponse,
    RegisterResponse,
    UserEdit,
    UserLogin,
    UserRegister,
    UserResponse,
    UserSummary,
)
from src.services.auth import (
    TokenIdentity,
    authenticate_user,
    create_access_token,
    create_user,
    get_password_hash,
    get_user_by_email,
    normalize_email,
    verify_password,
)
from src.services.uploads import FileIntake

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: Annotated[Session, Depends(get_db)],
):
    """Register a new user."""
    if get_user_by_email(db, user_data.email):
        raise APIError.validation("Email already exists.")

    if len(user_data.password) < MIN_PASSWORD_LENGTH:
        raise APIError.validation(
            f"Password should be at least {MIN_PASSWORD_LENGTH} characters."
        )

    if user_data.password != user_data.password2:
        raise APIError.validation("Passwords do not match")

    try:
        user = create_user(db, user_data.name, user_data.email, user_data.password)
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise APIError.validation("Email already exists.") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("User registration failed")
        raise APIError.validation("User registration failed.") from e

    logger.info(f"Registered user {user.id}")
    return RegisterResponse(message="New user registered", user=UserSummary.model_validate(user))


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: UserLogin,
    db: Annotated[Session, Depends(get_db)],
):
    """Login with email and password.

    Unknown email and wrong password produce the same response.
    """
    user = authenticate_user(db, credentials.email, credentials.password)

    if not user:
        logger.info("Rejected login attempt")
        raise APIError.validation("Invalid credentials")

    token = create_access_token(user.id, user.name)
    return LoginResponse(token=token, id=user.id, name=user.name)


@router.get("/", response_model=list[UserResponse])
async def get_authors(
    db: Annotated[Session, Depends(get_db)],
):
    """List all users."""
    try:
        return db.query(User).order_by(User.id).all()
    except SQLAlchemyError as e:
        logger.exception("Failed to list users")
        raise APIError.server("Failed to retrieve authors") from e


@router.patch("/change-avatar", response_model=AvatarResponse)
async def change_avatar(
    identity: Annotated[TokenIdentity, Depends(get_current_identity)],
    db: Annotated[Session, Depends(get_db)],
    intake: Annotated[FileIntake, Depends(get_file_intake)],
    avatar: Annotated[UploadFile | None, File()] = None,
):
    """Replace the current user's avatar.

    The previous avatar file is removed only after the new one is saved.
    """
    data = await intake.read_upload(avatar, get_settings().max_avatar_bytes, "avatar")

    user = db.query(User).filter(User.id == identity.id).first()
    if user is None:
        raise APIError.not_found("User not found")

    previous = user.avatar
    with intake.stored(avatar.filename, data) as filename:
        try:
            user.avatar = filename
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Failed to save avatar for user {user.id}")
            raise APIError.server("Failed to change avatar") from e

    intake.discard(previous)
    return AvatarResponse(avatar=filename)


@router.patch("/edit-user", response_model=MessageResponse)
async def edit_user(
    user_data: UserEdit,
    identity: Annotated[TokenIdentity, Depends(get_current_identity)],
    db: Annotated[Session, Depends(get_db)],
):
    """Update the current user's name, email and password."""
    user = db.query(User).filter(User.id == identity.id).first()
    if user is None:
        raise APIError.not_found("User not found")

    email_owner = get_user_by_email(db, user_data.email)
    if email_owner and email_owner.id != user.id:
        raise APIError.validation("Email already in use")

    if not verify_password(user_data.current_password, user.password_hash):
        raise APIError.validation("Current password is incorrect")

    if user_data.new_password != user_data.confirm_new_password:
        raise APIError.validation("New passwords do not match")

    if len(user_data.new_password) < MIN_PASSWORD_LENGTH:
        raise APIError.validation(
            f"Password should be at least {MIN_PASSWORD_LENGTH} characters."
        )

    try:
        user.name = user_data.name
        user.email = normalize_email(user_data.email)
        user.password_hash = get_password_hash(user_data.new_password)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise APIError.validation("Email already in use") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to update user {user.id}")
        raise APIError.server("Failed to update user details") from e

    return MessageResponse(message="User details updated successfully")


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: Annotated[Session, Depends(get_db)],
):
    """Get a user profile."""
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise APIError.not_found("User not found")
    return user
