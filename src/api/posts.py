"""Post API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_identity, get_file_intake
from src.config import get_settings
from src.database import get_db
from src.errors import APIError
from src.models.enums import PostCategory
from src.models.post import Post
from src.models.user import User
from src.schemas.post import MIN_DESCRIPTION_LENGTH, PostResponse
from src.services.auth import TokenIdentity
from src.services.uploads import FileIntake

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])


def parse_category(value: str | None, default: str) -> str:
    """Validate a category name, falling back to a default when omitted."""
    if value is None or not value.strip():
        return default
    value = value.strip()
    if value not in PostCategory.values():
        raise APIError.validation(f"{value} is not a valid category")
    return value


def validate_post_fields(title: str | None, description: str | None) -> tuple[str, str]:
    """Check the text fields every post needs."""
    title = (title or "").strip()
    description = (description or "").strip()
    if not title or not description:
        raise APIError.validation("Please fill in all the fields")
    if len(description) < MIN_DESCRIPTION_LENGTH:
        raise APIError.validation(
            f"Description should be at least {MIN_DESCRIPTION_LENGTH} characters."
        )
    return title, description


def get_post_or_404(db: Session, post_id: int) -> Post:
    """Get a post by id."""
    post = db.query(Post).filter(Post.id == post_id).first()
    if post is None:
        raise APIError.not_found("Post not found")
    return post


def adjust_post_count(db: Session, user_id: int, delta: int) -> None:
    """Atomically shift a user's denormalized post count."""
    db.query(User).filter(User.id == user_id).update(
        {User.posts: User.posts + delta}, synchronize_session=False
    )


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    identity: Annotated[TokenIdentity, Depends(get_current_identity)],
    db: Annotated[Session, Depends(get_db)],
    intake: Annotated[FileIntake, Depends(get_file_intake)],
    title: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    thumbnail: Annotated[UploadFile | None, File()] = None,
):
    """Create a post with a thumbnail image."""
    if thumbnail is None or not thumbnail.filename:
        raise APIError.validation("Please fill all the fields and choose a thumbnail")
    title, description = validate_post_fields(title, description)
    category = parse_category(category, PostCategory.UNCATEGORIZED.value)

    data = await intake.read_upload(thumbnail, get_settings().max_thumbnail_bytes, "thumbnail")

    with intake.stored(thumbnail.filename, data) as filename:
        try:
            post = Post(
                title=title,
                category=category,
                description=description,
                thumbnail=filename,
                creator_id=identity.id,
            )
            db.add(post)
            adjust_post_count(db, identity.id, 1)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Failed to create post for user {identity.id}")
            raise APIError.validation("Post couldn't be created") from e

    db.refresh(post)
    logger.info(f"User {identity.id} created post {post.id}")
    return post


@router.get("/", response_model=list[PostResponse])
async def get_posts(
    db: Annotated[Session, Depends(get_db)],
):
    """List all posts, most recently updated first."""
    try:
        return db.query(Post).order_by(Post.updated_at.desc(), Post.id.desc()).all()
    except SQLAlchemyError as e:
        logger.exception("Failed to list posts")
        raise APIError.server("An error occurred while fetching posts") from e


@router.get("/categories/{category}", response_model=list[PostResponse])
async def get_category_posts(
    category: str,
    db: Annotated[Session, Depends(get_db)],
):
    """List posts in a category, newest first."""
    try:
        return (
            db.query(Post)
            .filter(Post.category == category)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception(f"Failed to list posts in category {category}")
        raise APIError.server("An error occurred while fetching category posts") from e


@router.get("/users/{user_id}", response_model=list[PostResponse])
async def get_user_posts(
    user_id: int,
    db: Annotated[Session, Depends(get_db)],
):
    """List posts written by a user, newest first."""
    try:
        return (
            db.query(Post)
            .filter(Post.creator_id == user_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception(f"Failed to list posts for user {user_id}")
        raise APIError.server("An error occurred while fetching user posts") from e


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    db: Annotated[Session, Depends(get_db)],
):
    """Get a specific post."""
    return get_post_or_404(db, post_id)


@router.patch("/{post_id}", response_model=PostResponse)
async def edit_post(
    post_id: int,
    identity: Annotated[TokenIdentity, Depends(get_current_identity)],
    db: Annotated[Session, Depends(get_db)],
    intake: Annotated[FileIntake, Depends(get_file_intake)],
    title: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    thumbnail: Annotated[UploadFile | None, File()] = None,
):
    """Update a post (creator only), optionally replacing its thumbnail."""
    title, description = validate_post_fields(title, description)

    post = get_post_or_404(db, post_id)
    if post.creator_id != identity.id:
        raise APIError.forbidden("Unauthorized")

    category = parse_category(category, post.category)

    if thumbnail is None or not thumbnail.filename:
        try:
            post.title = title
            post.category = category
            post.description = description
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Failed to update post {post_id}")
            raise APIError.server("Could not update post") from e
        db.refresh(post)
        return post

    data = await intake.read_upload(thumbnail, get_settings().max_thumbnail_bytes, "thumbnail")
    previous = post.thumbnail
    with intake.stored(thumbnail.filename, data) as filename:
        try:
            post.title = title
            post.category = category
            post.description = description
            post.thumbnail = filename
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Failed to update post {post_id}")
            raise APIError.server("Could not update post") from e

    intake.discard(previous)
    db.refresh(post)
    logger.info(f"User {identity.id} replaced thumbnail of post {post_id}")
    return post


@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    identity: Annotated[TokenIdentity, Depends(get_current_identity)],
    db: Annotated[Session, Depends(get_db)],
    intake: Annotated[FileIntake, Depends(get_file_intake)],
) -> str:
    """Delete a post (creator only).

    The thumbnail goes first, then the record, then the creator's count,
    so a failed file removal leaves the post intact.
    """
    post = get_post_or_404(db, post_id)
    if post.creator_id != identity.id:
        raise APIError.forbidden("You do not have permission to delete this post")

    try:
        intake.remove(post.thumbnail)
    except OSError as e:
        logger.error(f"Failed to delete thumbnail of post {post_id}: {e}")
        raise APIError.server("Error deleting the thumbnail") from e

    try:
        db.delete(post)
        adjust_post_count(db, identity.id, -1)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to delete post {post_id}")
        raise APIError.server("An error occurred while deleting the post") from e

    logger.info(f"User {identity.id} deleted post {post_id}")
    return f"Post {post_id} deleted successfully."
