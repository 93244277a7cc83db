"""FastAPI dependencies for authentication, database and uploads."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.config import get_settings
from src.database import get_db
from src.errors import APIError
from src.models.user import User
from src.services.auth import TokenIdentity, identity_from_token
from src.services.uploads import FileIntake

# auto_error is off so a missing header is reported as our own 401
security = HTTPBearer(auto_error=False)


def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> TokenIdentity:
    """Get the identity of the caller from the bearer token.

    No ``Authorization: Bearer <token>`` header is a 401; a token that
    fails signature or expiry checks is a 403. A valid token whose user
    no longer exists is a 401.
    """
    # HTTPBearer matches the scheme case-insensitively; only "Bearer" is accepted
    if credentials is None or credentials.scheme != "Bearer" or not credentials.credentials:
        raise APIError.unauthorized("Unauthorized. No token provided")

    identity = identity_from_token(credentials.credentials)
    if identity is None:
        raise APIError.forbidden("Unauthorized. Invalid token")

    if db.query(User.id).filter(User.id == identity.id).first() is None:
        raise APIError.unauthorized("User not found")

    return identity


def get_file_intake() -> FileIntake:
    """Get the file intake rooted at the configured upload directory."""
    return FileIntake(get_settings().upload_dir)
