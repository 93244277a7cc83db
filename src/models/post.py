"""Post model."""

from sqlalchemy import Column, ForeignKey, Integer, String, Text

from src.database import Base
from src.models.enums import PostCategory
from src.models.mixins import TimestampMixin


class Post(Base, TimestampMixin):
    """Blog post with a thumbnail image, owned by its creator."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    category = Column(
        String(50),
        nullable=False,
        default=PostCategory.UNCATEGORIZED.value,
        server_default=PostCategory.UNCATEGORIZED.value,
        index=True,
    )
    description = Column(Text, nullable=False)
    thumbnail = Column(String(255), nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
