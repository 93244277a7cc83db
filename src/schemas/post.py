"""Post schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

MIN_DESCRIPTION_LENGTH = 12


class PostResponse(BaseModel):
    """Post response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    category: str
    description: str
    thumbnail: str
    creator_id: int
    created_at: datetime
    updated_at: datetime
