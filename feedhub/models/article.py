"""Article model for ingested feed entries."""

from datetime import datetime

from pydantic import Field

from .base import DBModel, new_id


class Article(DBModel):
    """Article model."""

    id: str = Field(default_factory=new_id, description="Primary key")
    feed_id: str = Field(..., description="Owning feed")
    title: str = Field(..., description="Article title")
    content: str = Field("", description="Sanitized content")
    url: str = Field(..., description="Origin URL")
    published_at: datetime = Field(..., description="Publication timestamp")
    guid: str = Field(..., description="Natural key, unique per feed")
