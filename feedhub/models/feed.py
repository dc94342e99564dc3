"""Feed model for subscribed syndication sources."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import DBModel, new_id


class Feed(DBModel):
    """Subscribed RSS/Atom source, unique by URL."""

    id: str = Field(default_factory=new_id, description="Primary key")
    url: str = Field(..., description="Feed URL (natural key)")
    title: str = Field(..., description="Feed title")
    description: str = Field("", description="Feed description")
    last_fetched: Optional[datetime] = Field(None, description="Last successful poll")
