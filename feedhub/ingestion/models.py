"""Data models for ingestion."""

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class FeedFormat(str, Enum):
    """Detected syndication format."""

    RSS = "rss"
    ATOM = "atom"


class NormalizedEntry(BaseModel):
    """Parsed feed entry."""

    title: str = Field(..., description="Entry title")
    url: str = Field(..., description="Absolute entry URL")
    content: str = Field("", description="Sanitized content or summary")
    published_at: datetime = Field(..., description="Publication date (UTC)")
    guid: str = Field(..., description="Explicit id/guid, or the URL")


class NormalizedFeed(BaseModel):
    """Result of parsing one feed document."""

    format: FeedFormat = Field(..., description="Source format")
    title: str = Field("Unknown Feed", description="Feed title")
    description: str = Field("", description="Feed description/subtitle")
    link: str = Field("", description="Canonical site link")
    entries: List[NormalizedEntry] = Field(default_factory=list, description="Retained entries")
