"""Keyed relations between users and feeds or articles."""

from typing import Optional

from pydantic import Field

from .base import DBModel, new_id


class Subscription(DBModel):
    """User subscription to a feed."""

    user_id: str = Field(..., description="Subscribing user")
    feed_id: str = Field(..., description="Subscribed feed")


class Like(DBModel):
    """User like on an article."""

    user_id: str
    article_id: str


class Retweet(DBModel):
    """User retweet of an article."""

    user_id: str
    article_id: str
    comment: Optional[str] = None


class Reply(DBModel):
    """User reply under an article."""

    id: str = Field(default_factory=new_id, description="Primary key")
    user_id: str
    article_id: str
    content: str
