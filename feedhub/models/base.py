"""Base model class for all stored entities."""

import uuid
from datetime import datetime

import pendulum
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return pendulum.now("UTC")


def new_id() -> str:
    """Opaque, stable primary key."""
    return str(uuid.uuid4())


class DBModel(BaseModel):
    """Base model for all stored records."""

    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")

    class Config:
        """Pydantic config."""

        from_attributes = True
        frozen = True
