from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, Field


class AppBaseModel(PydanticBaseModel):
    """Base model for all domain models."""

    model_config = ConfigDict(
        from_attributes=True,
        extra="forbid",
        populate_by_name=True,
    )


class TimestampedModel(AppBaseModel):
    """Base model with a creation timestamp."""

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# Provider model identifier -> embedding vector
EmbeddingMap = dict[str, list[float]]


class Entity(TimestampedModel):
    """Timestamped model addressed by a UUID."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
