from __future__ import annotations

from datetime import datetime  # noqa: TCH003
from uuid import UUID  # noqa: TCH003

from pydantic import Field, field_validator

from embedlam.core.models.base import AppBaseModel
from embedlam.core.models.tag import Tag  # noqa: TCH001


class TagCreate(AppBaseModel):
    label: str = Field(min_length=1, max_length=50, description="Tag label")
    color_index: int = Field(default=0, ge=0, description="Palette slot used by clients")

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Tag label must not be blank")
        return stripped


class TagRead(AppBaseModel):
    id: UUID
    label: str
    color_index: int
    centroid_models: list[str]
    created_at: datetime

    @classmethod
    def from_tag(cls, tag: Tag) -> TagRead:
        return cls(
            id=tag.id,
            label=tag.label,
            color_index=tag.color_index,
            centroid_models=list(tag.avg_embeddings),
            created_at=tag.created_at,
        )
