from __future__ import annotations

from datetime import datetime  # noqa: TCH003
from uuid import UUID  # noqa: TCH003

from pydantic import Field, field_validator

from embedlam.core.models.base import AppBaseModel
from embedlam.core.models.block import Block  # noqa: TCH001


class BlockCreate(AppBaseModel):
    text: str = Field(min_length=1, description="Text to save and embed")
    label: str | None = Field(
        default=None,
        max_length=255,
        description="Display label; `$x` is replaced by the first unused number",
    )
    tag_ids: list[UUID] = Field(default_factory=list, description="Tags to apply")

    @field_validator("label")
    @classmethod
    def normalize_label(cls, v: str | None) -> str | None:
        if v is None:
            return v
        stripped = v.strip()
        return stripped if stripped else None


class BlockRead(AppBaseModel):
    id: UUID
    label: str
    text: str
    tag_ids: list[UUID]
    embedding_models: list[str]
    created_at: datetime

    @classmethod
    def from_block(cls, block: Block) -> BlockRead:
        return cls(
            id=block.id,
            label=block.label,
            text=block.text,
            tag_ids=sorted(block.tag_ids, key=str),
            embedding_models=list(block.embeddings),
            created_at=block.created_at,
        )
