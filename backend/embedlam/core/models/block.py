from __future__ import annotations

from uuid import UUID  # noqa: TCH003

from pydantic import Field, field_validator

from .base import EmbeddingMap, Entity

MAX_LABEL_LENGTH = 255


class Block(Entity):
    """A saved unit of text with one embedding per provider."""

    label: str = Field(min_length=1, max_length=MAX_LABEL_LENGTH, description="Display label")
    text: str = Field(min_length=1, description="Raw text that was embedded")
    tag_ids: set[UUID] = Field(default_factory=set, description="Tags carried by this block")

    # A provider registered after the block was saved has no entry until refreshed
    embeddings: EmbeddingMap = Field(
        default_factory=dict,
        description="Embedding per provider model identifier",
    )

    @field_validator("embeddings")
    @classmethod
    def validate_embeddings(cls, v: EmbeddingMap) -> EmbeddingMap:
        """Reject empty vectors; absence is expressed by a missing key."""
        for model_id, vector in v.items():
            if not vector:
                raise ValueError(f"Embedding for {model_id} must not be empty")
        return v

    def has_tag(self, tag_id: UUID) -> bool:
        return tag_id in self.tag_ids
