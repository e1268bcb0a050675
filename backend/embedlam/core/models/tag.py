from __future__ import annotations

from pydantic import Field

from .base import EmbeddingMap, Entity


class Tag(Entity):
    """User-defined tag.

    `avg_embeddings` is derived data: per provider, the normalized average of the
    embeddings of every block carrying the tag. It is refreshed explicitly by
    the tag aggregator and never computed on read.
    """

    label: str = Field(min_length=1, max_length=50, description="Display label")
    color_index: int = Field(default=0, ge=0, description="Palette slot used by clients")
    avg_embeddings: EmbeddingMap = Field(
        default_factory=dict,
        description="Centroid embedding per provider model identifier",
    )
