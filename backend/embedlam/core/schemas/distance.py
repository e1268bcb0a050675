from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import Field, computed_field

from embedlam.core.models.base import AppBaseModel, EmbeddingMap


class ValueType(str, Enum):
    """Which view of a semantic distance clients display."""

    DISTANCE = "distance"
    DISTANCE_SCALED = "distance_scaled"
    SIMILARITY = "similarity"
    SIMILARITY_SCALED = "similarity_scaled"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class SemanticDistance(AppBaseModel):
    """Distance between the query and one candidate for one provider.

    - index: position of the candidate in the list that was ranked
    - distance_scaled: distance min-max scaled over the candidates of that provider
    """

    label: str
    index: int = Field(ge=0)
    distance: float
    distance_scaled: float

    @computed_field  # type: ignore[prop-decorator]
    @property
    def similarity(self) -> float:
        return 1 - self.distance

    @computed_field  # type: ignore[prop-decorator]
    @property
    def similarity_scaled(self) -> float:
        return 1 - self.distance_scaled

    def get_value(self, value_type: ValueType) -> float:
        if value_type is ValueType.DISTANCE:
            return self.distance
        if value_type is ValueType.DISTANCE_SCALED:
            return self.distance_scaled
        if value_type is ValueType.SIMILARITY:
            return self.similarity
        return self.similarity_scaled


# None means no candidate had an embedding for that provider
DistanceMap = dict[str, list[SemanticDistance] | None]


class FeedDistances(AppBaseModel):
    """Result of one completed recompute cycle, replaced wholesale by the next one."""

    text: str
    query_embeddings: EmbeddingMap = Field(default_factory=dict)
    block_distances: DistanceMap = Field(default_factory=dict)
    tag_distances: DistanceMap = Field(default_factory=dict)
    published_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
