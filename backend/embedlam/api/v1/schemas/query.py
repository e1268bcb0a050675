from __future__ import annotations

from datetime import datetime  # noqa: TCH003

from pydantic import Field

from embedlam.core.models.base import AppBaseModel
from embedlam.core.schemas.distance import DistanceMap, FeedDistances, ValueType  # noqa: TCH001
from embedlam.core.services.pipeline import PipelineState  # noqa: TCH001


class QueryUpdate(AppBaseModel):
    text: str = Field(default="", description="Current query text; empty text stops scoring")


class QueryStatus(AppBaseModel):
    text: str
    state: PipelineState
    is_generating: bool


class DistanceValue(AppBaseModel):
    label: str
    index: int
    value: float


class DistancesRead(AppBaseModel):
    """Published distances projected onto one value type.

    A provider mapped to null has no comparable data yet.
    """

    text: str
    value_type: ValueType
    published_at: datetime
    blocks: dict[str, list[DistanceValue] | None]
    tags: dict[str, list[DistanceValue] | None]

    @classmethod
    def from_feed(cls, feed: FeedDistances, value_type: ValueType) -> DistancesRead:
        return cls(
            text=feed.text,
            value_type=value_type,
            published_at=feed.published_at,
            blocks=_project(feed.block_distances, value_type),
            tags=_project(feed.tag_distances, value_type),
        )


def _project(distances: DistanceMap, value_type: ValueType) -> dict[str, list[DistanceValue] | None]:
    return {
        model_id: None
        if items is None
        else [DistanceValue(label=d.label, index=d.index, value=d.get_value(value_type)) for d in items]
        for model_id, items in distances.items()
    }
