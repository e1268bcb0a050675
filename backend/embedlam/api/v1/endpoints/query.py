from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, status

from embedlam.api.v1.schemas.query import DistancesRead, QueryStatus, QueryUpdate
from embedlam.core.schemas.distance import ValueType
from embedlam.dependencies import get_block_feed_service

if TYPE_CHECKING:
    from embedlam.core.services.block_feed_service import BlockFeedService

router = APIRouter()


def _status(service: BlockFeedService) -> QueryStatus:
    pipeline = service.pipeline
    return QueryStatus(text=pipeline.text, state=pipeline.state, is_generating=pipeline.is_generating)


@router.put("/", response_model=QueryStatus, status_code=status.HTTP_202_ACCEPTED)
async def set_query_text(
    payload: QueryUpdate,
    service: BlockFeedService = Depends(get_block_feed_service),
):
    """Replace the query text; distances are recomputed after a quiet period."""
    service.set_text(payload.text)
    return _status(service)


@router.get("/", response_model=QueryStatus)
async def get_query_status(service: BlockFeedService = Depends(get_block_feed_service)):
    return _status(service)


@router.get("/distances", response_model=DistancesRead)
async def get_distances(
    value_type: ValueType = ValueType.DISTANCE,
    service: BlockFeedService = Depends(get_block_feed_service),
):
    """Return the latest published distances of blocks and tags to the query."""
    feed = service.distances()
    if feed is None:
        raise HTTPException(status_code=404, detail="No distances published yet")
    return DistancesRead.from_feed(feed, value_type)
