from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TCH003

from fastapi import APIRouter, Depends, HTTPException, status

from embedlam.api.v1.schemas.tag import TagCreate, TagRead
from embedlam.dependencies import get_block_feed_service

if TYPE_CHECKING:
    from embedlam.core.services.block_feed_service import BlockFeedService

router = APIRouter()


@router.get("/", response_model=list[TagRead])
async def list_tags(service: BlockFeedService = Depends(get_block_feed_service)):
    return [TagRead.from_tag(t) for t in service.list_tags()]


@router.post("/", response_model=TagRead, status_code=status.HTTP_201_CREATED)
async def create_tag(
    payload: TagCreate,
    service: BlockFeedService = Depends(get_block_feed_service),
):
    tag = await service.create_tag(payload.label, color_index=payload.color_index)
    return TagRead.from_tag(tag)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: UUID,
    service: BlockFeedService = Depends(get_block_feed_service),
):
    """Delete a tag and remove it from every block that carried it."""
    deleted = await service.delete_tag(tag_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Tag not found")
    return None
