from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TCH003

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from embedlam.api.v1.schemas.block import BlockCreate, BlockRead
from embedlam.background import refresh_block_embeddings
from embedlam.core.errors import NotFoundError
from embedlam.dependencies import get_block_feed_service

if TYPE_CHECKING:
    from embedlam.core.services.block_feed_service import BlockFeedService

router = APIRouter()


@router.get("/", response_model=list[BlockRead])
async def list_blocks(
    filter_tags: list[UUID] = Query(default=[]),
    service: BlockFeedService = Depends(get_block_feed_service),
):
    """List saved blocks, newest first, optionally filtered by tags."""
    return [BlockRead.from_block(b) for b in service.list_blocks(filter_tags)]


@router.post("/", response_model=BlockRead, status_code=status.HTTP_201_CREATED)
async def create_block(
    payload: BlockCreate,
    service: BlockFeedService = Depends(get_block_feed_service),
):
    try:
        block = await service.add_block(payload.text, label=payload.label, tag_ids=payload.tag_ids)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err)) from err
    if block is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Block text already saved")
    return BlockRead.from_block(block)


@router.post("/refresh-embeddings", status_code=status.HTTP_202_ACCEPTED)
async def refresh_embeddings(
    background_tasks: BackgroundTasks,
    service: BlockFeedService = Depends(get_block_feed_service),
):
    """Embed every block with the providers it is missing, in the background."""
    background_tasks.add_task(refresh_block_embeddings, service=service)
    return {"status": "accepted"}


@router.post("/{block_id}/tags/{tag_id}", response_model=BlockRead)
async def add_tag(
    block_id: UUID,
    tag_id: UUID,
    service: BlockFeedService = Depends(get_block_feed_service),
):
    try:
        block = await service.add_tag_to_block(tag_id, block_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err)) from err
    return BlockRead.from_block(block)


@router.delete("/{block_id}/tags/{tag_id}", response_model=BlockRead)
async def remove_tag(
    block_id: UUID,
    tag_id: UUID,
    service: BlockFeedService = Depends(get_block_feed_service),
):
    try:
        block = await service.remove_tag_from_block(tag_id, block_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err)) from err
    return BlockRead.from_block(block)
