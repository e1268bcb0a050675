from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from embedlam.config import settings
from embedlam.dependencies import get_block_feed_service

if TYPE_CHECKING:
    from embedlam.core.services.block_feed_service import BlockFeedService

router = APIRouter()


@router.get("/")
async def health_check():
    """Health check endpoint."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "healthy",
            "service": "embedlam-api",
            "version": "0.1.0",
        },
    )


@router.get("/ready")
async def readiness_check(service: BlockFeedService = Depends(get_block_feed_service)):
    """Readiness check endpoint."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "ready",
            "store": settings.store_backend,
            "providers": len(service.registry),
            "blocks": len(service.blocks),
            "tags": len(service.tags),
        },
    )
