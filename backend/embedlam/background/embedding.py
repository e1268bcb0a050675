from __future__ import annotations

from typing import TYPE_CHECKING

from embedlam.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from embedlam.core.services.block_feed_service import BlockFeedService


async def refresh_block_embeddings(*, service: BlockFeedService) -> None:
    """Fill missing block embeddings and refresh tag centroids as background work.

    Swallows errors and logs for observability.
    """
    logger.info("Starting embedding refresh for %d blocks", len(service.blocks))
    try:
        refreshed = await service.refresh_embeddings()
        logger.info("Embedding refresh finished for %d blocks", len(refreshed))
    except Exception as err:  # pragma: no cover - store/network errors
        logger.error("Embedding refresh failed: %s", err)
        logger.error("Error type: %s", type(err).__name__)
