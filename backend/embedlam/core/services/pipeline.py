from __future__ import annotations

import asyncio
from enum import Enum
from typing import TYPE_CHECKING

from embedlam.core.schemas.distance import FeedDistances
from embedlam.core.services.distance_service import DistanceService
from embedlam.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from embedlam.core.embeddings.providers import ProviderRegistry
    from embedlam.core.models.block import Block
    from embedlam.core.models.tag import Tag

logger = get_logger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    EMBEDDING = "embedding"
    SCORING = "scoring"
    PUBLISHED = "published"


class RecomputePipeline:
    """Debounced, cancellable recompute of query distances.

    Every ``set_text`` call bumps a generation counter and cancels the running
    cycle. A cycle only publishes while its generation is still the latest one,
    so a superseded cycle can never overwrite the result of a newer one.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        blocks: Callable[[], Sequence[Block]],
        tags: Callable[[], Sequence[Tag]],
        distance_service: DistanceService | None = None,
        debounce_seconds: float = 1.0,
        on_publish: Callable[[FeedDistances], None] | None = None,
    ) -> None:
        self._registry = registry
        self._blocks = blocks
        self._tags = tags
        self._distances = distance_service if distance_service is not None else DistanceService()
        self._debounce_seconds = debounce_seconds
        self._on_publish = on_publish

        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._text = ""
        self._state = PipelineState.IDLE
        self._published: FeedDistances | None = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def text(self) -> str:
        return self._text

    @property
    def published(self) -> FeedDistances | None:
        """Latest completed result, or None before the first cycle finishes."""
        return self._published

    @property
    def is_generating(self) -> bool:
        return self._state in {PipelineState.EMBEDDING, PipelineState.SCORING}

    def set_text(self, text: str) -> None:
        """Start a new cycle for ``text``, cancelling any cycle in flight.

        Must be called from a running event loop. Empty text returns the
        pipeline to idle and keeps the last published result.
        """
        self._generation += 1
        self._text = text
        self._cancel_running()
        if not text:
            self._state = PipelineState.IDLE
            return
        self._state = PipelineState.DEBOUNCING
        self._task = asyncio.get_running_loop().create_task(self._run_cycle(self._generation, text))

    async def wait_until_settled(self) -> FeedDistances | None:
        """Wait until no cycle is running and return the published result."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        return self._published

    async def close(self) -> None:
        self._generation += 1
        self._cancel_running()
        await self.wait_until_settled()
        self._state = PipelineState.IDLE

    def _cancel_running(self) -> None:
        if self._task is not None and not self._task.done():
            logger.debug("Cancelling superseded recompute cycle")
            self._task.cancel()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _run_cycle(self, generation: int, text: str) -> None:
        try:
            await asyncio.sleep(self._debounce_seconds)

            self._state = PipelineState.EMBEDDING
            self._registry.clear_transient_caches()
            query_embeddings = await self._registry.embed_all(text)
            if not self._is_current(generation):
                return

            self._state = PipelineState.SCORING
            blocks = self._blocks()
            tags = self._tags()
            result = FeedDistances(
                text=text,
                query_embeddings=query_embeddings,
                block_distances=self._distances.rank_against(
                    query_embeddings, [(b.label, b.embeddings) for b in blocks]
                ),
                tag_distances=self._distances.rank_against(
                    query_embeddings, [(t.label, t.avg_embeddings) for t in tags]
                ),
            )
            if not self._is_current(generation):
                return

            self._published = result
            self._state = PipelineState.PUBLISHED
            logger.info(
                "Published distances for %d providers (%d failed)",
                len(query_embeddings),
                len(self._registry) - len(query_embeddings),
            )
            if self._on_publish is not None:
                self._on_publish(result)
        except asyncio.CancelledError:
            logger.debug("Recompute cycle %d cancelled", generation)
            raise
