from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from embedlam.core.errors import NotFoundError
from embedlam.core.models.block import MAX_LABEL_LENGTH, Block
from embedlam.core.models.tag import Tag
from embedlam.core.services.pipeline import RecomputePipeline
from embedlam.core.services.tag_service import TagAggregator
from embedlam.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from embedlam.core.embeddings.providers import ProviderRegistry
    from embedlam.core.models.base import EmbeddingMap
    from embedlam.core.repositories.block_repository import BlockRepository
    from embedlam.core.repositories.tag_repository import TagRepository
    from embedlam.core.schemas.distance import FeedDistances

logger = get_logger(__name__)

LABEL_COUNTER = "$x"
DEFAULT_LABEL_LENGTH = 50
# Room for the separator and counter digits
_COUNTER_RESERVE = 8


class BlockFeedService:
    """Feed of saved blocks and tags, scored against the text being typed.

    Keeps immutable snapshots of both collections, fed by repository
    subscriptions, and refreshes tag centroids after every membership or
    embedding change.

    Every read-modify-write of the stores runs under one lock. Embedding calls
    happen outside it, and their results are merged into freshly read rows.
    """

    def __init__(
        self,
        block_repo: BlockRepository,
        tag_repo: TagRepository,
        registry: ProviderRegistry,
        *,
        debounce_seconds: float = 1.0,
        aggregator: TagAggregator | None = None,
    ) -> None:
        self._block_repo = block_repo
        self._tag_repo = tag_repo
        self._registry = registry
        self._aggregator = aggregator if aggregator is not None else TagAggregator(registry.model_ids)
        self._blocks: tuple[Block, ...] = ()
        self._tags: tuple[Tag, ...] = ()
        self._write_lock = asyncio.Lock()
        self.pipeline = RecomputePipeline(
            registry,
            blocks=lambda: self._blocks,
            tags=lambda: self._tags,
            debounce_seconds=debounce_seconds,
        )
        self._unsubscribers = [
            block_repo.subscribe(self._on_blocks),
            tag_repo.subscribe(self._on_tags),
        ]

    async def start(self) -> None:
        """Load the initial snapshots from the repositories."""
        self._on_blocks(tuple(await self._block_repo.list()))
        self._on_tags(tuple(await self._tag_repo.list()))
        logger.info("Feed loaded with %d blocks and %d tags", len(self._blocks), len(self._tags))

    async def close(self) -> None:
        await self.pipeline.close()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_blocks(self, blocks: tuple[Block, ...]) -> None:
        self._blocks = blocks

    def _on_tags(self, tags: tuple[Tag, ...]) -> None:
        self._tags = tags

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def blocks(self) -> tuple[Block, ...]:
        return self._blocks

    @property
    def tags(self) -> tuple[Tag, ...]:
        return self._tags

    # Query text

    def set_text(self, text: str) -> None:
        self.pipeline.set_text(text)

    def distances(self) -> FeedDistances | None:
        return self.pipeline.published

    # Blocks

    def list_blocks(self, filter_tag_ids: Sequence[UUID] = ()) -> list[Block]:
        """Newest first; with filters, blocks grouped by the first matching filter tag."""
        blocks = list(self._blocks)
        if not filter_tag_ids:
            return blocks
        filters = list(filter_tag_ids)
        matching = [b for b in blocks if any(t in b.tag_ids for t in filters)]
        return sorted(matching, key=lambda b: next(i for i, t in enumerate(filters) if t in b.tag_ids))

    async def add_block(
        self,
        text: str,
        *,
        label: str | None = None,
        tag_ids: Sequence[UUID] = (),
    ) -> Block | None:
        """Save ``text`` as a new block.

        Returns None when the text is empty or already saved. Tags deleted while
        the text was being embedded are left off the block.
        """
        if not text or any(b.text == text for b in self._blocks):
            return None
        requested = list(dict.fromkeys(tag_ids))
        self._require_tags(requested)
        embeddings = await self._embeddings_for(text)

        async with self._write_lock:
            if any(b.text == text for b in await self._block_repo.list()):
                return None
            tags = await self._tag_repo.list()
            known = {t.id for t in tags}
            applied = [t for t in requested if t in known]
            if len(applied) != len(requested):
                logger.info("Dropped %d tags deleted while embedding", len(requested) - len(applied))

            block = Block(
                label=self._resolve_label(text, label, applied, tags),
                text=text,
                tag_ids=set(applied),
                embeddings=embeddings,
            )
            created = await self._block_repo.create(block)
            logger.info("Created block %s with %d embeddings", created.id, len(created.embeddings))
            await self._recompute_centroids(applied)
        return created

    async def refresh_embeddings(self) -> list[Block]:
        """Embed every block with the providers it is missing, then refresh all tags.

        Only the embedding maps are written back; other fields are taken from
        the stored rows at write time.
        """
        fetched: dict[UUID, EmbeddingMap] = {}
        for block in await self._block_repo.list():
            missing = [p for p in self._registry if p.model_id not in block.embeddings]
            fetched[block.id] = await self._registry.embed_all(block.text, providers=missing) if missing else {}

        async with self._write_lock:
            refreshed: list[Block] = []
            for block in await self._block_repo.list():
                known = {k: v for k, v in block.embeddings.items() if k in self._registry}
                for model_id, vector in fetched.get(block.id, {}).items():
                    known.setdefault(model_id, vector)
                refreshed.append(block.model_copy(update={"embeddings": known}))
            await self._block_repo.batch_upsert(refreshed)
            await self._recompute_centroids([t.id for t in await self._tag_repo.list()])
        logger.info("Refreshed embeddings for %d blocks", len(refreshed))
        return refreshed

    async def add_tag_to_block(self, tag_id: UUID, block_id: UUID) -> Block:
        async with self._write_lock:
            block = await self._require_block(block_id)
            self._require_tags([tag_id])
            updated = await self._block_repo.update(block.model_copy(update={"tag_ids": block.tag_ids | {tag_id}}))
            if updated is None:
                raise NotFoundError(f"Block {block_id} not found")
            await self._recompute_centroids([tag_id])
        return updated

    async def remove_tag_from_block(self, tag_id: UUID, block_id: UUID) -> Block:
        async with self._write_lock:
            block = await self._require_block(block_id)
            updated = await self._block_repo.update(block.model_copy(update={"tag_ids": block.tag_ids - {tag_id}}))
            if updated is None:
                raise NotFoundError(f"Block {block_id} not found")
            await self._recompute_centroids([tag_id])
        return updated

    # Tags

    def list_tags(self) -> list[Tag]:
        return list(self._tags)

    async def create_tag(self, label: str, *, color_index: int = 0) -> Tag:
        tag = await self._tag_repo.create(Tag(label=label, color_index=color_index))
        logger.info("Created tag %s (%s)", tag.id, tag.label)
        return tag

    async def delete_tag(self, tag_id: UUID) -> bool:
        """Delete a tag and strip it from every block that carried it."""
        async with self._write_lock:
            if not await self._tag_repo.delete(tag_id):
                return False
            blocks = await self._block_repo.list()
            updated = [b.model_copy(update={"tag_ids": b.tag_ids - {tag_id}}) for b in blocks if b.has_tag(tag_id)]
            await self._block_repo.batch_upsert(updated)
            await self._recompute_centroids([tag_id])
        return True

    async def refresh_tag_centroids(self, tag_ids: Iterable[UUID]) -> list[Tag]:
        """Recompute and store the centroids of ``tag_ids`` from the current blocks."""
        async with self._write_lock:
            return await self._recompute_centroids(tag_ids)

    async def _recompute_centroids(self, tag_ids: Iterable[UUID]) -> list[Tag]:
        ids = list(tag_ids)
        if not ids:
            return []
        blocks = await self._block_repo.list()
        tags = await self._tag_repo.list()
        updated = self._aggregator.recompute_centroids(ids, blocks, tags)
        if updated:
            await self._tag_repo.batch_upsert(updated)
        logger.info("Finished refresh of %d tag centroids", len(updated))
        return updated

    # Helpers

    async def _embeddings_for(self, text: str) -> EmbeddingMap:
        """Reuse the published query embeddings for ``text`` and embed the rest."""
        embeddings: EmbeddingMap = {}
        published = self.pipeline.published
        if published is not None and published.text == text:
            embeddings = {k: v for k, v in published.query_embeddings.items() if k in self._registry}
        missing = [p for p in self._registry if p.model_id not in embeddings]
        if missing:
            embeddings.update(await self._registry.embed_all(text, providers=missing))
        return embeddings

    def _resolve_label(
        self,
        text: str,
        label: str | None,
        tag_ids: Sequence[UUID],
        tags: Sequence[Tag],
    ) -> str:
        if label:
            return self._incrementing_label(label)
        if tag_ids:
            by_id = {t.id: t.label for t in tags}
            joined = " ".join(by_id[t] for t in tag_ids)
            joined = joined[: MAX_LABEL_LENGTH - _COUNTER_RESERVE].rstrip()
            return self._incrementing_label(f"{joined} {LABEL_COUNTER}")
        return f"{text[:DEFAULT_LABEL_LENGTH]}..."

    def _incrementing_label(self, label: str) -> str:
        """Replace the counter placeholder with the first index not used by a block."""
        if LABEL_COUNTER not in label:
            return label
        taken = {b.label.lower() for b in self._blocks}
        index = 1
        while True:
            candidate = label.replace(LABEL_COUNTER, str(index))
            if candidate.lower() not in taken:
                return candidate
            index += 1

    def _require_tags(self, tag_ids: Sequence[UUID]) -> None:
        known = {t.id for t in self._tags}
        for tag_id in tag_ids:
            if tag_id not in known:
                raise NotFoundError(f"Tag {tag_id} not found")

    async def _require_block(self, block_id: UUID) -> Block:
        block = await self._block_repo.get(block_id)
        if block is None:
            raise NotFoundError(f"Block {block_id} not found")
        return block
