from __future__ import annotations

from typing import TYPE_CHECKING

from embedlam.core.embeddings.vector_math import average_and_normalize
from embedlam.core.errors import DegenerateVectorError, DimensionMismatchError
from embedlam.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from embedlam.core.models.base import EmbeddingMap
    from embedlam.core.models.block import Block
    from embedlam.core.models.tag import Tag


logger = get_logger(__name__)


class TagAggregator:
    """Recomputes tag centroids from the blocks that currently carry each tag.

    Centroids are a materialized view: callers must run this after every change
    to tag membership or to a block's embeddings.
    """

    def __init__(self, model_ids: Sequence[str]) -> None:
        self._model_ids = list(model_ids)

    def centroids_for(self, tag_id: UUID, blocks: Iterable[Block]) -> EmbeddingMap:
        """Average-then-normalize the tagged blocks' embeddings, per provider.

        A provider without any tagged embedding gets no entry.
        """
        tagged = [b for b in blocks if b.has_tag(tag_id)]
        centroids: EmbeddingMap = {}
        for model_id in self._model_ids:
            vectors = [b.embeddings[model_id] for b in tagged if model_id in b.embeddings]
            if not vectors:
                continue
            try:
                centroids[model_id] = average_and_normalize(vectors)
            except (DimensionMismatchError, DegenerateVectorError) as err:
                logger.warning("No centroid for tag %s on %s: %s", tag_id, model_id, err)
        return centroids

    def recompute_centroids(
        self,
        tag_ids: Iterable[UUID],
        blocks: Sequence[Block],
        tags: Sequence[Tag],
    ) -> list[Tag]:
        """Return updated copies of the requested tags.

        Ids that no longer match a tag (e.g. a deleted tag) are skipped.
        """
        by_id = {t.id: t for t in tags}
        updated: list[Tag] = []
        for tag_id in tag_ids:
            tag = by_id.get(tag_id)
            if tag is None:
                logger.debug("Tag %s no longer exists; skipping centroid refresh", tag_id)
                continue
            updated.append(tag.model_copy(update={"avg_embeddings": self.centroids_for(tag_id, blocks)}))
        return updated
