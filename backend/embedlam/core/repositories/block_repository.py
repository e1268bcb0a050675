from __future__ import annotations

from embedlam.core.models.block import Block  # noqa: TCH001
from embedlam.core.repositories.collection_repository import CollectionRepository


class BlockRepository(CollectionRepository[Block]):
    """Abstract repository for blocks."""
