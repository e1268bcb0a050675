from __future__ import annotations

from embedlam.core.models.tag import Tag  # noqa: TCH001
from embedlam.core.repositories.collection_repository import CollectionRepository


class TagRepository(CollectionRepository[Tag]):
    """Abstract repository for tags."""
