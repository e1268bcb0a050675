from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from embedlam.core.models.base import Entity
from embedlam.core.models.block import Block
from embedlam.core.models.tag import Tag
from embedlam.core.repositories.block_repository import BlockRepository
from embedlam.core.repositories.collection_repository import CollectionRepository
from embedlam.core.repositories.tag_repository import TagRepository

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

E = TypeVar("E", bound=Entity)


class InMemoryCollectionRepository(CollectionRepository[E]):
    """Process-local storage keyed by entity id.

    Entities are copied on the way in and out, so callers never share state with
    the store.
    """

    def __init__(self) -> None:
        super().__init__()
        self._items: dict[UUID, E] = {}

    async def list(self) -> Sequence[E]:
        return sorted(
            (item.model_copy(deep=True) for item in self._items.values()),
            key=lambda item: item.created_at,
            reverse=True,
        )

    async def get(self, entity_id: UUID) -> E | None:
        item = self._items.get(entity_id)
        return item.model_copy(deep=True) if item else None

    async def create(self, entity: E) -> E:
        if entity.id in self._items:
            raise ValueError(f"Entity {entity.id} already exists")
        self._items[entity.id] = entity.model_copy(deep=True)
        await self._publish()
        return entity.model_copy(deep=True)

    async def update(self, entity: E) -> E | None:
        if entity.id not in self._items:
            return None
        self._items[entity.id] = entity.model_copy(deep=True)
        await self._publish()
        return entity.model_copy(deep=True)

    async def delete(self, entity_id: UUID) -> bool:
        removed = self._items.pop(entity_id, None) is not None
        if removed:
            await self._publish()
        return removed

    async def batch_upsert(self, entities: Sequence[E]) -> Sequence[E]:
        if not entities:
            return []
        for entity in entities:
            self._items[entity.id] = entity.model_copy(deep=True)
        await self._publish()
        return [e.model_copy(deep=True) for e in entities]


class InMemoryBlockRepository(InMemoryCollectionRepository[Block], BlockRepository):
    """In-memory block store used for local runs and tests."""


class InMemoryTagRepository(InMemoryCollectionRepository[Tag], TagRepository):
    """In-memory tag store used for local runs and tests."""
