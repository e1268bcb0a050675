from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, TypeVar

from embedlam.core.models.base import Entity
from embedlam.core.models.block import Block
from embedlam.core.models.tag import Tag
from embedlam.core.repositories.block_repository import BlockRepository
from embedlam.core.repositories.collection_repository import CollectionRepository
from embedlam.core.repositories.tag_repository import TagRepository
from embedlam.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from supabase import Client

E = TypeVar("E", bound=Entity)


class SupabaseCollectionRepository(CollectionRepository[E]):
    """Supabase implementation of a collection repository.

    Uses Supabase's PostgREST client for CRUD. Assumes one table per entity
    with columns matching the model fields; embedding maps are stored in
    `jsonb` columns keyed by model identifier. Supabase offers no live feed here,
    so subscribers are refreshed by re-reading the table after each write.
    """

    TABLE_NAME: str
    MODEL: type[E]

    def __init__(self, client: Client) -> None:
        super().__init__()
        self._client: Client = client

    async def list(self) -> Sequence[E]:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        items = resp.data or []
        return [self._row_to_entity(i) for i in items]

    async def get(self, entity_id: UUID) -> E | None:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("*")
            .eq("id", str(entity_id))
            .limit(1)
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        return self._row_to_entity(items[0])

    async def create(self, entity: E) -> E:
        row = self._entity_to_row(entity)
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .insert(row)
            .execute()
        )
        created = self._row_to_entity(self._first(resp.data))
        await self._publish()
        return created

    async def update(self, entity: E) -> E | None:
        row = self._entity_to_row(entity)
        # id and created_at are immutable once stored
        row.pop("id", None)
        row.pop("created_at", None)
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .update(row)
            .eq("id", str(entity.id))
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        await self._publish()
        return self._row_to_entity(items[0])

    async def delete(self, entity_id: UUID) -> bool:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .delete()
            .eq("id", str(entity_id))
            .execute()
        )
        items = resp.data or []
        if items:
            await self._publish()
        return len(items) > 0

    async def batch_upsert(self, entities: Sequence[E]) -> Sequence[E]:
        if not entities:
            return []
        rows = [self._entity_to_row(e) for e in entities]
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .upsert(rows)
            .execute()
        )
        await self._publish()
        return [self._row_to_entity(r) for r in (resp.data or [])]

    @staticmethod
    async def _run(func: Callable[[], Any]) -> Any:
        return await asyncio.to_thread(func)

    @staticmethod
    def _first(data: Any) -> dict[str, Any]:
        if isinstance(data, list) and data:
            return data[0]
        if isinstance(data, dict):
            return data
        return {}

    def _row_to_entity(self, row: dict[str, Any]) -> E:
        return self.MODEL.model_validate(self._normalize_row(dict(row)))

    def _normalize_row(self, row: dict[str, Any]) -> dict[str, Any]:
        return row

    @staticmethod
    def _entity_to_row(entity: E) -> dict[str, Any]:
        # JSON mode turns UUIDs, sets and datetimes into PostgREST-friendly values
        return entity.model_dump(mode="json")


class SupabaseBlockRepository(SupabaseCollectionRepository[Block], BlockRepository):
    TABLE_NAME = "blocks"
    MODEL = Block

    def _normalize_row(self, row: dict[str, Any]) -> dict[str, Any]:
        if row.get("tag_ids") is None:
            row["tag_ids"] = []
        if row.get("embeddings") is None:
            row["embeddings"] = {}
        return row


class SupabaseTagRepository(SupabaseCollectionRepository[Tag], TagRepository):
    TABLE_NAME = "tags"
    MODEL = Tag

    def _normalize_row(self, row: dict[str, Any]) -> dict[str, Any]:
        if row.get("avg_embeddings") is None:
            row["avg_embeddings"] = {}
        return row
