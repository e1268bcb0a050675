from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

from embedlam.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

logger = get_logger(__name__)

T = TypeVar("T")


class CollectionRepository(ABC, Generic[T]):
    """Observable store for one entity type.

    Contract used by the feed service. Implementations perform I/O and expose
    async methods; after every write they push the full, newest-first snapshot
    to subscribers via ``_publish``.
    """

    def __init__(self) -> None:
        self._listeners: list[Callable[[tuple[T, ...]], None]] = []

    def subscribe(self, listener: Callable[[tuple[T, ...]], None]) -> Callable[[], None]:
        """Register a snapshot listener and return a function that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def _publish(self) -> None:
        snapshot = tuple(await self.list())
        for listener in list(self._listeners):
            listener(snapshot)

    @abstractmethod
    async def list(self) -> Sequence[T]:  # pragma: no cover - interface only
        """Return every entity, newest first."""

    @abstractmethod
    async def get(self, entity_id: UUID) -> T | None:  # pragma: no cover
        """Fetch an entity by id or return None if not found."""

    @abstractmethod
    async def create(self, entity: T) -> T:  # pragma: no cover
        """Persist a new entity and return the stored value."""

    @abstractmethod
    async def update(self, entity: T) -> T | None:  # pragma: no cover
        """Replace an existing entity; return None if it does not exist."""

    @abstractmethod
    async def delete(self, entity_id: UUID) -> bool:  # pragma: no cover
        """Delete by id. Return True if something was removed."""

    @abstractmethod
    async def batch_upsert(self, entities: Sequence[T]) -> Sequence[T]:  # pragma: no cover
        """Insert or replace many entities in one write."""
