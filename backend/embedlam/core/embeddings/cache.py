from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


class EmbeddingCache:
    """Memoizes text -> vector for one provider (or one backing model).

    Concurrent ``get_or_compute`` calls for the same text are serialized so the
    compute function runs at most once per text; different texts do not block
    each other. Reads of populated entries never take a lock.

    ``clear()`` starts a new generation: a computation that was already running
    when the cache was cleared still returns its vector to its caller but does
    not store it.
    """

    def __init__(self, name: str, *, transient: bool = False) -> None:
        self.name = name
        self.transient = transient
        self._entries: dict[str, list[float]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, text: object) -> bool:
        return text in self._entries

    async def get_or_compute(
        self,
        text: str,
        compute: Callable[[], Awaitable[list[float]]],
    ) -> list[float]:
        cached = self._entries.get(text)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(text, asyncio.Lock())
        async with lock:
            cached = self._entries.get(text)
            if cached is not None:
                return cached
            generation = self._generation
            vector = await compute()
            if generation == self._generation:
                self._entries[text] = vector
                # Waiters still holding this lock find the stored entry
                self._locks.pop(text, None)
            return vector

    def clear(self) -> None:
        self._entries = {}
        self._locks = {}
        self._generation += 1
