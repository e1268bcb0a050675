from __future__ import annotations

import asyncio

import pytest

from embedlam.core.embeddings.cache import EmbeddingCache


@pytest.mark.asyncio
async def test_concurrent_calls_for_same_text_compute_once():
    cache = EmbeddingCache("test")
    calls = 0

    async def compute() -> list[float]:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return [1.0, 2.0]

    results = await asyncio.gather(*(cache.get_or_compute("same", compute) for _ in range(10)))

    assert calls == 1
    assert all(r is results[0] for r in results)
    assert "same" in cache


@pytest.mark.asyncio
async def test_different_texts_do_not_block_each_other():
    cache = EmbeddingCache("test")
    b_started = asyncio.Event()

    async def compute_a() -> list[float]:
        # would deadlock if the cache serialized unrelated keys
        await b_started.wait()
        return [1.0]

    async def compute_b() -> list[float]:
        b_started.set()
        return [2.0]

    a, b = await asyncio.wait_for(
        asyncio.gather(cache.get_or_compute("a", compute_a), cache.get_or_compute("b", compute_b)),
        timeout=1.0,
    )
    assert (a, b) == ([1.0], [2.0])


@pytest.mark.asyncio
async def test_cached_value_is_returned_without_recompute():
    cache = EmbeddingCache("test")
    calls: list[str] = []

    async def compute() -> list[float]:
        calls.append("x")
        return [0.5]

    await cache.get_or_compute("x", compute)
    await cache.get_or_compute("x", compute)
    assert calls == ["x"]
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_clear_drops_entries():
    cache = EmbeddingCache("test", transient=True)

    async def compute() -> list[float]:
        return [1.0]

    await cache.get_or_compute("x", compute)
    cache.clear()
    assert len(cache) == 0
    assert "x" not in cache


@pytest.mark.asyncio
async def test_value_computed_across_clear_is_not_stored():
    cache = EmbeddingCache("test")
    release = asyncio.Event()

    async def compute() -> list[float]:
        await release.wait()
        return [1.0]

    pending = asyncio.create_task(cache.get_or_compute("x", compute))
    await asyncio.sleep(0)
    cache.clear()
    release.set()

    assert await pending == [1.0]
    assert "x" not in cache


@pytest.mark.asyncio
async def test_failed_compute_is_not_cached():
    cache = EmbeddingCache("test")
    attempts = 0

    async def compute() -> list[float]:
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise RuntimeError("boom")
        return [3.0]

    with pytest.raises(RuntimeError):
        await cache.get_or_compute("x", compute)
    assert await cache.get_or_compute("x", compute) == [3.0]
    assert attempts == 2


@pytest.mark.asyncio
async def test_lock_is_released_once_value_is_stored():
    cache = EmbeddingCache("test")

    async def compute() -> list[float]:
        await asyncio.sleep(0.01)
        return [1.0]

    await asyncio.gather(*(cache.get_or_compute(str(i % 3), compute) for i in range(9)))

    assert len(cache) == 3
    assert cache._locks == {}
