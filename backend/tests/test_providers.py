from __future__ import annotations

import json
import math
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from embedlam.config import Settings
from embedlam.core.embeddings.cache import EmbeddingCache
from embedlam.core.embeddings.providers import (
    OllamaEmbedProvider,
    OllamaModel,
    OpenAIEmbedProvider,
    ProviderRegistry,
    build_default_registry,
)
from embedlam.core.errors import ProviderError, UnknownProviderError
from tests.fakes import FakeProvider


def _ollama_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://ollama.test")


def _openai_client(vector: list[float]) -> SimpleNamespace:
    response = SimpleNamespace(data=[SimpleNamespace(embedding=vector)])
    return SimpleNamespace(embeddings=SimpleNamespace(create=AsyncMock(return_value=response)))


@pytest.mark.asyncio
async def test_ollama_provider_posts_text_and_normalizes():
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"embeddings": [[3.0, 4.0]]})

    provider = OllamaEmbedProvider(OllamaModel.NOMIC_EMBED, _ollama_client(handler))
    vector = await provider.embed("hello")

    assert vector == pytest.approx([0.6, 0.8])
    assert seen == [{"model": "nomic-embed-text", "input": "hello"}]
    assert provider.model_id == "nomic-embed-text"
    assert provider.label == "nomic"


@pytest.mark.asyncio
async def test_ollama_provider_wraps_http_errors():
    provider = OllamaEmbedProvider(
        OllamaModel.BGE_M3,
        _ollama_client(lambda request: httpx.Response(500, json={"error": "model not loaded"})),
    )
    with pytest.raises(ProviderError) as exc_info:
        await provider.embed("hello")
    assert exc_info.value.provider == "bge-m3"
    assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)


@pytest.mark.asyncio
async def test_ollama_provider_rejects_empty_response():
    provider = OllamaEmbedProvider(
        OllamaModel.MINI_LM,
        _ollama_client(lambda request: httpx.Response(200, json={"embeddings": []})),
    )
    with pytest.raises(ProviderError):
        await provider.embed("hello")


@pytest.mark.asyncio
async def test_ollama_provider_validates_declared_dimensions():
    provider = OllamaEmbedProvider(
        OllamaModel.MXBAI_EMBED,
        _ollama_client(lambda request: httpx.Response(200, json={"embeddings": [[1.0, 0.0]]})),
        dimensions=1024,
    )
    with pytest.raises(ProviderError):
        await provider.embed("hello")


@pytest.mark.asyncio
async def test_provider_rejects_zero_vector():
    provider = FakeProvider("zero", {"t": [0.0, 0.0]})
    with pytest.raises(ProviderError):
        await provider.embed("t")


@pytest.mark.asyncio
async def test_openai_variants_share_one_upstream_call_and_truncate():
    client = _openai_client([3.0, 4.0, 12.0, 0.0])
    cache = EmbeddingCache("text-embedding-3-large", transient=True)
    full = OpenAIEmbedProvider(client, backing_model="text-embedding-3-large", dimensions=4, cache=cache)
    short = OpenAIEmbedProvider(client, backing_model="text-embedding-3-large", dimensions=2, cache=cache)

    long_vector = await full.embed("hello")
    short_vector = await short.embed("hello")

    client.embeddings.create.assert_awaited_once_with(model="text-embedding-3-large", input="hello")
    assert long_vector == pytest.approx([3 / 13, 4 / 13, 12 / 13, 0.0])
    assert short_vector == pytest.approx([0.6, 0.8])
    assert math.isclose(sum(x * x for x in short_vector), 1.0)
    assert full.model_id == "text-embedding-3-large-4"
    assert short.label == "oa-2"


@pytest.mark.asyncio
async def test_openai_provider_rejects_short_vectors():
    client = _openai_client([1.0, 0.0])
    provider = OpenAIEmbedProvider(
        client, backing_model="m", dimensions=3, cache=EmbeddingCache("m", transient=True)
    )
    with pytest.raises(ProviderError):
        await provider.embed("hello")


def test_registry_rejects_duplicate_identifiers():
    with pytest.raises(UnknownProviderError):
        ProviderRegistry([FakeProvider("A"), FakeProvider("A")])


def test_registry_lookup(registry: ProviderRegistry):
    assert registry.model_ids == ["A", "B"]
    assert registry.get("B").model_id == "B"
    assert "A" in registry
    with pytest.raises(UnknownProviderError):
        registry.get("missing")


@pytest.mark.asyncio
async def test_embed_all_leaves_out_failed_providers():
    ok = FakeProvider("ok", {"t": [1.0, 0.0]})
    broken = FakeProvider("broken", fail=True)
    result = await ProviderRegistry([ok, broken]).embed_all("t")
    assert result == {"ok": pytest.approx([1.0, 0.0])}


def test_clear_transient_caches_only_touches_transient_caches():
    persistent = EmbeddingCache("p")
    transient = EmbeddingCache("t", transient=True)
    persistent._entries["x"] = [1.0]
    transient._entries["x"] = [1.0]
    registry = ProviderRegistry([FakeProvider("P", cache=persistent), FakeProvider("T", cache=transient)])

    registry.clear_transient_caches()

    assert "x" in persistent
    assert "x" not in transient


@pytest.mark.asyncio
async def test_ollama_provider_uses_empty_shared_cache_it_is_given():
    shared = EmbeddingCache("shared", transient=True)
    provider = OllamaEmbedProvider(
        OllamaModel.NOMIC_EMBED,
        _ollama_client(lambda request: httpx.Response(200, json={"embeddings": [[1.0, 0.0]]})),
        cache=shared,
    )
    registry = ProviderRegistry([provider])

    assert provider.cache is shared
    await provider.embed("hello")
    assert "hello" in shared

    registry.clear_transient_caches()
    assert len(shared) == 0


def test_build_default_registry_without_openai_client():
    settings = Settings(ollama_models=["nomic-embed-text", "bge-m3"])
    registry = build_default_registry(
        settings, ollama_client=_ollama_client(lambda r: httpx.Response(200)), openai_client=None
    )
    assert registry.model_ids == ["nomic-embed-text", "bge-m3"]


def test_build_default_registry_with_hosted_variants():
    settings = Settings(
        ollama_models=["all-minilm"],
        openai_embedding_model="text-embedding-3-large",
        openai_embedding_dimensions=[3072, 768],
    )
    registry = build_default_registry(
        settings,
        ollama_client=_ollama_client(lambda r: httpx.Response(200)),
        openai_client=_openai_client([1.0]),
    )
    assert registry.model_ids == [
        "all-minilm",
        "text-embedding-3-large-3072",
        "text-embedding-3-large-768",
    ]
    hosted = [registry.get("text-embedding-3-large-3072"), registry.get("text-embedding-3-large-768")]
    assert hosted[0].cache is hosted[1].cache
    assert hosted[0].cache.transient
    assert [p["label"] for p in registry.describe()] == ["mini", "oa-3072", "oa-768"]
