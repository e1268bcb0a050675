"""Embedding providers.

Every provider exposes the same capability, ``embed(text) -> list[float]``, and is
identified by a stable model identifier that is used as a key in persisted
embedding maps. Two families exist: local models served by Ollama, and hosted
OpenAI models requested at a given dimensionality.
"""

from __future__ import annotations

import asyncio
import math
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any

from embedlam.core.embeddings.cache import EmbeddingCache
from embedlam.core.embeddings.vector_math import normalize
from embedlam.core.errors import ProviderError, UnknownProviderError
from embedlam.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    import httpx
    from openai import AsyncOpenAI

    from embedlam.config import Settings

logger = get_logger(__name__)


class OllamaModel(str, Enum):
    """Local embedding models, valued by their Ollama API name."""

    NOMIC_EMBED = "nomic-embed-text"
    MXBAI_EMBED = "mxbai-embed-large"
    MINI_LM = "all-minilm"
    GEMMA_EMBED = "embeddinggemma"
    BGE_M3 = "bge-m3"

    @property
    def short_label(self) -> str:
        return _OLLAMA_LABELS[self]


_OLLAMA_LABELS = {
    OllamaModel.NOMIC_EMBED: "nomic",
    OllamaModel.MXBAI_EMBED: "mxbai",
    OllamaModel.MINI_LM: "mini",
    OllamaModel.GEMMA_EMBED: "gemma",
    OllamaModel.BGE_M3: "bgem3",
}


class EmbedProvider(ABC):
    """A source of embeddings.

    Subclasses only implement ``_request``; validation, caching, dimensionality
    handling and normalization are shared so that no caller ever sees a partially
    valid vector.
    """

    model_id: str
    label: str
    dimensions: int | None = None

    def __init__(self, cache: EmbeddingCache) -> None:
        self.cache = cache

    @abstractmethod
    async def _request(self, text: str) -> Sequence[float]:  # pragma: no cover - interface only
        """Fetch the raw vector for ``text`` from the upstream model."""

    async def embed(self, text: str) -> list[float]:
        """Return the unit-length embedding of ``text``.

        Raises:
            ProviderError: upstream failure, empty response or malformed payload.
        """
        started = time.perf_counter()
        try:
            raw = await self.cache.get_or_compute(text, lambda: self._fetch(text))
            vector = _fit_to_dimensions(self, raw)
        except ProviderError:
            raise
        except (ValueError, TypeError) as err:
            raise ProviderError(self.model_id, err) from err

        millis = (time.perf_counter() - started) * 1000
        logger.debug(
            "%s dims: %d millis: %.0f perchar: %.1f",
            self.model_id,
            len(vector),
            millis,
            millis / max(1, len(text)),
        )
        return vector

    async def _fetch(self, text: str) -> list[float]:
        try:
            raw = await self._request(text)
        except ProviderError:
            raise
        except Exception as err:
            raise ProviderError(self.model_id, err) from err
        if not raw:
            raise ProviderError(self.model_id, "empty embedding in response")
        vector = [float(x) for x in raw]
        if not all(math.isfinite(x) for x in vector):
            raise ProviderError(self.model_id, "embedding contains non-finite values")
        return vector

    def describe(self) -> dict[str, Any]:
        return {"model_id": self.model_id, "label": self.label, "dimensions": self.dimensions}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model_id={self.model_id!r})"


class OllamaEmbedProvider(EmbedProvider):
    """Local model served by an Ollama instance (``POST /api/embed``)."""

    def __init__(
        self,
        model: OllamaModel,
        client: httpx.AsyncClient,
        *,
        label: str | None = None,
        dimensions: int | None = None,
        cache: EmbeddingCache | None = None,
    ) -> None:
        super().__init__(cache if cache is not None else EmbeddingCache(model.value))
        self.model = model
        self.model_id = model.value
        self.label = label or model.short_label
        self.dimensions = dimensions
        self._client = client

    async def _request(self, text: str) -> Sequence[float]:
        resp = await self._client.post("/api/embed", json={"model": self.model.value, "input": text})
        resp.raise_for_status()
        embeddings = resp.json().get("embeddings") or []
        return embeddings[0] if embeddings else []


class OpenAIEmbedProvider(EmbedProvider):
    """Hosted OpenAI model truncated to a declared dimensionality.

    Variants of the same backing model share one cache, so the full-length vector
    is requested once per text and each variant keeps its own prefix.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        backing_model: str,
        dimensions: int,
        cache: EmbeddingCache,
    ) -> None:
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        super().__init__(cache)
        self.backing_model = backing_model
        self.dimensions = dimensions
        self.model_id = f"{backing_model}-{dimensions}"
        self.label = f"oa-{dimensions}"
        self._client = client

    async def _request(self, text: str) -> Sequence[float]:
        resp = await self._client.embeddings.create(model=self.backing_model, input=text)
        if not resp.data:
            return []
        return resp.data[0].embedding


def _fit_to_dimensions(provider: EmbedProvider, raw: Sequence[float]) -> list[float]:
    """Apply the provider's declared dimensionality, then normalize."""
    if isinstance(provider, OpenAIEmbedProvider):
        if len(raw) < provider.dimensions:
            raise ProviderError(
                provider.model_id,
                f"expected at least {provider.dimensions} values, got {len(raw)}",
            )
        return normalize(raw[: provider.dimensions])
    if isinstance(provider, OllamaEmbedProvider):
        if provider.dimensions is not None and len(raw) != provider.dimensions:
            raise ProviderError(
                provider.model_id,
                f"expected {provider.dimensions} values, got {len(raw)}",
            )
        return normalize(raw)
    return normalize(raw)


class ProviderRegistry:
    """Ordered, fixed set of providers keyed by model identifier."""

    def __init__(self, providers: Sequence[EmbedProvider]) -> None:
        self._providers: dict[str, EmbedProvider] = {}
        for provider in providers:
            if provider.model_id in self._providers:
                raise UnknownProviderError(f"Duplicate provider {provider.model_id}")
            self._providers[provider.model_id] = provider

    def __iter__(self) -> Iterator[EmbedProvider]:
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._providers

    @property
    def model_ids(self) -> list[str]:
        return list(self._providers)

    def get(self, model_id: str) -> EmbedProvider:
        try:
            return self._providers[model_id]
        except KeyError as err:
            raise UnknownProviderError(f"Unknown provider {model_id}") from err

    def caches(self) -> list[EmbeddingCache]:
        unique: dict[int, EmbeddingCache] = {}
        for provider in self._providers.values():
            unique.setdefault(id(provider.cache), provider.cache)
        return list(unique.values())

    def clear_transient_caches(self) -> None:
        for cache in self.caches():
            if cache.transient:
                cache.clear()

    async def embed_with(self, provider: EmbedProvider, text: str) -> list[float] | None:
        """Embed with one provider, logging and absorbing its failure."""
        try:
            return await provider.embed(text)
        except ProviderError as err:
            logger.warning("Embedding failed for %s: %s", provider.model_id, err.cause)
            return None

    async def embed_all(
        self,
        text: str,
        *,
        providers: Sequence[EmbedProvider] | None = None,
    ) -> dict[str, list[float]]:
        """Embed ``text`` with every provider in parallel.

        Failed providers are simply missing from the result.
        """
        selected = list(providers) if providers is not None else list(self)
        vectors = await asyncio.gather(*(self.embed_with(p, text) for p in selected))
        return {p.model_id: v for p, v in zip(selected, vectors, strict=True) if v is not None}

    def describe(self) -> list[dict[str, Any]]:
        return [p.describe() for p in self]


def build_default_registry(
    settings: Settings,
    *,
    ollama_client: httpx.AsyncClient,
    openai_client: AsyncOpenAI | None,
) -> ProviderRegistry:
    """Build the static provider list from settings.

    Hosted providers are left out when no OpenAI client is available.
    """
    providers: list[EmbedProvider] = [
        OllamaEmbedProvider(OllamaModel(name), ollama_client) for name in settings.ollama_models
    ]
    if openai_client is None:
        return ProviderRegistry(providers)
    hosted_cache = EmbeddingCache(settings.openai_embedding_model, transient=True)
    providers.extend(
        OpenAIEmbedProvider(
            openai_client,
            backing_model=settings.openai_embedding_model,
            dimensions=dims,
            cache=hosted_cache,
        )
        for dims in settings.openai_embedding_dimensions
    )
    return ProviderRegistry(providers)
