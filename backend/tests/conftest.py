from __future__ import annotations

import pytest

from embedlam.core.embeddings.providers import ProviderRegistry
from embedlam.core.repositories.implementations.memory.collection_repository import (
    InMemoryBlockRepository,
    InMemoryTagRepository,
)
from embedlam.core.services.block_feed_service import BlockFeedService
from tests.fakes import FakeProvider


@pytest.fixture
def provider_a() -> FakeProvider:
    return FakeProvider(
        "A",
        {
            "x": [1.0, 0.0, 0.0],
            "y": [0.0, 1.0, 0.0],
            "query": [1.0, 0.0, 0.0],
        },
    )


@pytest.fixture
def provider_b() -> FakeProvider:
    return FakeProvider("B", {"x": [0.0, 0.0, 2.0], "y": [0.0, 3.0, 0.0]})


@pytest.fixture
def registry(provider_a: FakeProvider, provider_b: FakeProvider) -> ProviderRegistry:
    return ProviderRegistry([provider_a, provider_b])


@pytest.fixture
def block_repo() -> InMemoryBlockRepository:
    return InMemoryBlockRepository()


@pytest.fixture
def tag_repo() -> InMemoryTagRepository:
    return InMemoryTagRepository()


@pytest.fixture
def feed_service(
    block_repo: InMemoryBlockRepository,
    tag_repo: InMemoryTagRepository,
    registry: ProviderRegistry,
) -> BlockFeedService:
    return BlockFeedService(block_repo, tag_repo, registry, debounce_seconds=0.0)
