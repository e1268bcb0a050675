from __future__ import annotations

import os
from typing import TYPE_CHECKING

from fastapi import Request

from embedlam.config import settings
from embedlam.core.embeddings.providers import ProviderRegistry, build_default_registry
from embedlam.core.repositories.implementations.memory.collection_repository import (
    InMemoryBlockRepository,
    InMemoryTagRepository,
)
from embedlam.core.services.block_feed_service import BlockFeedService
from embedlam.utils.logging import get_logger
from embedlam.utils.ollama_client import get_ollama_client
from embedlam.utils.openai_client import get_openai_client

logger = get_logger(__name__)

if TYPE_CHECKING:
    from embedlam.core.repositories.block_repository import BlockRepository
    from embedlam.core.repositories.tag_repository import TagRepository


def build_provider_registry() -> ProviderRegistry:
    """Build the provider registry, skipping hosted models without an API key."""
    has_openai_key = bool(settings.openai_api_key or os.getenv("OPENAI_API_KEY"))
    if not has_openai_key and settings.openai_embedding_dimensions:
        logger.warning("No OpenAI API key configured; hosted embedding providers are disabled")
    return build_default_registry(
        settings,
        ollama_client=get_ollama_client(),
        openai_client=get_openai_client() if has_openai_key else None,
    )


def build_repositories() -> tuple[BlockRepository, TagRepository]:
    """Return the block and tag repositories for the configured store backend."""
    if settings.store_backend == "supabase":
        from embedlam.core.repositories.implementations.supabase.collection_repository import (
            SupabaseBlockRepository,
            SupabaseTagRepository,
        )
        from embedlam.db.base import get_supabase_admin_client

        client = get_supabase_admin_client()
        return SupabaseBlockRepository(client), SupabaseTagRepository(client)
    if settings.store_backend != "memory":
        raise RuntimeError(f"Unknown store backend: {settings.store_backend}")
    return InMemoryBlockRepository(), InMemoryTagRepository()


def build_block_feed_service() -> BlockFeedService:
    block_repo, tag_repo = build_repositories()
    return BlockFeedService(
        block_repo,
        tag_repo,
        build_provider_registry(),
        debounce_seconds=settings.debounce_seconds,
    )


def get_block_feed_service(request: Request) -> BlockFeedService:
    """Return the process-wide feed service started by the app lifespan."""
    return request.app.state.feed_service
