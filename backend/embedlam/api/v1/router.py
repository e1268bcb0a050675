from __future__ import annotations

from fastapi import APIRouter

from .endpoints import blocks, health, metadata, query, tags

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(blocks.router, prefix="/blocks", tags=["blocks"])
api_router.include_router(tags.router, prefix="/tags", tags=["tags"])
api_router.include_router(query.router, prefix="/query", tags=["query"])
api_router.include_router(metadata.router, prefix="/metadata", tags=["metadata"])
