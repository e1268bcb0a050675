from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

from .api.v1.router import api_router
from .config import settings
from .dependencies import build_block_feed_service
from .utils.logging import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .core.services.block_feed_service import BlockFeedService


def create_app(feed_service: BlockFeedService | None = None) -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        service = feed_service or build_block_feed_service()
        await service.start()
        app.state.feed_service = service
        try:
            yield
        finally:
            await service.close()

    app = FastAPI(
        title="Embedlam API",
        debug=settings.debug,
        version="0.1.0",
        root_path=settings.root_path or "",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Accept-Language", "Content-Language", "Content-Type"],
        max_age=600,  # Cache preflight requests for 10 minutes
    )

    # GZip compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
