from __future__ import annotations

from functools import lru_cache

import httpx

from embedlam.config import settings
from embedlam.utils.logging import get_logger


@lru_cache(maxsize=1)
def get_ollama_client() -> httpx.AsyncClient:
    """Return a singleton HTTP client bound to the local Ollama server."""
    logger = get_logger(__name__)
    logger.debug("Initializing Ollama client for %s", settings.ollama_base_url)
    return httpx.AsyncClient(
        base_url=settings.ollama_base_url,
        timeout=settings.ollama_timeout_seconds,
    )
