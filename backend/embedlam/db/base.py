from __future__ import annotations

from functools import lru_cache

from supabase import Client, create_client
from supabase.lib.client_options import ClientOptions

from embedlam.config import settings
from embedlam.utils.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """Return a cached Supabase client using the service role key.

    Blocks and tags are a single-user workspace, so the service client is used
    for every read and write.
    """
    logger.debug("Initializing Supabase admin client")
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise RuntimeError("supabase_url and supabase_service_role_key are required for the supabase store")
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
        options=ClientOptions(auto_refresh_token=False, persist_session=False),
    )
