"""Shared async Supabase client.

The auth provider and the data store share one client so that PostgREST
requests carry the signed-in user's access token (row level security sees
the same user the auth events describe).
"""

from typing import Optional

from supabase import AsyncClient, acreate_client

from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

_client: Optional[AsyncClient] = None


async def get_supabase_client(settings: Optional[Settings] = None) -> AsyncClient:
    """Return the process-wide client, creating it on first use."""
    global _client
    if _client is None:
        settings = settings or get_settings()
        logger.debug("Creating Supabase client for %s", settings.SUPABASE_URL)
        _client = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    return _client


async def create_service_client(settings: Optional[Settings] = None) -> AsyncClient:
    """Client authenticated with the service role key, for admin scripts only."""
    settings = settings or get_settings()
    return await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def reset_supabase_client() -> None:
    global _client
    _client = None
