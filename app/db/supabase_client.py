"""Supabase client for the tenant data store."""

from functools import lru_cache

from supabase import Client, create_client

from app.core.config import get_settings


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Get the Supabase client shared by every db module.

    Every tenant table is queried with an explicit project_id filter; the
    service role key bypasses row level security, so that filter is the only
    tenant partition.

    Raises:
        RuntimeError: If client initialization fails
    """
    try:
        settings = get_settings()
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        raise RuntimeError(f"Failed to initialize Supabase client: {e}") from e
