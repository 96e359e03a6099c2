"""
Indian Rummy - Supabase Client

Thread-safe singleton factory for the Supabase client.
"""

from functools import lru_cache

from supabase import Client, create_client

from indian_rummy.config.settings import get_settings
from indian_rummy.engine.errors import ConfigurationError


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Create and cache a Supabase client instance."""
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise ConfigurationError(
            "SUPABASE_URL and SUPABASE_ANON_KEY must be set for the supabase store backend"
        )
    return create_client(settings.supabase_url, settings.supabase_anon_key)
