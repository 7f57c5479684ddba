"""
Supabase client for the suggestion and analytics tables.
"""

from typing import Optional

from supabase import Client, create_client

from .config import Config


_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Shared Supabase client, created on first use.

    Services take an explicit `supabase_client` and only fall back to this
    one when none is passed, so tests never reach it.

    Raises:
        ConfigurationError: If SUPABASE_URL or SUPABASE_SERVICE_KEY is missing
    """
    global _supabase_client

    if _supabase_client is None:
        Config.validate()
        _supabase_client = create_client(Config.SUPABASE_URL, Config.SUPABASE_SERVICE_KEY)

    return _supabase_client


def reset_supabase_client():
    """Drop the shared client (after changing credentials, or between tests)."""
    global _supabase_client
    _supabase_client = None
