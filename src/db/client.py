"""Supabase client initialization."""

from supabase import create_client, Client

from src.config import get_settings
from src.errors import StorageError


def get_supabase_client() -> Client:
    """Get Supabase client instance."""
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise StorageError("Supabase is not configured")
    return create_client(settings.supabase_url, settings.supabase_service_key)
