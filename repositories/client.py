"""
Supabase client initialization.

This module contains *only* the database connection setup. `get_supabase()`
builds a single shared `Client` on first use, so importing repositories never
requires credentials; a missing SUPABASE_URL or SUPABASE_KEY raises
`ConfigurationError` the first time the database is actually needed.

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use the service-role key on the backend;
  gateway callbacks arrive without a user session and must bypass RLS)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from postgrest.exceptions import APIError
from supabase import Client, create_client  # type: ignore[import-not-found]

from services.errors import RepositoryError
from services.settings import SupabaseSettings


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    settings = SupabaseSettings.from_env()
    return create_client(settings.url, settings.key)


def execute_query(query: Any, action: str) -> list[dict[str, Any]]:
    """
    Execute a PostgREST query and return its rows.

    Raises:
        RepositoryError: If Supabase reports an error
    """
    try:
        response = query.execute()
    except APIError as e:
        raise RepositoryError(f"Failed to {action}: {e.message or e}") from e

    error = getattr(response, "error", None)
    if error:
        raise RepositoryError(f"Failed to {action}: {error}")

    return getattr(response, "data", None) or []


__all__ = ["execute_query", "get_supabase"]
