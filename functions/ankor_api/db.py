"""
Database access helpers over the Supabase (PostgREST) client.
"""

from __future__ import annotations

from typing import Any, Optional

from supabase import Client, ClientOptions, create_client


def create_supabase_client(url: str, key: str) -> Client:
    """
    Service-role client shared across requests. Row-level security is bypassed,
    so every query must scope itself to the authorized organization.
    """
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")
    return create_client(url, key)


def create_auth_client(url: str, key: str) -> Client:
    """
    Short-lived client for password sign-in and sign-up. Signing in mutates the
    client's session, so it must never be the shared service-role client.
    """
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY are required")
    return create_client(
        url,
        key,
        options=ClientOptions(persist_session=False, auto_refresh_token=False),
    )


def fetch_one(query: Any) -> Optional[dict]:
    """Execute ``query`` as maybe_single; depending on the client version an
    empty result is either ``None`` or a response with ``data=None``."""
    response = query.maybe_single().execute()
    if response is None:
        return None
    return response.data or None


def fetch_rows(query: Any) -> list[dict]:
    response = query.execute()
    return list(response.data or [])


def fetch_page(query: Any) -> tuple[list[dict], int]:
    """Execute a ``count="exact"`` query and return ``(rows, total)``."""
    response = query.execute()
    rows = list(response.data or [])
    count = response.count
    return rows, count if count is not None else len(rows)


def page_bounds(limit: int, offset: int) -> tuple[int, int]:
    """Inclusive PostgREST range for a limit/offset page."""
    return offset, offset + limit - 1


def clamp(value: Optional[int], low: int, high: int, default: int) -> int:
    if value is None:
        return default
    return min(max(int(value), low), high)
