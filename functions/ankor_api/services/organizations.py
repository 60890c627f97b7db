"""
Organization lookups.
"""

from __future__ import annotations

from supabase import Client

from ankor_api.db import fetch_one
from ankor_api.errors import NotFoundError

ORGANIZATION_FIELDS = "org_id, name, sport_id, created_at, updated_at"


def get_organization(client: Client, org_id: str) -> dict:
    row = fetch_one(
        client.table("organizations").select(ORGANIZATION_FIELDS).eq("org_id", org_id)
    )
    if not row:
        raise NotFoundError("Organization not found")
    return row
