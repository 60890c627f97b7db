"""
Sport positions available to an organization.
"""

from __future__ import annotations

from supabase import Client

from ankor_api.db import fetch_one, fetch_rows


def list_positions_by_org_id(client: Client, org_id: str) -> list[dict]:
    """Positions for the organization's sport, ordered by name. An
    organization without a sport has no positions."""
    org = fetch_one(
        client.table("organizations").select("sport_id").eq("org_id", org_id)
    )
    sport_id = (org or {}).get("sport_id")
    if not sport_id:
        return []

    rows = fetch_rows(
        client.table("positions")
        .select("id, sport_id, code, name")
        .eq("sport_id", sport_id)
        .order("name")
    )
    return [
        {
            "id": row["id"],
            "sport_id": row.get("sport_id"),
            "code": row.get("code"),
            "name": row.get("name"),
        }
        for row in rows
    ]
