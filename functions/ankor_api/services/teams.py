"""
Team CRUD and roster queries.
"""

from __future__ import annotations

from typing import Any, Optional

from supabase import Client

from ankor_api.db import fetch_one, fetch_rows
from ankor_api.errors import NotFoundError, UpstreamError
from ankor_api.schemas import CreateTeamRequest, TeamDto, UpdateTeamRequest

TEAM_FIELDS = "id, org_id, sport_id, name, is_active, created_at, updated_at"

TEAMS_WITH_ATHLETES_SELECT = """
    id,
    org_id,
    name,
    created_at,
    athletes:athletes (
      id,
      profile:profiles (
        first_name,
        last_name
      )
    )
"""

TEAM_ATHLETES_SELECT = """
    team_id,
    teams!inner(org_id),
    athlete:athletes!inner (
      id,
      org_id,
      user_id,
      first_name,
      last_name,
      full_name,
      phone,
      graduation_year,
      cell_number,
      athlete_positions!inner (
        position_id,
        position:positions (
          id,
          code
        )
      )
    )
"""


def _as_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if value:
        return [value]
    return []


def list_teams_with_athletes(client: Client, org_id: str) -> list[dict]:
    rows = fetch_rows(
        client.table("teams")
        .select(TEAMS_WITH_ATHLETES_SELECT)
        .eq("org_id", org_id)
        .order("created_at", desc=True)
    )
    teams = []
    for row in rows:
        athletes = []
        for athlete in _as_list(row.get("athletes")):
            profile = athlete.get("profile") or {}
            athletes.append(
                {
                    "id": athlete.get("id"),
                    "first_name": profile.get("first_name"),
                    "last_name": profile.get("last_name"),
                }
            )
        teams.append(
            {
                "id": row["id"],
                "org_id": row["org_id"],
                "name": row["name"],
                "created_at": row.get("created_at"),
                "athletes": athletes,
            }
        )
    return teams


def get_teams_by_org_id(client: Client, org_id: str) -> list[TeamDto]:
    rows = fetch_rows(
        client.table("teams").select(TEAM_FIELDS).eq("org_id", org_id).order("name")
    )
    return [TeamDto.from_row(row) for row in rows]


def get_team_by_id(client: Client, team_id: str, org_id: str) -> TeamDto:
    row = fetch_one(
        client.table("teams")
        .select(TEAM_FIELDS)
        .eq("id", team_id)
        .eq("org_id", org_id)
    )
    if not row:
        raise NotFoundError("Team not found")
    return TeamDto.from_row(row)


def create_team(client: Client, payload: CreateTeamRequest) -> TeamDto:
    rows = fetch_rows(
        client.table("teams").insert(
            {
                "org_id": payload.org_id,
                "sport_id": payload.sport_id,
                "name": payload.name,
                "is_active": payload.is_active,
            }
        )
    )
    if not rows:
        raise UpstreamError("Failed to create team")
    return TeamDto.from_row(rows[0])


def update_team(
    client: Client, team_id: str, org_id: str, payload: UpdateTeamRequest
) -> TeamDto:
    patch = payload.patch()
    # name and is_active are NOT NULL columns; an explicit null means "leave as is".
    for key in ("name", "is_active"):
        if key in patch and patch[key] is None:
            patch.pop(key)
    if not patch:
        return get_team_by_id(client, team_id, org_id)

    rows = fetch_rows(
        client.table("teams").update(patch).eq("id", team_id).eq("org_id", org_id)
    )
    if not rows:
        raise NotFoundError("Team not found")
    return TeamDto.from_row(rows[0])


def delete_team(client: Client, team_id: str, org_id: str) -> dict:
    rows = fetch_rows(
        client.table("teams").delete().eq("id", team_id).eq("org_id", org_id)
    )
    if not rows:
        raise NotFoundError("Team not found")
    return {"id": rows[0]["id"]}


def _first_position(athlete: dict) -> tuple[Optional[str], Optional[str]]:
    positions = _as_list(athlete.get("athlete_positions"))
    if not positions:
        return None, None
    first = positions[0] or {}
    position = first.get("position") or {}
    return first.get("position_id") or position.get("id"), position.get("code")


def get_athletes_by_team(client: Client, team_id: str, org_id: str) -> list[dict]:
    rows = fetch_rows(
        client.table("team_athletes")
        .select(TEAM_ATHLETES_SELECT)
        .eq("team_id", team_id)
        .eq("teams.org_id", org_id)
        .eq("status", "active")
    )
    athletes = []
    for row in rows:
        athlete = row.get("athlete") or {}
        position_id, position = _first_position(athlete)
        athletes.append(
            {
                "team_id": row.get("team_id"),
                "id": athlete.get("id"),
                "org_id": athlete.get("org_id"),
                "user_id": athlete.get("user_id"),
                "first_name": athlete.get("first_name"),
                "last_name": athlete.get("last_name"),
                "full_name": athlete.get("full_name"),
                "phone": athlete.get("phone"),
                "graduation_year": athlete.get("graduation_year"),
                "cell_number": athlete.get("cell_number"),
                "position_id": position_id,
                "position": position,
            }
        )
    return athletes
