"""
Athlete roster management.

Creating an athlete may also create Supabase Auth users for the athlete and
the guardian. The athlete, guardian and team rows are written atomically by
the ``create_athlete_tx`` stored procedure; auth users created before a
failed call are deleted again.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from supabase import AuthError, Client, PostgrestAPIError

from ankor_api.db import fetch_one, fetch_page, fetch_rows, page_bounds
from ankor_api.errors import ApiError, ConflictError, NotFoundError, UpstreamError
from ankor_api.schemas import AthleteListFilter, CreateAthleteRequest, UpdateAthleteRequest

logger = logging.getLogger(__name__)

USERS_PER_PAGE = 200
MAX_USER_PAGES = 100

ATHLETE_COLUMNS = """
    id,
    org_id,
    user_id,
    email,
    first_name,
    last_name,
    full_name,
    phone,
    cell_number,
    gender,
    graduation_year,
    profile:profiles(email)"""

TEAM_EMBED = "team_athletes(team_id, status, team:teams(id, name))"
TEAM_EMBED_INNER = "team_athletes!inner(team_id, status, team:teams(id, name))"
GUARDIAN_EMBED = (
    "athlete_guardians(relationship, guardian:guardian_contacts(full_name, email, phone))"
)


def _as_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    return [value] if value else []


def build_full_name(first: Optional[str], last: Optional[str]) -> Optional[str]:
    parts = [part.strip() for part in (first, last) if part and part.strip()]
    return " ".join(parts) or None


def map_athlete_row(row: dict) -> dict:
    """Flatten an athlete row with its embedded profile, teams and guardian."""
    profile = row.get("profile") or {}

    teams: dict[str, dict] = {}
    for item in _as_list(row.get("team_athletes")):
        status = item.get("status")
        if status and status != "active":
            continue
        team = item.get("team") or {}
        team_id = item.get("team_id") or team.get("id")
        if team_id and team_id not in teams:
            teams[team_id] = {"id": team_id, "name": team.get("name")}

    guardians = _as_list(row.get("athlete_guardians"))
    guardian_link = guardians[0] if guardians else {}
    guardian = guardian_link.get("guardian")
    parent = None
    if guardian:
        parent = {
            "full_name": guardian.get("full_name"),
            "email": guardian.get("email"),
            "phone_number": guardian.get("phone"),
            "relationship": guardian_link.get("relationship"),
        }

    return {
        "id": row["id"],
        "org_id": row.get("org_id"),
        "user_id": row.get("user_id"),
        "first_name": row.get("first_name"),
        "last_name": row.get("last_name"),
        "full_name": row.get("full_name"),
        "email": profile.get("email") or row.get("email"),
        "phone": row.get("phone"),
        "cell_number": row.get("cell_number"),
        "gender": row.get("gender"),
        "graduation_year": row.get("graduation_year"),
        "teams": list(teams.values()),
        "parent": parent,
    }


def list_athletes(client: Client, filters: AthleteListFilter) -> tuple[list[dict], int]:
    start, end = page_bounds(filters.limit, filters.offset)
    team_embed = TEAM_EMBED_INNER if filters.team_id else TEAM_EMBED
    query = (
        client.table("athletes")
        .select(f"{ATHLETE_COLUMNS},\n    {team_embed}", count="exact")
        .eq("org_id", filters.org_id)
    )

    name = (filters.name or "").strip()
    if name:
        query = query.or_(
            f"full_name.ilike.%{name}%,first_name.ilike.%{name}%,last_name.ilike.%{name}%"
        )
    email = (filters.email or "").strip()
    if email:
        query = query.ilike("profiles.email", f"%{email}%")
    if filters.team_id:
        query = query.eq("team_athletes.team_id", filters.team_id).eq(
            "team_athletes.status", "active"
        )

    rows, count = fetch_page(
        query.order("last_name").order("first_name").range(start, end)
    )
    return [map_athlete_row(row) for row in rows], count


def get_athlete_by_id(client: Client, athlete_id: str, org_id: str) -> dict:
    row = fetch_one(
        client.table("athletes")
        .select(f"{ATHLETE_COLUMNS},\n    {TEAM_EMBED},\n    {GUARDIAN_EMBED}")
        .eq("id", athlete_id)
        .eq("org_id", org_id)
    )
    if not row:
        raise NotFoundError("Athlete not found")
    return map_athlete_row(row)


def find_user_id_by_email(client: Client, email: str) -> Optional[str]:
    """Scan Auth users page by page for a case-insensitive email match."""
    target = email.strip().lower()
    for page in range(1, MAX_USER_PAGES + 1):
        users = client.auth.admin.list_users(page=page, per_page=USERS_PER_PAGE) or []
        for user in users:
            user_email = getattr(user, "email", None)
            if isinstance(user_email, str) and user_email.lower() == target:
                return user.id
        if len(users) < USERS_PER_PAGE:
            break
    return None


def _create_auth_user(
    client: Client, email: str, password: str, metadata: dict, role: str
) -> str:
    response = client.auth.admin.create_user(
        {
            "email": email,
            "password": password,
            "user_metadata": metadata,
            "app_metadata": {"role": role},
            "email_confirm": True,
        }
    )
    user = getattr(response, "user", None)
    if user is None or not getattr(user, "id", None):
        raise UpstreamError("User was not returned by Supabase")
    return user.id


def _delete_created_users(client: Client, user_ids: list[str]) -> None:
    for user_id in user_ids:
        logger.warning("Rolling back auth user %s after failed athlete creation", user_id)
        try:
            client.auth.admin.delete_user(user_id)
        except (AuthError, httpx.HTTPError) as exc:
            logger.error("Failed to roll back auth user %s: %s", user_id, exc)


def _delete_guardian_contact(client: Client, org_id: str, email: Optional[str]) -> None:
    if not email:
        return
    try:
        client.table("guardian_contacts").delete().eq("org_id", org_id).ilike(
            "email", email
        ).execute()
    except (PostgrestAPIError, httpx.HTTPError) as exc:
        logger.error("Failed to remove guardian contact %s: %s", email, exc)


def _athlete_id_from_rpc(data: Any) -> Optional[str]:
    if isinstance(data, str):
        return data or None
    if isinstance(data, list):
        first = data[0] if data else None
        if isinstance(first, dict):
            return first.get("athlete_id")
        return first if isinstance(first, str) else None
    if isinstance(data, dict):
        return data.get("athlete_id")
    return None


def create_athlete(client: Client, payload: CreateAthleteRequest) -> dict:
    athlete_email = payload.email.strip()
    existing = fetch_rows(
        client.table("athletes")
        .select("id")
        .eq("org_id", payload.org_id)
        .ilike("email", athlete_email)
        .limit(1)
    )
    if existing:
        raise ConflictError("athlete email already exists")

    guardian_email = (payload.parent_email or "").strip() or None
    guardian_phone = (payload.parent_mobile_phone or "").strip() or None
    guardian_full_name = (payload.parent_full_name or "").strip() or None
    guardian_matches_athlete = bool(
        guardian_email and guardian_email.lower() == athlete_email.lower()
    )

    guardian_row = None
    if guardian_email:
        guardian_row = fetch_one(
            client.table("guardian_contacts")
            .select("id, user_id")
            .eq("org_id", payload.org_id)
            .ilike("email", guardian_email)
        )
    guardian_id = (guardian_row or {}).get("id")
    guardian_user_id = ((guardian_row or {}).get("user_id") or "").strip() or None

    created_users: list[str] = []
    user_id: Optional[str] = None
    try:
        if guardian_email and guardian_full_name and guardian_phone and not guardian_user_id:
            names = guardian_full_name.split()
            guardian_user_id = _create_auth_user(
                client,
                guardian_email,
                payload.password,
                {
                    "first_name": names[0] if names else None,
                    "last_name": " ".join(names[1:]) or None,
                    "full_name": guardian_full_name,
                    "cell_number": guardian_phone,
                },
                role="parent",
            )
            created_users.append(guardian_user_id)

        if guardian_matches_athlete:
            user_id = guardian_user_id
        else:
            user_id = find_user_id_by_email(client, athlete_email)
            if not user_id:
                user_id = _create_auth_user(
                    client,
                    athlete_email,
                    payload.password,
                    {
                        "first_name": payload.first_name,
                        "last_name": payload.last_name,
                        "cell_number": payload.cell_number,
                    },
                    role="athlete",
                )
                created_users.append(user_id)

        response = client.rpc(
            "create_athlete_tx",
            {
                "p_user_id": user_id,
                "p_org_id": payload.org_id,
                "p_team_id": payload.team_id,
                "p_first_name": payload.first_name,
                "p_last_name": payload.last_name,
                "p_full_name": payload.full_name
                or build_full_name(payload.first_name, payload.last_name),
                "p_email": athlete_email,
                "p_phone": payload.phone,
                "p_cell_number": payload.cell_number,
                "p_gender": payload.gender,
                "p_positions": payload.positions,
                "p_guardian_id": guardian_id,
                "p_guardian_user_id": guardian_user_id,
                "p_guardian_full_name": guardian_full_name,
                "p_guardian_email": guardian_email,
                "p_guardian_phone": guardian_phone,
                "p_guardian_relationship": payload.relationship,
                "p_graduation_year": payload.graduation_year,
            },
        ).execute()
        athlete_id = _athlete_id_from_rpc(response.data)
        if not athlete_id:
            raise UpstreamError("Failed to create athlete")
    except (ApiError, AuthError, PostgrestAPIError, httpx.HTTPError):
        _delete_created_users(client, created_users)
        raise

    try:
        return get_athlete_by_id(client, athlete_id, payload.org_id)
    except (ApiError, PostgrestAPIError, httpx.HTTPError):
        logger.warning("Reload of athlete %s failed, removing it", athlete_id)
        try:
            client.table("athletes").delete().eq("id", athlete_id).eq(
                "org_id", payload.org_id
            ).execute()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            logger.error("Failed to remove athlete %s: %s", athlete_id, exc)
        if guardian_user_id and guardian_user_id in created_users:
            _delete_guardian_contact(client, payload.org_id, guardian_email)
        _delete_created_users(client, created_users)
        raise


def update_athlete(
    client: Client, athlete_id: str, org_id: str, payload: UpdateAthleteRequest
) -> dict:
    patch = payload.patch()
    for key in ("first_name", "last_name"):
        if key in patch and patch[key] is None:
            patch.pop(key)

    if "full_name" not in patch and ("first_name" in patch or "last_name" in patch):
        current = fetch_one(
            client.table("athletes")
            .select("first_name, last_name")
            .eq("id", athlete_id)
            .eq("org_id", org_id)
        )
        if not current:
            raise NotFoundError("Athlete not found")
        patch["full_name"] = build_full_name(
            patch.get("first_name") or current.get("first_name"),
            patch.get("last_name") or current.get("last_name"),
        )

    if patch:
        rows = fetch_rows(
            client.table("athletes").update(patch).eq("id", athlete_id).eq("org_id", org_id)
        )
        if not rows:
            raise NotFoundError("Athlete not found")

    return get_athlete_by_id(client, athlete_id, org_id)
